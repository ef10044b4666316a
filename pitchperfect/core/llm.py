"""LLM client utilities for LangChain integration."""

import asyncio
import json
import re
from typing import Sequence, TypeVar

from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ValidationError

from pitchperfect.core.config import get_settings
from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)


def get_llm(model: str | None = None, temperature: float = 0.1) -> ChatOpenAI:
    """
    Get a chat model configured from settings.

    Raises:
        ValueError: If OPENAI_API_KEY is not configured
    """
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY not configured")

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.OPENAI_MODEL,
        temperature=temperature,
    )


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON (optionally inside a markdown fence) into ``model``.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    cleaned = raw_output.strip()
    fence_match = _FENCE_RE.search(cleaned)
    if fence_match:
        cleaned = fence_match.group(1).strip()
    return model.model_validate(json.loads(cleaned))


async def ainvoke_structured(
    llm: ChatOpenAI,
    messages: Sequence[BaseMessage],
    model: type[T],
    max_retries: int = 2,
    initial_delay: float = 1.0,
) -> T:
    """
    Call the model and parse its reply into ``model``.

    Malformed replies are retried with exponential backoff; the last parse
    error is raised once ``max_retries`` retries are used up.
    """
    for attempt in range(max_retries + 1):
        response = await llm.ainvoke(list(messages))
        try:
            return parse_llm_json(response.content, model)
        except (json.JSONDecodeError, ValidationError) as e:
            if attempt >= max_retries:
                logger.error(f"{model.__name__} parse failed after {max_retries + 1} attempts: {e}")
                raise
            delay = initial_delay * (2**attempt)
            logger.warning(
                f"{model.__name__} attempt {attempt + 1}/{max_retries + 1} returned "
                f"malformed output, retrying in {delay}s: {e}"
            )
            await asyncio.sleep(delay)

    raise RuntimeError("unreachable")
