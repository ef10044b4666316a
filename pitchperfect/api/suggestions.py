"""API endpoints for AI suggestion regeneration."""

from typing import Any

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, Field

from pitchperfect.core.logging import get_logger
from pitchperfect.core.rate_limiter import check_regenerate_rate_limit, regenerate_rate_limiter
from pitchperfect.core.schemas_services import SuggestionType
from pitchperfect.core.suggestions import fallback_suggestions
from pitchperfect.db.suggestion_analytics import track_suggestion_selection
from pitchperfect.services.edge_functions import EdgeFunctionError
from pitchperfect.services.generation import generate_suggestions

logger = get_logger(__name__)

router = APIRouter()


class RegenerateRequest(BaseModel):
    type: SuggestionType
    idea: str = Field(..., min_length=1)
    context: dict[str, Any] = Field(default_factory=dict)


class SelectionRequest(BaseModel):
    type: SuggestionType
    text: str = Field(..., min_length=1)


def _client_key(request: Request, client_id: str | None) -> str:
    if client_id:
        return client_id
    return request.client.host if request.client else "anonymous"


@router.post("/regenerate")
async def regenerate(
    body: RegenerateRequest,
    request: Request,
    x_client_id: str | None = Header(default=None),
) -> dict:
    """
    Fetch a fresh set of suggestions for one wizard field.

    Falls back to the local suggestion list when the generator fails.

    Raises:
        HTTPException 429: If the client regenerated too often (Retry-After set)
    """
    client_key = _client_key(request, x_client_id)
    check_regenerate_rate_limit(client_key)

    try:
        texts = await generate_suggestions(body.type, body.idea, body.context)
        fallback = False
    except EdgeFunctionError as e:
        logger.warning(f"Suggestion regeneration failed for {body.type.value}: {e}")
        texts = fallback_suggestions(body.type)
        fallback = True

    return {
        "suggestions": [{"id": f"s-{i}", "text": text} for i, text in enumerate(texts)],
        "fallback": fallback,
        "rate_limit": regenerate_rate_limiter.get_stats(f"regenerate:{client_key}"),
    }


@router.get("/rate-limit")
async def get_rate_limit_status(
    request: Request, x_client_id: str | None = Header(default=None)
) -> dict:
    client_key = _client_key(request, x_client_id)
    return {
        "status": "ok",
        "rate_limit": regenerate_rate_limiter.get_stats(f"regenerate:{client_key}"),
    }


@router.post("/selections")
async def record_selection(body: SelectionRequest) -> dict:
    """Record which suggestion a user picked."""
    track_suggestion_selection(body.type.value, body.text)
    return {"status": "ok"}
