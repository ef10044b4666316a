"""Content generation through the ``generate-pitch`` edge function."""

from typing import Any

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_services import GeneratedScript, GenerationRequest, SuggestionType
from pitchperfect.core.schemas_wizard import HookStyle, WizardSession
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function

logger = get_logger(__name__)

GENERATE_FUNCTION = "generate-pitch"
REGENERATE_HOOK_FUNCTION = "regenerate-hook"


async def generate(request: GenerationRequest) -> dict[str, Any]:
    """
    Run a generation request.

    Returns:
        Response body: ``{"suggestions": [...]}`` or ``{"result": ...}``
    """
    return await invoke_function(
        GENERATE_FUNCTION,
        json_body={
            "type": request.type.value,
            "idea": request.idea,
            "context": request.context,
        },
    )


def _suggestion_text(item: Any) -> str | None:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        # "pitches" returns {id, title, pitch}; "persona" may return {description}
        for key in ("text", "pitch", "description", "title"):
            if isinstance(item.get(key), str) and item[key].strip():
                return item[key].strip()
    return None


async def generate_suggestions(
    suggestion_type: SuggestionType, idea: str, context: dict[str, Any] | None = None
) -> list[str]:
    """
    Fetch suggestion texts for a wizard field.

    Raises:
        EdgeFunctionError: If the call fails or returns no usable suggestions
    """
    body = await generate(
        GenerationRequest(type=suggestion_type, idea=idea, context=context or {})
    )
    raw = body.get("suggestions")
    if not isinstance(raw, list):
        raise EdgeFunctionError(GENERATE_FUNCTION, "Invalid response format")

    texts = [text for text in (_suggestion_text(item) for item in raw) if text]
    if not texts:
        raise EdgeFunctionError(GENERATE_FUNCTION, "No suggestions returned")

    logger.info(f"Received {len(texts)} {suggestion_type.value} suggestions")
    return texts


def build_script_context(session: WizardSession) -> dict[str, Any]:
    """Context payload describing a completed wizard session."""
    return {
        "duration": session.duration_minutes,
        "audience": session.audience_id,
        "audienceLabel": session.audience_label,
        "problem": session.problem,
        "pitch": session.elevator_pitch,
        "persona": {
            "description": session.persona_description,
            "keywords": list(session.persona_keywords),
        },
        "businessModels": list(session.business_models),
        "demo": session.demo.model_dump(),
        "hookStyle": session.hook_style.value,
        "tier": session.generation_tier.value if session.generation_tier else None,
    }


async def generate_script(session: WizardSession) -> GeneratedScript:
    """
    Generate the pitch script for a wizard session.

    Raises:
        EdgeFunctionError: If the call fails or the result has no script
    """
    body = await generate(
        GenerationRequest(
            type=SuggestionType.SCRIPT,
            idea=session.idea,
            context=build_script_context(session),
        )
    )
    result = body.get("result")
    if not isinstance(result, dict) or not result.get("script"):
        raise EdgeFunctionError(GENERATE_FUNCTION, "No script returned")
    return GeneratedScript.model_validate(result)


async def regenerate_hook(
    current_hook: str, new_style: HookStyle, idea: str, track: str | None = None
) -> str:
    """
    Rewrite the opening hook in a new style.

    Raises:
        EdgeFunctionError: If the call fails or returns no hook
    """
    body = await invoke_function(
        REGENERATE_HOOK_FUNCTION,
        json_body={
            "currentHook": current_hook,
            "newStyle": HookStyle(new_style).value,
            "idea": idea,
            "track": track,
        },
    )
    new_hook = body.get("newHook")
    if not isinstance(new_hook, str) or not new_hook.strip():
        raise EdgeFunctionError(REGENERATE_HOOK_FUNCTION, "No hook returned")
    return new_hook.strip()
