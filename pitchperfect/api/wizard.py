"""API endpoints for pitch wizard sessions.

Sessions live in process memory and are discarded unless explicitly saved.
"""

import time
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_wizard import HookStyle, WizardState
from pitchperfect.core.wizard import PitchWizard, WizardTransitionError, WizardValidationError
from pitchperfect.db.saved_pitches import save_pitch
from pitchperfect.services.edge_functions import EdgeFunctionError

logger = get_logger(__name__)

router = APIRouter()

# In-memory session registry and last access times (monotonic seconds)
_sessions: dict[str, PitchWizard] = {}
_last_seen: dict[str, float] = {}
_clock = time.monotonic


class CreateSessionRequest(BaseModel):
    duration_minutes: float | None = Field(default=None, gt=0)


class StepValuesRequest(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)


class HookRequest(BaseModel):
    style: HookStyle


class SaveVersionRequest(BaseModel):
    name: str | None = None


class SavePitchRequest(BaseModel):
    user_id: str
    pitch_id: str | None = None


def _session_response(session_id: str, wizard: PitchWizard) -> dict:
    return {
        "session_id": session_id,
        "can_continue": wizard.can_continue(),
        "state": wizard.state.model_dump(mode="json"),
    }


def _get_wizard(session_id: str) -> PitchWizard:
    wizard = _sessions.get(session_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail="Wizard session not found")
    _last_seen[session_id] = _clock()
    return wizard


def evict_stale_sessions() -> int:
    """Drop sessions idle longer than the configured TTL. Returns the number dropped."""
    from pitchperfect.core.config import get_settings

    cutoff = _clock() - get_settings().WIZARD_SESSION_TTL_SECONDS
    stale = [
        session_id
        for session_id, seen in _last_seen.items()
        if seen < cutoff and not _sessions[session_id].state.is_generating
    ]
    for session_id in stale:
        _sessions.pop(session_id).discard()
        del _last_seen[session_id]
    if stale:
        logger.info(f"Evicted {len(stale)} idle wizard sessions")
    return len(stale)


def clear_sessions() -> None:
    _sessions.clear()
    _last_seen.clear()


@router.post("/sessions")
async def create_session(request: CreateSessionRequest | None = None) -> dict:
    """Start a new wizard session at the idea step."""
    evict_stale_sessions()
    session_id = str(uuid.uuid4())
    duration = request.duration_minutes if request and request.duration_minutes else None
    wizard = PitchWizard(session_id=session_id, default_duration=duration or 3.0)
    _sessions[session_id] = wizard
    _last_seen[session_id] = _clock()
    logger.info(f"Created wizard session {session_id}")
    return _session_response(session_id, wizard)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    return _session_response(session_id, _get_wizard(session_id))


@router.post("/sessions/{session_id}/confirm")
async def confirm_step(session_id: str, request: StepValuesRequest) -> dict:
    """
    Confirm the current step with its values and advance.

    Raises:
        HTTPException 400: If required fields are missing or invalid
        HTTPException 404: If the session does not exist
        HTTPException 409: If the current step cannot be confirmed
    """
    wizard = _get_wizard(session_id)
    try:
        wizard.confirm(request.values)
    except WizardValidationError as e:
        raise HTTPException(
            status_code=400, detail={"step": e.step.value, "errors": e.errors}
        ) from e
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session_id, wizard)


@router.post("/sessions/{session_id}/back")
async def go_back(session_id: str) -> dict:
    wizard = _get_wizard(session_id)
    try:
        wizard.back()
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session_id, wizard)


@router.post("/sessions/{session_id}/generate")
async def generate_script(session_id: str) -> dict:
    """
    Generate the script from the summary step.

    Raises:
        HTTPException 409: If the session is not at the summary step or a
            generation is already running
        HTTPException 502: If generation failed (the session stays on summary)
    """
    wizard = _get_wizard(session_id)
    if wizard.state.is_generating:
        raise HTTPException(status_code=409, detail="Generation already in progress")

    try:
        artifact = await wizard.generate()
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    if artifact is None:
        raise HTTPException(status_code=502, detail=wizard.state.error or "Generation failed")
    return _session_response(session_id, wizard)


@router.post("/sessions/{session_id}/hook")
async def regenerate_hook(session_id: str, request: HookRequest) -> dict:
    wizard = _get_wizard(session_id)
    try:
        await wizard.regenerate_hook(request.style)
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except EdgeFunctionError as e:
        logger.warning(f"Hook regeneration failed for {session_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to regenerate hook") from e
    return _session_response(session_id, wizard)


@router.post("/sessions/{session_id}/versions")
async def save_version(session_id: str, request: SaveVersionRequest) -> dict:
    wizard = _get_wizard(session_id)
    try:
        version = wizard.save_version(request.name)
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return version.model_dump(mode="json")


@router.get("/sessions/{session_id}/versions")
async def list_versions(session_id: str) -> dict:
    wizard = _get_wizard(session_id)
    return {"versions": [v.model_dump(mode="json") for v in wizard.versions.versions]}


@router.post("/sessions/{session_id}/versions/{version_id}/restore")
async def restore_version(session_id: str, version_id: str) -> dict:
    wizard = _get_wizard(session_id)
    try:
        wizard.restore_version(version_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail="Script version not found") from e
    except WizardTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session_id, wizard)


@router.post("/sessions/{session_id}/save")
async def save_session(session_id: str, request: SavePitchRequest) -> dict:
    """
    Persist the generated pitch for a user.

    Raises:
        HTTPException 409: If no script has been generated yet
        HTTPException 502: If the database write failed
    """
    wizard = _get_wizard(session_id)
    state: WizardState = wizard.state
    if state.artifact is None:
        raise HTTPException(status_code=409, detail="No generated script to save")

    row = save_pitch(request.user_id, state.session, state.artifact, pitch_id=request.pitch_id)
    if row is None:
        raise HTTPException(status_code=502, detail="Failed to save pitch")
    return row


@router.delete("/sessions/{session_id}")
async def discard_session(session_id: str) -> dict:
    wizard = _get_wizard(session_id)
    wizard.discard()
    del _sessions[session_id]
    _last_seen.pop(session_id, None)
    logger.info(f"Discarded wizard session {session_id}")
    return {"session_id": session_id, "discarded": True}
