"""
Pitch wizard state machine.

Steps are visited in order: IDEA -> AUDIENCE -> DEMO -> PROBLEM -> PERSONA ->
BUSINESS_MODEL -> GENERATION -> SUMMARY -> RESULT.

Each step owns a fixed set of session fields. ``confirm`` validates the
current step, merges its fields into the session and advances. ``back``
moves one step back keeping every answer. From SUMMARY a single generation
call produces the script; success moves to RESULT and freezes the session,
failure stays on SUMMARY with a retryable error.
"""

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from pitchperfect.core.logging import get_logger, log_with_context
from pitchperfect.core.schemas_wizard import (
    DemoInfo,
    HookStyle,
    ScriptArtifact,
    ScriptVersion,
    WizardSession,
    WizardState,
    WizardStep,
)
from pitchperfect.core.script_builder import (
    ScriptVersionHistory,
    build_script_artifact,
    replace_hook,
)
from pitchperfect.core.store import Store

logger = get_logger(__name__)


class WizardValidationError(Exception):
    """Raised when a step is confirmed without its required fields."""

    def __init__(self, step: WizardStep, errors: list[str]):
        self.step = step
        self.errors = errors
        super().__init__(f"{step.value}: {'; '.join(errors)}")


class WizardTransitionError(Exception):
    """Raised when an action is not allowed in the current step."""


# =============================================================================
# Step definitions
# =============================================================================

STEP_ORDER: list[WizardStep] = [
    WizardStep.IDEA,
    WizardStep.AUDIENCE,
    WizardStep.DEMO,
    WizardStep.PROBLEM,
    WizardStep.PERSONA,
    WizardStep.BUSINESS_MODEL,
    WizardStep.GENERATION,
    WizardStep.SUMMARY,
    WizardStep.RESULT,
]

STEP_FIELDS: dict[WizardStep, set[str]] = {
    WizardStep.IDEA: {"idea"},
    WizardStep.AUDIENCE: {"audience_id", "audience_label", "duration_minutes"},
    WizardStep.DEMO: {"has_demo", "demo_type", "demo_url", "demo_description"},
    WizardStep.PROBLEM: {"problem", "elevator_pitch"},
    WizardStep.PERSONA: {"persona_description", "persona_keywords"},
    WizardStep.BUSINESS_MODEL: {"business_models"},
    WizardStep.GENERATION: {"generation_tier", "hook_style"},
    WizardStep.SUMMARY: set(),
}

DEMO_FIELDS = {"has_demo", "demo_type", "demo_url", "demo_description"}


def get_next_step(step: WizardStep) -> WizardStep | None:
    index = STEP_ORDER.index(step)
    return STEP_ORDER[index + 1] if index + 1 < len(STEP_ORDER) else None


def get_previous_step(step: WizardStep) -> WizardStep | None:
    index = STEP_ORDER.index(step)
    return STEP_ORDER[index - 1] if index > 0 else None


def missing_fields(step: WizardStep, session: WizardSession) -> list[str]:
    """Human-readable problems that block Continue on ``step``."""
    errors: list[str] = []

    if step == WizardStep.IDEA and not session.idea.strip():
        errors.append("idea is required")
    elif step == WizardStep.AUDIENCE:
        if not session.audience_id:
            errors.append("audience is required")
        if session.duration_minutes <= 0:
            errors.append("duration must be positive")
    elif step == WizardStep.DEMO:
        if session.demo.has_demo and not session.demo.demo_type:
            errors.append("demo type is required when a demo is included")
    elif step == WizardStep.PROBLEM and not session.problem.strip():
        errors.append("problem is required")
    elif step == WizardStep.PERSONA and not session.persona_description.strip():
        errors.append("persona description is required")
    elif step == WizardStep.BUSINESS_MODEL and not session.business_models:
        errors.append("select at least one business model")
    elif step == WizardStep.GENERATION and session.generation_tier is None:
        errors.append("generation tier is required")

    return errors


def apply_step_values(
    step: WizardStep, session: WizardSession, values: dict[str, Any]
) -> WizardSession:
    """
    Merge ``values`` for ``step`` into a new session.

    Raises:
        WizardValidationError: If values contain fields of another step or
            have the wrong type
    """
    allowed = STEP_FIELDS.get(step, set())
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise WizardValidationError(step, [f"unexpected field: {name}" for name in unknown])

    data = session.model_dump()
    for key, value in values.items():
        if key in DEMO_FIELDS:
            data["demo"][key] = value
        elif isinstance(value, list):
            data[key] = tuple(value)
        else:
            data[key] = value

    try:
        data["demo"] = DemoInfo.model_validate(data["demo"])
        return WizardSession.model_validate(data)
    except ValidationError as e:
        raise WizardValidationError(
            step, [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        ) from e


# =============================================================================
# Wizard store
# =============================================================================

Generator = Callable[[WizardSession], Awaitable[Any]]
HookRegenerator = Callable[..., Awaitable[str]]


class PitchWizard(Store[WizardState]):
    """Store driving one wizard session through its steps."""

    def __init__(
        self,
        generator: Generator | None = None,
        default_duration: float = 3.0,
        speaking_rate_wpm: int | None = None,
        word_count_tolerance: float | None = None,
        session_id: str | None = None,
    ):
        self._default_duration = default_duration
        super().__init__(self._fresh_state())
        self._generator = generator
        self._speaking_rate_wpm = speaking_rate_wpm
        self._tolerance = word_count_tolerance
        self._epoch = 0
        self.session_id = session_id
        self.versions = ScriptVersionHistory()

    def _fresh_state(self) -> WizardState:
        return WizardState(session=WizardSession(duration_minutes=self._default_duration))

    def _tuning(self) -> tuple[int, float]:
        if self._speaking_rate_wpm is not None and self._tolerance is not None:
            return self._speaking_rate_wpm, self._tolerance

        from pitchperfect.core.config import get_settings

        settings = get_settings()
        return (
            self._speaking_rate_wpm or settings.SPEAKING_RATE_WPM,
            self._tolerance if self._tolerance is not None else settings.WORD_COUNT_TOLERANCE,
        )

    @property
    def step(self) -> WizardStep:
        return self.state.step

    @property
    def session(self) -> WizardSession:
        return self.state.session

    def _require_editable(self) -> None:
        if self.state.step == WizardStep.RESULT:
            raise WizardTransitionError("Session is read-only once the script is generated")
        if self.state.is_generating:
            raise WizardTransitionError("Session is locked while the script is generating")

    def can_continue(self, values: dict[str, Any] | None = None) -> bool:
        """True when the current step's required fields are populated."""
        step = self.state.step
        if step in (WizardStep.SUMMARY, WizardStep.RESULT):
            return False
        try:
            candidate = apply_step_values(step, self.state.session, values or {})
        except WizardValidationError:
            return False
        return not missing_fields(step, candidate)

    def confirm(self, values: dict[str, Any] | None = None) -> WizardStep:
        """
        Validate and store the current step's values, then advance.

        Raises:
            WizardTransitionError: If there is no step to confirm or a
                generation is running
            WizardValidationError: If required fields are missing
        """
        self._require_editable()
        step = self.state.step
        if step == WizardStep.SUMMARY:
            raise WizardTransitionError("Summary is confirmed by generating the script")

        session = apply_step_values(step, self.state.session, values or {})
        errors = missing_fields(step, session)
        if errors:
            raise WizardValidationError(step, errors)

        next_step = get_next_step(step)
        self.set_state(step=next_step, session=session, error=None)
        log_with_context(
            logger, logging.DEBUG, f"Wizard step confirmed: {step.value}", session_id=self.session_id
        )
        return next_step

    def back(self) -> WizardStep:
        """
        Return to the previous step; answers are kept. No-op on the first step.

        Raises:
            WizardTransitionError: If the script is generated or generating
        """
        self._require_editable()
        previous = get_previous_step(self.state.step)
        if previous is None:
            return self.state.step
        self.set_state(step=previous, error=None)
        return previous

    def discard(self) -> None:
        """Drop all answers and any in-flight generation."""
        self._epoch += 1
        self.versions = ScriptVersionHistory()
        self.replace_state(self._fresh_state())

    async def generate(self) -> ScriptArtifact | None:
        """
        Run the single generation call for this session.

        Returns None without calling the service when a generation is already
        in flight, or when generation failed (see ``state.error``).

        Raises:
            WizardTransitionError: If called before the summary step
        """
        if self.state.step != WizardStep.SUMMARY:
            raise WizardTransitionError(
                f"Cannot generate from step {self.state.step.value}"
            )
        if self.state.is_generating:
            logger.info("Generation already in progress, ignoring request")
            return None
        if self._generator is None:
            from pitchperfect.services.generation import generate_script

            self._generator = generate_script

        epoch = self._epoch
        session = self.state.session
        self.set_state(is_generating=True, error=None)

        try:
            generated = await self._generator(session)
            speaking_rate, tolerance = self._tuning()
            artifact = build_script_artifact(
                generated.script,
                session.duration_minutes,
                hook_style=session.hook_style,
                demo_actions=generated.demo_actions,
                speaking_rate_wpm=speaking_rate,
                tolerance=tolerance,
            )
        except Exception as e:
            if epoch != self._epoch:
                return None
            logger.warning(f"Script generation failed: {e}")
            self.set_state(is_generating=False, error=f"Script generation failed: {e}")
            return None

        if epoch != self._epoch:
            logger.info("Session discarded during generation, dropping result")
            return None

        self.set_state(step=WizardStep.RESULT, is_generating=False, artifact=artifact)
        log_with_context(
            logger,
            logging.INFO,
            "Script generated",
            session_id=self.session_id,
            word_count=artifact.actual_word_count,
            target=artifact.target_word_count,
        )
        return artifact

    async def regenerate_hook(
        self, style: HookStyle, regenerator: HookRegenerator | None = None
    ) -> ScriptArtifact:
        """
        Replace the opening block with a hook in ``style``.

        Raises:
            WizardTransitionError: If no script has been generated
        """
        artifact = self.state.artifact
        if self.state.step != WizardStep.RESULT or artifact is None:
            raise WizardTransitionError("No generated script to update")
        if regenerator is None:
            from pitchperfect.services.generation import regenerate_hook

            regenerator = regenerate_hook

        new_hook = await regenerator(
            current_hook=artifact.blocks[0].content,
            new_style=style,
            idea=self.state.session.idea,
            track=self.state.session.audience_id,
        )
        updated = replace_hook(artifact, new_hook, style)
        self.set_state(artifact=updated)
        return updated

    # -------------------------------------------------------------------------
    # Script versions
    # -------------------------------------------------------------------------

    def _require_artifact(self) -> ScriptArtifact:
        if self.state.step != WizardStep.RESULT or self.state.artifact is None:
            raise WizardTransitionError("No generated script to update")
        return self.state.artifact

    def save_version(self, name: str | None = None) -> ScriptVersion:
        """Snapshot the current script."""
        return self.versions.save(self._require_artifact(), name)

    def restore_version(self, version_id: str) -> ScriptArtifact:
        """
        Replace the current script with a saved snapshot.

        Raises:
            KeyError: If the version does not exist
        """
        restored = self.versions.restore(version_id, self._require_artifact())
        self.set_state(artifact=restored)
        return restored
