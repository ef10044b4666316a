"""Pydantic models for the pitch wizard and generated scripts."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class WizardStep(str, Enum):
    """Wizard steps in the order they are visited."""

    IDEA = "idea"
    AUDIENCE = "audience"
    DEMO = "demo"
    PROBLEM = "problem"
    PERSONA = "persona"
    BUSINESS_MODEL = "business_model"
    GENERATION = "generation"
    SUMMARY = "summary"  # ready to generate
    RESULT = "result"


class GenerationTier(str, Enum):
    SCRIPT = "script"  # Script only
    DECK = "deck"  # Script + deck
    SHOWSTOPPER = "showstopper"


class HookStyle(str, Enum):
    """Opening styles for the first speech block."""

    AUTO = "auto"
    STATISTIC = "statistic"
    VILLAIN = "villain"
    STORY = "story"
    CONTRARIAN = "contrarian"
    QUESTION = "question"


# =============================================================================
# Session
# =============================================================================


class DemoInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_demo: bool = False
    demo_type: str | None = None  # e.g. "live", "video", "screenshots"
    demo_url: str | None = None
    demo_description: str | None = None


class WizardSession(BaseModel):
    """Answers accumulated across wizard steps."""

    model_config = ConfigDict(frozen=True)

    idea: str = ""
    audience_id: str | None = None
    audience_label: str | None = None
    duration_minutes: float = 3.0
    demo: DemoInfo = Field(default_factory=DemoInfo)
    problem: str = ""
    elevator_pitch: str = ""
    persona_description: str = ""
    persona_keywords: tuple[str, ...] = ()
    business_models: tuple[str, ...] = ()
    hook_style: HookStyle = HookStyle.AUTO
    generation_tier: GenerationTier | None = None


# =============================================================================
# Generated script
# =============================================================================


class SpeechBlock(BaseModel):
    """One timed section of a pitch script."""

    model_config = ConfigDict(frozen=True)

    time_start: str  # "M:SS"
    time_end: str
    title: str
    content: str
    is_demo: bool = False
    visual_cue: str | None = None


class ScriptArtifact(BaseModel):
    """Final generated script with timing and metadata."""

    model_config = ConfigDict(frozen=True)

    blocks: tuple[SpeechBlock, ...]
    target_word_count: int
    actual_word_count: int
    full_script: str
    bullet_points: tuple[str, ...] = ()
    hook_style: HookStyle = HookStyle.AUTO
    duration_minutes: float
    demo_actions: tuple[str, ...] = ()
    word_count_tolerance: float = 0.10

    @property
    def within_tolerance(self) -> bool:
        """True when the actual word count is within tolerance of the target."""
        if self.target_word_count <= 0:
            return False
        deviation = abs(self.actual_word_count - self.target_word_count)
        return deviation <= self.target_word_count * self.word_count_tolerance


class ScriptVersion(BaseModel):
    """Saved snapshot of a script for later restore or comparison."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str  # "Version N"
    timestamp: datetime
    blocks: tuple[SpeechBlock, ...]
    full_script: str
    bullet_points: tuple[str, ...] = ()
    word_count: int


class VersionComparison(BaseModel):
    left_id: str
    right_id: str
    word_count_delta: int
    changed_titles: list[str] = Field(default_factory=list)
    added_titles: list[str] = Field(default_factory=list)
    removed_titles: list[str] = Field(default_factory=list)


class WizardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: WizardStep = WizardStep.IDEA
    session: WizardSession = Field(default_factory=WizardSession)
    is_generating: bool = False
    error: str | None = None  # retryable generation error
    artifact: ScriptArtifact | None = None
