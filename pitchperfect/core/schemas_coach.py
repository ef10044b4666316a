"""Pydantic models for the AI Coach recording pipeline."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class CoachView(str, Enum):
    """Coach screens; transitions only move forward until reset."""

    SETUP = "setup"
    RECORDING = "recording"
    PROCESSING = "processing"
    RESULTS = "results"


class PromptMode(str, Enum):
    TELEPROMPTER = "teleprompter"
    CUE_CARDS = "cue_cards"


class ProcessingStep(str, Enum):
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    AGGREGATING = "aggregating"


class PostureGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"


# =============================================================================
# Voices
# =============================================================================


class TTSVoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str


TTS_VOICES: tuple[TTSVoice, ...] = (
    TTSVoice(id="onwK4e9ZLuTAKqWW03F9", name="Daniel", description="Confident British male"),
    TTSVoice(id="EXAVITQu4vr4xnSDxMaL", name="Sarah", description="Warm American female"),
    TTSVoice(id="JBFqnCBsd6RMkjVDRZzb", name="George", description="Authoritative British male"),
    TTSVoice(id="pFZP5JQG7iQjIQuC4Bku", name="Lily", description="Clear British female"),
    TTSVoice(id="TX3LPaxmHKxFdv7VOQHJ", name="Liam", description="Energetic American male"),
    TTSVoice(id="cgSgspJ2msm6clMCkdW9", name="Jessica", description="Friendly American female"),
)

DEFAULT_VOICE_ID = TTS_VOICES[0].id


# =============================================================================
# Capture
# =============================================================================


class FrameSample(BaseModel):
    """One sampled video frame's presence signals."""

    model_config = ConfigDict(frozen=True)

    timestamp: float  # seconds since recording start
    eye_contact: bool
    smiling: bool
    head_deviation: float  # degrees from center
    posture_score: float | None = None  # 0-100
    hands_visible: bool | None = None
    body_sway: float | None = None  # normalized lateral offset


class RecordingSession(BaseModel):
    """Sealed capture handed to processing."""

    model_config = ConfigDict(frozen=True)

    audio: bytes
    video: bytes | None = None
    duration_seconds: int
    frames: tuple[FrameSample, ...] = ()
    prompt_mode: PromptMode = PromptMode.TELEPROMPTER


class TranscriptionSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    language: str = "en-US"


# =============================================================================
# Analysis
# =============================================================================


class DeliveryMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    eye_contact_percent: int = 0
    wpm: int = 0
    filler_count: int = 0
    filler_breakdown: dict[str, int] = Field(default_factory=dict)
    stability_score: int = 0
    smile_percent: int = 0
    posture_score: int | None = None
    posture_grade: PostureGrade | None = None
    hands_visible_percent: int | None = None
    body_stability_score: int | None = None


class ContentCoverage(BaseModel):
    model_config = ConfigDict(frozen=True)

    problem: bool = False
    solution: bool = False
    market: bool = False
    traction: bool = False
    team: bool = False
    ask: bool = False
    demo: bool = False
    unique_value: bool = False


class ContentAnalysis(BaseModel):
    """Structured feedback on what the pitch said."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=1, le=10)
    key_missing_points: list[str] = Field(default_factory=list)
    sentiment: str = "neutral"
    specific_feedback: str = ""
    strengths: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class BulletCoverage(BaseModel):
    model_config = ConfigDict(frozen=True)

    bullet: str
    covered: bool


class AnalysisResults(BaseModel):
    model_config = ConfigDict(frozen=True)

    transcript: str
    delivery_metrics: DeliveryMetrics
    content_analysis: ContentAnalysis
    content_coverage: ContentCoverage
    bullet_coverage: tuple[BulletCoverage, ...] = ()
    processed_at: datetime
    prompt_mode: PromptMode
    duration_seconds: int


# =============================================================================
# Store state
# =============================================================================


class ScriptBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    content: str


class CoachState(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_view: CoachView = CoachView.SETUP
    prompt_mode: PromptMode = PromptMode.TELEPROMPTER
    script_blocks: tuple[ScriptBlock, ...] = ()
    bullet_points: tuple[str, ...] = ()
    transcription_settings: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    selected_voice_id: str = DEFAULT_VOICE_ID

    is_recording: bool = False
    recording_duration: int = 0
    frame_data: tuple[FrameSample, ...] = ()
    recording: RecordingSession | None = None

    processing_step: ProcessingStep | None = None
    processing_progress: int = 0
    results: AnalysisResults | None = None
    error: str | None = None
