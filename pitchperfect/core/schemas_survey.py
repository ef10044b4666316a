"""Pydantic models for in-app surveys and their triggers."""

from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

AnswerValue = Union[str, list[str], int, float]


class QuestionType(str, Enum):
    RATING = "rating"  # 1-5
    NPS = "nps"  # 0-10
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    TEXTAREA = "textarea"


class SurveyType(str, Enum):
    PULSE = "pulse"
    EXPERIENCE = "experience"


class SurveyTrigger(str, Enum):
    AFTER_COMPLETE = "after_complete"
    ABANDONED = "abandoned"
    MANUAL = "manual"
    RETENTION = "retention"


class CompletionReason(str, Enum):
    FINISHED = "finished"
    STOPPED = "stopped"


# =============================================================================
# Definitions
# =============================================================================


class SurveyOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class ShowIf(BaseModel):
    """Show a question only when ``question_id`` was answered with one of ``values``."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    values: tuple[str, ...]


class SurveyQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    text: str
    required: bool = True
    options: tuple[SurveyOption, ...] = ()
    max_selections: int | None = None
    show_if: ShowIf | None = None
    placeholder: str | None = None


class SurveyDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    version: str
    type: SurveyType
    title: str
    description: str | None = None
    questions: tuple[SurveyQuestion, ...]
    show_progress: bool = False
    estimated_time: str = ""


# =============================================================================
# Runtime state
# =============================================================================


class SurveyState(BaseModel):
    """In-progress answers, autosaved so a closed survey can be resumed."""

    model_config = ConfigDict(frozen=True)

    survey_id: str
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    current_question_index: int = 0
    started_at: datetime
    last_updated_at: datetime


class SurveySubmission(BaseModel):
    survey_id: str
    answers: dict[str, AnswerValue]
    trigger: SurveyTrigger
    submitted_at: datetime
    nps_score: int | None = None
    friction_tags: list[str] = Field(default_factory=list)
    goal_type: str | None = None


class SurveyHistoryEntry(BaseModel):
    completed_at: datetime
    trigger: SurveyTrigger


class SessionStats(BaseModel):
    """Practice-session history used to decide when to ask for feedback."""

    completed_at: list[datetime] = Field(default_factory=list)  # inside the rolling window
    consecutive_stopped_sessions: int = 0
    last_session_completed_at: datetime | None = None
    last_session_duration_sec: float | None = None
    last_session_completion_reason: CompletionReason | None = None

    @property
    def completed_sessions(self) -> int:
        return len(self.completed_at)
