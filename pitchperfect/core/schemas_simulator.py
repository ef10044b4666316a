"""Pydantic models for interview and sales simulations."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SimulationMode(str, Enum):
    INTERVIEW = "interview"  # counterpart is the interviewer
    SALES = "sales"  # counterpart is the client


class SimulationStatus(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    COMPLETED = "completed"


class TurnRole(str, Enum):
    USER = "user"
    COUNTERPART = "counterpart"


class TurnAssessment(BaseModel):
    """Assessment of the user's previous answer."""

    model_config = ConfigDict(frozen=True)

    strategic_score: int | None = None
    evidence_used: list[str] = Field(default_factory=list)
    missed_opportunities: list[str] = Field(default_factory=list)
    suggested_reframe: str | None = None


class SimulationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    turn_number: int
    role: TurnRole
    content: str
    timestamp: datetime
    assessment: TurnAssessment | None = None
    intent: str | None = None  # question type (interview) or client intent (sales)


class SimulationConfig(BaseModel):
    """A simulation record as loaded from the database."""

    id: str
    user_id: str
    mode: SimulationMode
    # Interview: job_title, company_name, job_description, cv_content,
    # match_gaps, key_evidence. Sales: industry, product_description,
    # client_role, client_personality, objection_level, call_goal, custom_goal.
    context: dict[str, Any] = Field(default_factory=dict)


class CounterpartReply(BaseModel):
    """Normalized counterpart turn for either simulation mode."""

    message: str
    intent: str | None = None
    targeted_requirement: str | None = None
    assessment: TurnAssessment | None = None
    final_question_hint: bool = False
    stage: str | None = None
    interest_level: int | None = None
    objection: dict[str, Any] | None = None


class SimulatorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SimulationStatus = SimulationStatus.INACTIVE
    turns: tuple[SimulationTurn, ...] = ()
    is_processing: bool = False
    error: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_seconds: int | None = None
    question_number: int = 0
    current_stage: str | None = None
    final_question_hint: bool = False
    summary: dict[str, Any] | None = None
