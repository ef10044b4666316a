"""Pydantic models for hosted service requests and responses."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Generation
# =============================================================================


class SuggestionType(str, Enum):
    """Kinds of content the generation service can suggest."""

    PROBLEM = "problem"
    PERSONA = "persona"
    PITCH = "pitch"
    PITCHES = "pitches"
    BUSINESS_MODEL = "businessModel"
    AUDIENCE = "audience"
    SCRIPT = "script"


class GenerationRequest(BaseModel):
    type: SuggestionType
    idea: str
    context: dict[str, Any] = Field(default_factory=dict)


class GeneratedScript(BaseModel):
    """Result of a ``script`` generation request."""

    model_config = ConfigDict(populate_by_name=True)

    script: str
    word_count: int | None = Field(default=None, alias="wordCount")
    estimated_duration: float | None = Field(default=None, alias="estimatedDuration")
    demo_actions: list[str] = Field(default_factory=list, alias="demoActions")


# =============================================================================
# Transcription
# =============================================================================


class TranscriptionWord(BaseModel):
    text: str
    start: float
    end: float
    type: str = "word"


class TranscriptionResult(BaseModel):
    text: str
    words: list[TranscriptionWord] = Field(default_factory=list)
    language_code: str | None = None


# =============================================================================
# Scraping
# =============================================================================


class ScrapedProjectData(BaseModel):
    name: str | None = None
    problem: str | None = None
    solution: str | None = None
    audience: str | None = None


class ScrapeResult(BaseModel):
    success: bool
    error: str | None = None
    data: ScrapedProjectData | None = None
    raw: dict[str, Any] | None = None  # {markdown, metadata}


# =============================================================================
# Documents
# =============================================================================


class DocumentParseResult(BaseModel):
    success: bool
    error: str | None = None
    data: ScrapedProjectData | None = None
    filename: str | None = None
    file_size: int | None = Field(default=None, alias="fileSize")

    model_config = ConfigDict(populate_by_name=True)
