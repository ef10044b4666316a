"""Configuration management for PitchPerfect."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")
    SUPABASE_ANON_KEY: str | None = Field(
        default=None, description="Publishable key for edge function calls"
    )

    # OpenAI configuration (content analysis only)
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o", description="Model for pitch content analysis")

    # Environment
    PITCH_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")

    # Remote calls
    EDGE_FUNCTION_TIMEOUT: float = Field(
        default=60.0, description="Timeout in seconds for edge function calls"
    )

    # Local persistence
    LOCAL_STORAGE_PATH: str = Field(
        default="~/.pitchperfect/storage.json",
        description="JSON file used as the device key-value store",
    )

    # Script generation
    SPEAKING_RATE_WPM: int = Field(default=150, description="Speaking rate used for word targets")
    WORD_COUNT_TOLERANCE: float = Field(
        default=0.10, description="Accepted deviation from the target word count"
    )

    # Document upload
    MAX_DOCUMENT_BYTES: int = Field(
        default=10 * 1024 * 1024, description="Max document upload size in bytes"
    )

    # Suggestion regeneration
    REGENERATE_MAX_ATTEMPTS: int = Field(default=5, description="Regenerations per window")
    REGENERATE_WINDOW_SECONDS: float = Field(default=60.0, description="Rolling window length")
    REGENERATE_COOLDOWN_SECONDS: float = Field(
        default=30.0, description="Cooldown after the window is exhausted"
    )
    BACKOFF_BASE_MS: int = Field(default=1000, description="Initial retry delay")
    BACKOFF_MAX_MS: int = Field(default=30000, description="Retry delay cap")
    BACKOFF_JITTER: float = Field(default=0.25, description="Relative jitter applied to delays")
    SUGGESTION_MAX_RETRIES: int = Field(
        default=3, description="Consecutive failures before showing fallback suggestions"
    )

    # Wizard API
    WIZARD_SESSION_TTL_SECONDS: float = Field(
        default=3600.0, description="Idle time before an unsaved wizard session is dropped"
    )

    # Survey triggers
    PULSE_SURVEY_MIN_DURATION_SEC: int = Field(
        default=20, description="Minimum session length before the pulse survey"
    )
    EXPERIENCE_SURVEY_MIN_COMPLETED: int = Field(
        default=3, description="Completed sessions in window that trigger the experience survey"
    )
    EXPERIENCE_SURVEY_MIN_STOPPED: int = Field(
        default=2, description="Consecutive stopped sessions that trigger the experience survey"
    )
    SESSION_STATS_WINDOW_DAYS: int = Field(
        default=14, description="Rolling window for completed session counts"
    )

    @property
    def edge_function_key(self) -> str:
        return self.SUPABASE_ANON_KEY or self.SUPABASE_SERVICE_ROLE_KEY


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
