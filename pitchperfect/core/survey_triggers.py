"""
Survey trigger rules and the local records they depend on.

Trigger decisions only read counters kept in device-local storage:
- the survey history (which surveys were completed, and how they were opened)
- practice-session stats (completions in a rolling window, consecutive stops)

Nothing here renders a survey; ``SurveyTriggers`` only decides which one to
open after a practice session ends.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import BaseModel, ValidationError

from pitchperfect.core.local_storage import KeyValueStorage, read_json, write_json
from pitchperfect.core.logging import get_logger, log_with_context
from pitchperfect.core.schemas_survey import (
    CompletionReason,
    SessionStats,
    SurveyHistoryEntry,
    SurveyTrigger,
    SurveyType,
)
from pitchperfect.core.survey_definitions import SURVEYS

logger = get_logger(__name__)

HISTORY_KEY = "pitchperfect_survey_history"
SESSION_STATS_KEY = "pitchperfect_session_stats"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _threshold(name: str, override: float | None) -> float:
    if override is not None:
        return override
    from pitchperfect.core.config import get_settings

    return getattr(get_settings(), name)


# =============================================================================
# Survey history
# =============================================================================


def get_survey_history(storage: KeyValueStorage) -> dict[str, SurveyHistoryEntry]:
    """Completed surveys keyed by survey id. Malformed entries are skipped."""
    data = read_json(storage, HISTORY_KEY)
    if not isinstance(data, dict):
        return {}

    history = {}
    for survey_id, entry in data.items():
        try:
            history[survey_id] = SurveyHistoryEntry.model_validate(entry)
        except ValidationError:
            logger.debug(f"Ignoring malformed survey history entry for {survey_id}")
    return history


def record_survey_completion(
    storage: KeyValueStorage,
    survey_id: str,
    trigger: SurveyTrigger,
    completed_at: datetime,
) -> None:
    history = get_survey_history(storage)
    history[survey_id] = SurveyHistoryEntry(completed_at=completed_at, trigger=trigger)
    write_json(
        storage,
        HISTORY_KEY,
        {sid: entry.model_dump(mode="json") for sid, entry in history.items()},
    )


def has_completed_survey(storage: KeyValueStorage, survey_id: str) -> bool:
    return survey_id in get_survey_history(storage)


# =============================================================================
# Session stats
# =============================================================================


def get_session_stats(
    storage: KeyValueStorage,
    now: datetime | None = None,
    window_days: int | None = None,
) -> SessionStats:
    """
    Load session stats, dropping completions older than the rolling window.

    Missing or corrupt stats read as a fresh ``SessionStats``.
    """
    data = read_json(storage, SESSION_STATS_KEY)
    try:
        stats = SessionStats.model_validate(data) if isinstance(data, dict) else SessionStats()
    except ValidationError:
        logger.warning("Ignoring corrupt session stats")
        stats = SessionStats()

    now = now or _utcnow()
    cutoff = now - timedelta(days=_threshold("SESSION_STATS_WINDOW_DAYS", window_days))
    stats.completed_at = [ts for ts in stats.completed_at if ts > cutoff]
    return stats


def update_session_stats(
    storage: KeyValueStorage,
    duration_sec: float,
    reason: CompletionReason,
    now: datetime | None = None,
    window_days: int | None = None,
) -> SessionStats:
    """Record the end of a practice session. Call once per session."""
    now = now or _utcnow()
    stats = get_session_stats(storage, now=now, window_days=window_days)

    if reason == CompletionReason.FINISHED:
        stats.completed_at.append(now)
        stats.consecutive_stopped_sessions = 0
    else:
        stats.consecutive_stopped_sessions += 1

    stats.last_session_completed_at = now
    stats.last_session_duration_sec = duration_sec
    stats.last_session_completion_reason = reason
    write_json(storage, SESSION_STATS_KEY, stats.model_dump(mode="json"))
    return stats


# =============================================================================
# Trigger rules
# =============================================================================


def should_show_pulse_survey(
    storage: KeyValueStorage,
    duration_sec: float,
    min_duration_sec: float | None = None,
) -> bool:
    if duration_sec < _threshold("PULSE_SURVEY_MIN_DURATION_SEC", min_duration_sec):
        return False
    return not has_completed_survey(storage, SURVEYS[SurveyType.PULSE].id)


def should_show_experience_survey(
    storage: KeyValueStorage,
    now: datetime | None = None,
    min_completed: int | None = None,
    min_stopped: int | None = None,
) -> bool:
    if has_completed_survey(storage, SURVEYS[SurveyType.EXPERIENCE].id):
        return False

    stats = get_session_stats(storage, now=now)
    if stats.completed_sessions >= _threshold("EXPERIENCE_SURVEY_MIN_COMPLETED", min_completed):
        return True
    return stats.consecutive_stopped_sessions >= _threshold(
        "EXPERIENCE_SURVEY_MIN_STOPPED", min_stopped
    )


class SurveyDecision(BaseModel):
    survey_type: SurveyType
    trigger: SurveyTrigger


class SurveyTriggers:
    """Tracks the open survey and decides what to offer after each session."""

    def __init__(self, storage: KeyValueStorage, clock: Clock = _utcnow):
        self.storage = storage
        self._clock = clock
        self.active: SurveyDecision | None = None

    def open_survey(self, survey_type: SurveyType, trigger: SurveyTrigger) -> SurveyDecision:
        self.active = SurveyDecision(survey_type=survey_type, trigger=trigger)
        return self.active

    def close_survey(self) -> None:
        self.active = None

    def on_session_complete(
        self, duration_sec: float, reason: CompletionReason
    ) -> SurveyDecision | None:
        """
        Update stats for a finished or stopped session, then pick a survey.

        Returns:
            The survey to open, or None when nothing should be shown or a
            survey is already open
        """
        now = self._clock()
        update_session_stats(self.storage, duration_sec, reason, now=now)

        if self.active is not None:
            return None

        if reason == CompletionReason.FINISHED and should_show_pulse_survey(
            self.storage, duration_sec
        ):
            decision = self.open_survey(SurveyType.PULSE, SurveyTrigger.AFTER_COMPLETE)
        elif should_show_experience_survey(self.storage, now=now):
            trigger = (
                SurveyTrigger.ABANDONED
                if reason == CompletionReason.STOPPED
                else SurveyTrigger.RETENTION
            )
            decision = self.open_survey(SurveyType.EXPERIENCE, trigger)
        else:
            return None

        log_with_context(
            logger,
            logging.DEBUG,
            "Survey triggered",
            survey_type=decision.survey_type.value,
            trigger=decision.trigger.value,
        )
        return decision
