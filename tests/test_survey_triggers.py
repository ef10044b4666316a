"""Tests for survey trigger rules and session stats."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from pitchperfect.core.schemas_survey import CompletionReason, SurveyTrigger, SurveyType
from pitchperfect.core.survey_triggers import (
    HISTORY_KEY,
    SESSION_STATS_KEY,
    SurveyTriggers,
    get_session_stats,
    get_survey_history,
    has_completed_survey,
    record_survey_completion,
    should_show_experience_survey,
    should_show_pulse_survey,
    update_session_stats,
)

NOW = datetime(2026, 3, 15, 18, 0, tzinfo=timezone.utc)

FINISHED = CompletionReason.FINISHED
STOPPED = CompletionReason.STOPPED


class TestSessionStats:
    def test_empty_storage(self, storage):
        stats = get_session_stats(storage, now=NOW)

        assert stats.completed_sessions == 0
        assert stats.consecutive_stopped_sessions == 0

    def test_finished_resets_stop_streak(self, storage):
        update_session_stats(storage, 30, STOPPED, now=NOW)
        update_session_stats(storage, 30, STOPPED, now=NOW)
        stats = update_session_stats(storage, 45, FINISHED, now=NOW)

        assert stats.consecutive_stopped_sessions == 0
        assert stats.completed_sessions == 1
        assert stats.last_session_duration_sec == 45
        assert stats.last_session_completion_reason == FINISHED

    def test_stopped_does_not_count_as_completed(self, storage):
        stats = update_session_stats(storage, 10, STOPPED, now=NOW)

        assert stats.completed_sessions == 0
        assert stats.consecutive_stopped_sessions == 1

    def test_old_completions_pruned(self, storage):
        update_session_stats(storage, 60, FINISHED, now=NOW - timedelta(days=20))
        update_session_stats(storage, 60, FINISHED, now=NOW - timedelta(days=3))

        stats = get_session_stats(storage, now=NOW)

        assert stats.completed_sessions == 1

    def test_window_override(self, storage):
        update_session_stats(storage, 60, FINISHED, now=NOW - timedelta(days=20))

        assert get_session_stats(storage, now=NOW, window_days=30).completed_sessions == 1

    def test_corrupt_stats_reset(self, storage):
        storage.set_item(SESSION_STATS_KEY, json.dumps({"consecutive_stopped_sessions": "many"}))

        stats = get_session_stats(storage, now=NOW)

        assert stats.consecutive_stopped_sessions == 0


class TestHistory:
    def test_record_and_check(self, storage):
        record_survey_completion(storage, "pitchperfect_pulse_v1", SurveyTrigger.MANUAL, NOW)

        assert has_completed_survey(storage, "pitchperfect_pulse_v1")
        assert not has_completed_survey(storage, "pitchperfect_experience_v1")
        assert get_survey_history(storage)["pitchperfect_pulse_v1"].completed_at == NOW

    def test_malformed_entries_skipped(self, storage):
        storage.set_item(
            HISTORY_KEY,
            json.dumps(
                {
                    "broken": {"trigger": "manual"},
                    "pitchperfect_pulse_v1": {
                        "completed_at": NOW.isoformat(),
                        "trigger": "after_complete",
                    },
                }
            ),
        )

        assert list(get_survey_history(storage)) == ["pitchperfect_pulse_v1"]


class TestRules:
    def test_pulse_needs_minimum_duration(self, storage):
        assert should_show_pulse_survey(storage, 19) is False
        assert should_show_pulse_survey(storage, 20) is True
        assert should_show_pulse_survey(storage, 5, min_duration_sec=5) is True

    def test_pulse_only_once(self, storage):
        record_survey_completion(storage, "pitchperfect_pulse_v1", SurveyTrigger.AFTER_COMPLETE, NOW)

        assert should_show_pulse_survey(storage, 120) is False

    def test_experience_after_completed_sessions(self, storage):
        for days_ago in (1, 2):
            update_session_stats(storage, 60, FINISHED, now=NOW - timedelta(days=days_ago))
        assert should_show_experience_survey(storage, now=NOW) is False

        update_session_stats(storage, 60, FINISHED, now=NOW)
        assert should_show_experience_survey(storage, now=NOW) is True

    def test_experience_after_stop_streak(self, storage):
        update_session_stats(storage, 5, STOPPED, now=NOW)
        assert should_show_experience_survey(storage, now=NOW) is False

        update_session_stats(storage, 5, STOPPED, now=NOW)
        assert should_show_experience_survey(storage, now=NOW) is True

    def test_experience_only_once(self, storage):
        for _ in range(3):
            update_session_stats(storage, 60, FINISHED, now=NOW)
        record_survey_completion(storage, "pitchperfect_experience_v1", SurveyTrigger.RETENTION, NOW)

        assert should_show_experience_survey(storage, now=NOW) is False


class TestSurveyTriggers:
    @pytest.fixture
    def triggers(self, storage):
        return SurveyTriggers(storage, clock=lambda: NOW)

    def test_pulse_after_first_long_session(self, triggers):
        decision = triggers.on_session_complete(90, FINISHED)

        assert decision.survey_type == SurveyType.PULSE
        assert decision.trigger == SurveyTrigger.AFTER_COMPLETE
        assert triggers.active == decision

    def test_short_session_shows_nothing(self, triggers):
        assert triggers.on_session_complete(5, FINISHED) is None
        assert triggers.active is None

    def test_nothing_while_survey_open(self, triggers, storage):
        triggers.on_session_complete(90, FINISHED)

        assert triggers.on_session_complete(90, FINISHED) is None
        assert get_session_stats(storage, now=NOW).completed_sessions == 2

    def test_abandoned_after_stop_streak(self, triggers):
        assert triggers.on_session_complete(8, STOPPED) is None

        decision = triggers.on_session_complete(8, STOPPED)

        assert decision.survey_type == SurveyType.EXPERIENCE
        assert decision.trigger == SurveyTrigger.ABANDONED

    def test_retention_once_pulse_done(self, triggers, storage):
        record_survey_completion(storage, "pitchperfect_pulse_v1", SurveyTrigger.AFTER_COMPLETE, NOW)

        decisions = [triggers.on_session_complete(60, FINISHED) for _ in range(3)]

        assert decisions[:2] == [None, None]
        assert decisions[2].survey_type == SurveyType.EXPERIENCE
        assert decisions[2].trigger == SurveyTrigger.RETENTION

    def test_close_allows_next_survey(self, triggers, storage):
        triggers.on_session_complete(60, FINISHED)
        triggers.close_survey()
        record_survey_completion(storage, "pitchperfect_pulse_v1", SurveyTrigger.AFTER_COMPLETE, NOW)

        triggers.on_session_complete(60, FINISHED)
        decision = triggers.on_session_complete(60, FINISHED)

        assert decision.survey_type == SurveyType.EXPERIENCE
