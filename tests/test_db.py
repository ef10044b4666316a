"""Tests for Supabase-backed persistence."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from pitchperfect.core.schemas_coach import (
    AnalysisResults,
    ContentAnalysis,
    ContentCoverage,
    DeliveryMetrics,
    PromptMode,
)
from pitchperfect.core.schemas_simulator import SimulationMode, SimulationTurn, TurnRole
from pitchperfect.core.schemas_wizard import (
    HookStyle,
    ScriptArtifact,
    SpeechBlock,
    WizardSession,
)
from pitchperfect.db import coach_analysis, saved_pitches, simulations, suggestion_analytics
from tests.helpers import mock_supabase

NOW = datetime(2026, 2, 1, tzinfo=timezone.utc)


def _artifact():
    return ScriptArtifact(
        blocks=(SpeechBlock(time_start="0:00", time_end="0:30", title="Hook", content="Hi"),),
        target_word_count=75,
        actual_word_count=72,
        full_script="Hi",
        hook_style=HookStyle.QUESTION,
        duration_minutes=0.5,
    )


def _results():
    return AnalysisResults(
        transcript="We help cats.",
        delivery_metrics=DeliveryMetrics(wpm=140, filler_count=2),
        content_analysis=ContentAnalysis(score=6, recommendations=["Add traction"]),
        content_coverage=ContentCoverage(problem=True),
        processed_at=NOW,
        prompt_mode=PromptMode.CUE_CARDS,
        duration_seconds=58,
    )


class TestSavedPitches:
    def test_insert_new_pitch(self):
        sb = mock_supabase([MagicMock(data=[{"id": "p-1"}])])
        session = WizardSession(idea="Cat camera", audience_id="investors")
        with patch.object(saved_pitches, "get_supabase", return_value=sb):
            row = saved_pitches.save_pitch("u-1", session, _artifact())

        assert row == {"id": "p-1"}
        sb.table.assert_called_with("saved_pitches")
        inserted = sb.table.return_value.insert.call_args.args[0]
        assert inserted["user_id"] == "u-1"
        assert inserted["hook_style"] == "question"
        assert inserted["meta"]["actualWordCount"] == 72
        assert inserted["speech_blocks"][0]["title"] == "Hook"

    def test_update_existing_pitch(self):
        sb = mock_supabase([MagicMock(data=[{"id": "p-1"}])])
        with patch.object(saved_pitches, "get_supabase", return_value=sb):
            saved_pitches.save_pitch("u-1", WizardSession(idea="x"), _artifact(), pitch_id="p-1")

        chain = sb.table.return_value
        chain.update.assert_called_once()
        chain.insert.assert_not_called()
        chain.eq.assert_any_call("id", "p-1")
        chain.eq.assert_any_call("user_id", "u-1")

    def test_save_failure_returns_none(self):
        sb = mock_supabase([Exception("db down")])
        with patch.object(saved_pitches, "get_supabase", return_value=sb):
            assert saved_pitches.save_pitch("u-1", WizardSession(idea="x"), _artifact()) is None

    def test_list_failure_returns_empty(self):
        sb = mock_supabase([Exception("db down")])
        with patch.object(saved_pitches, "get_supabase", return_value=sb):
            assert saved_pitches.list_pitches("u-1") == []


class TestCoachAnalysis:
    def test_save(self):
        sb = mock_supabase([MagicMock(data=[{"id": "a-1"}])])
        with patch.object(coach_analysis, "get_supabase", return_value=sb):
            row = coach_analysis.save_coach_analysis("u-1", _results(), pitch_id="p-1")

        assert row == {"id": "a-1"}
        inserted = sb.table.return_value.insert.call_args.args[0]
        assert inserted["overall_score"] == 6
        assert inserted["prompt_mode"] == "cue_cards"
        assert inserted["recommendations"] == ["Add traction"]
        assert inserted["delivery_metrics"]["wpm"] == 140

    def test_delete_failure(self):
        sb = mock_supabase([Exception("db down")])
        with patch.object(coach_analysis, "get_supabase", return_value=sb):
            assert coach_analysis.delete_coach_analysis("a-1", "u-1") is False


class TestSimulations:
    def test_insert_counterpart_turn_with_intent(self):
        sb = mock_supabase([MagicMock(data=[{"id": "t-1"}])])
        turn = SimulationTurn(
            id="t-1",
            turn_number=3,
            role=TurnRole.COUNTERPART,
            content="What is your budget?",
            timestamp=NOW,
            intent="objection",
        )
        with patch.object(simulations, "get_supabase", return_value=sb):
            simulations.insert_turn(SimulationMode.SALES, "sim-1", turn)

        sb.table.assert_called_with("sales_simulation_turns")
        inserted = sb.table.return_value.insert.call_args.args[0]
        assert inserted == {
            "simulation_id": "sim-1",
            "turn_number": 3,
            "role": "client",
            "content": "What is your budget?",
            "intent": "objection",
        }

    def test_turn_insert_failure_does_not_raise(self):
        sb = mock_supabase([Exception("db down")])
        turn = SimulationTurn(
            id="t-1", turn_number=1, role=TurnRole.USER, content="Hi", timestamp=NOW
        )
        with patch.object(simulations, "get_supabase", return_value=sb):
            assert simulations.insert_turn(SimulationMode.INTERVIEW, "sim-1", turn) is None

    def test_mark_completed(self):
        sb = mock_supabase()
        with patch.object(simulations, "get_supabase", return_value=sb):
            simulations.mark_completed(SimulationMode.INTERVIEW, "sim-1", 240)

        update = sb.table.return_value.update.call_args.args[0]
        assert update["status"] == "completed"
        assert update["duration_seconds"] == 240

    def test_list_turns_ordered(self):
        sb = mock_supabase([MagicMock(data=[{"turn_number": 1}])])
        with patch.object(simulations, "get_supabase", return_value=sb):
            assert simulations.list_turns(SimulationMode.INTERVIEW, "sim-1") == [{"turn_number": 1}]

        sb.table.return_value.order.assert_called_with("turn_number")


def test_track_selection_swallows_errors():
    sb = mock_supabase([Exception("db down")])
    with patch.object(suggestion_analytics, "get_supabase", return_value=sb):
        suggestion_analytics.track_suggestion_selection("problem", "Too slow")

    inserted = sb.table.return_value.insert.call_args.args[0]
    assert inserted == {"suggestion_type": "problem", "suggestion_text": "Too slow"}
