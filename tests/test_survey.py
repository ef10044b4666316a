"""Tests for the survey engine."""

import json
from datetime import datetime, timezone

import pytest

from pitchperfect.core.schemas_survey import SurveyTrigger
from pitchperfect.core.survey import SurveyEngine, visible_questions
from pitchperfect.core.survey_definitions import (
    EXPERIENCE_SURVEY_V1,
    PULSE_SURVEY_V1,
    get_survey_by_id,
)
from pitchperfect.core.survey_triggers import HISTORY_KEY, has_completed_survey

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _engine(storage, definition=PULSE_SURVEY_V1, trigger=SurveyTrigger.AFTER_COMPLETE):
    return SurveyEngine(definition, storage, trigger, clock=lambda: NOW)


def _ids(questions):
    return [q.id for q in questions]


class TestVisibleQuestions:
    def test_other_follow_up_hidden_until_selected(self):
        questions = PULSE_SURVEY_V1.questions

        assert "q2a_goal_other" not in _ids(visible_questions({}, questions))
        assert "q2a_goal_other" not in _ids(
            visible_questions({"q2_goal": "sales_demo"}, questions)
        )
        assert "q2a_goal_other" in _ids(visible_questions({"q2_goal": "other"}, questions))

    def test_multi_select_parent(self):
        questions = PULSE_SURVEY_V1.questions

        visible = visible_questions({"q3_frustrations": ["ai_generic", "other"]}, questions)

        assert "q3a_frustration_other" in _ids(visible)

    def test_multiple_trigger_values(self):
        questions = EXPERIENCE_SURVEY_V1.questions

        for answer, shown in (("yes", False), ("partially", True), ("no", True)):
            visible = visible_questions({"q4_achieved_goal": answer}, questions)
            assert ("q4a_what_missing" in _ids(visible)) is shown


class TestNavigation:
    def test_initial_state(self, storage):
        engine = _engine(storage)

        assert engine.current_question.id == "q1_usefulness"
        assert engine.is_first is True
        assert engine.can_proceed is False
        assert engine.progress == pytest.approx(25.0)

    def test_next_and_previous(self, storage):
        engine = _engine(storage)
        engine.set_answer("q1_usefulness", 4)

        engine.go_to_next()
        assert engine.current_question.id == "q2_goal"

        engine.go_to_previous()
        engine.go_to_previous()
        assert engine.current_question.id == "q1_usefulness"

    def test_next_stops_at_last(self, storage):
        engine = _engine(storage)
        for _ in range(10):
            engine.go_to_next()

        assert engine.is_last is True
        assert engine.current_question.id == "q4_improve_first"

    def test_optional_question_can_proceed(self, storage):
        engine = _engine(storage, EXPERIENCE_SURVEY_V1, SurveyTrigger.RETENTION)
        for _ in range(30):
            engine.go_to_next()

        assert engine.current_question.id == "q14_pricing"
        assert engine.can_proceed is True

    def test_index_clamped_when_questions_disappear(self, storage):
        engine = _engine(storage)
        engine.set_answer("q2_goal", "other")
        engine.set_answer("q3_frustrations", ["other"])
        for _ in range(10):
            engine.go_to_next()
        assert engine.current_question.id == "q4_improve_first"
        assert len(engine.visible_questions) == 6

        engine.set_answer("q2_goal", "investor_pitch")
        engine.set_answer("q3_frustrations", ["ai_generic"])

        assert len(engine.visible_questions) == 4
        assert engine.state.current_question_index == 3
        assert engine.current_question is not None


class TestAnswerValidation:
    def test_unknown_question(self, storage):
        with pytest.raises(KeyError):
            _engine(storage).set_answer("q99", "x")

    @pytest.mark.parametrize("value", [0, 6, "five", True])
    def test_rating_out_of_range(self, storage, value):
        with pytest.raises(ValueError):
            _engine(storage).set_answer("q1_usefulness", value)

    def test_nps_range(self, storage):
        engine = _engine(storage, EXPERIENCE_SURVEY_V1)

        engine.set_answer("q12_nps", 0)
        engine.set_answer("q12_nps", 10)
        with pytest.raises(ValueError):
            engine.set_answer("q12_nps", 11)

    def test_unknown_option(self, storage):
        with pytest.raises(ValueError):
            _engine(storage).set_answer("q2_goal", "world_domination")

    def test_max_selections(self, storage):
        engine = _engine(storage, EXPERIENCE_SURVEY_V1)

        engine.set_answer("q11_priorities", ["templates", "voice_metrics"])
        with pytest.raises(ValueError):
            engine.set_answer("q11_priorities", ["templates", "voice_metrics", "onboarding"])

    def test_textarea_requires_text(self, storage):
        with pytest.raises(ValueError):
            _engine(storage).set_answer("q4_improve_first", ["not", "text"])


class TestPersistence:
    def test_progress_autosaved_and_resumed(self, storage):
        engine = _engine(storage)
        engine.set_answer("q1_usefulness", 5)
        engine.go_to_next()

        saved = json.loads(storage.get_item(engine.storage_key))
        assert saved["answers"] == {"q1_usefulness": 5}

        resumed = _engine(storage)
        assert resumed.answers == {"q1_usefulness": 5}
        assert resumed.current_question.id == "q2_goal"

    def test_corrupt_saved_state_ignored(self, storage):
        storage.set_item("pitchperfect_survey_pitchperfect_pulse_v1", '{"answers": 12}')

        engine = _engine(storage)

        assert engine.answers == {}
        assert engine.state.current_question_index == 0

    def test_dismiss_keeps_progress(self, storage):
        engine = _engine(storage)
        engine.set_answer("q1_usefulness", 3)

        engine.dismiss()

        assert storage.get_item(engine.storage_key) is not None


class TestSubmit:
    def test_submission_fields(self, storage):
        engine = _engine(storage, EXPERIENCE_SURVEY_V1, SurveyTrigger.RETENTION)
        engine.set_answer("q1_use_case", "job_interview")
        engine.set_answer("q10_barriers", ["price", "too_many_steps"])
        engine.set_answer("q12_nps", 9)

        submission = engine.submit()

        assert submission.survey_id == "pitchperfect_experience_v1"
        assert submission.trigger == SurveyTrigger.RETENTION
        assert submission.nps_score == 9
        assert submission.goal_type == "job_interview"
        assert submission.friction_tags == ["price", "too_many_steps"]
        assert submission.submitted_at == NOW

    def test_pulse_goal_and_frustrations(self, storage):
        engine = _engine(storage)
        engine.set_answer("q2_goal", "sales_demo")
        engine.set_answer("q3_frustrations", ["timer_not_helpful"])

        submission = engine.submit()

        assert submission.goal_type == "sales_demo"
        assert submission.friction_tags == ["timer_not_helpful"]
        assert submission.nps_score is None

    def test_submit_records_history_and_clears_progress(self, storage):
        engine = _engine(storage)
        engine.set_answer("q1_usefulness", 4)

        engine.submit()

        assert has_completed_survey(storage, "pitchperfect_pulse_v1")
        assert storage.get_item(engine.storage_key) is None
        history = json.loads(storage.get_item(HISTORY_KEY))
        assert history["pitchperfect_pulse_v1"]["trigger"] == "after_complete"

    def test_second_submit_ignored(self, storage):
        engine = _engine(storage)

        assert engine.submit() is not None
        assert engine.submit() is None

    def test_no_autosave_after_submit(self, storage):
        engine = _engine(storage)
        engine.submit()

        engine.go_to_next()

        assert storage.get_item(engine.storage_key) is None


def test_get_survey_by_id():
    assert get_survey_by_id("pitchperfect_pulse_v1") is PULSE_SURVEY_V1
    assert get_survey_by_id("missing") is None
