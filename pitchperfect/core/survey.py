"""
Survey engine.

Walks a survey definition question by question. Questions with a ``show_if``
rule appear only once their parent question has a matching answer, so the
visible list can grow or shrink as answers change; the current index always
points into the visible list. In-progress state is autosaved to local
storage and cleared on submit.
"""

from datetime import datetime, timezone
from typing import Callable, Sequence

from pydantic import ValidationError

from pitchperfect.core.local_storage import KeyValueStorage, read_json, write_json
from pitchperfect.core.logging import get_logger, track_event
from pitchperfect.core.schemas_survey import (
    AnswerValue,
    QuestionType,
    SurveyDefinition,
    SurveyQuestion,
    SurveyState,
    SurveySubmission,
    SurveyTrigger,
)
from pitchperfect.core.store import Store
from pitchperfect.core.survey_triggers import get_session_stats, record_survey_completion

logger = get_logger(__name__)

STORAGE_KEY_PREFIX = "pitchperfect_survey_"

NPS_QUESTION = "q12_nps"
GOAL_QUESTIONS = ("q1_use_case", "q2_goal")
FRICTION_QUESTIONS = ("q3_frustrations", "q10_barriers")

ANSWER_RANGES = {
    QuestionType.RATING: (1, 5),
    QuestionType.NPS: (0, 10),
}

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_answered(answer: AnswerValue | None) -> bool:
    if answer is None:
        return False
    if isinstance(answer, str):
        return answer.strip() != ""
    if isinstance(answer, list):
        return len(answer) > 0
    return True


def visible_questions(
    answers: dict[str, AnswerValue], questions: Sequence[SurveyQuestion]
) -> list[SurveyQuestion]:
    """Questions whose ``show_if`` rule (if any) is satisfied by ``answers``."""
    visible = []
    for question in questions:
        rule = question.show_if
        if rule is None:
            visible.append(question)
            continue

        parent = answers.get(rule.question_id)
        if not _is_answered(parent):
            continue
        if isinstance(parent, list):
            if any(value in parent for value in rule.values):
                visible.append(question)
        elif parent in rule.values:
            visible.append(question)
    return visible


class SurveyEngine(Store[SurveyState]):
    """Answer collection and navigation for one survey."""

    def __init__(
        self,
        definition: SurveyDefinition,
        storage: KeyValueStorage,
        trigger: SurveyTrigger,
        clock: Clock = _utcnow,
    ):
        self.definition = definition
        self.storage = storage
        self.trigger = trigger
        self._clock = clock
        self.is_submitting = False
        self.is_submitted = False
        super().__init__(self._load_state())
        self.subscribe(lambda new, _old: self._autosave(new))
        self._autosave(self.state)

        stats = get_session_stats(storage, now=clock())
        track_event(
            logger,
            "survey_shown",
            survey_id=definition.id,
            trigger=trigger.value,
            completed_sessions_14d=stats.completed_sessions,
        )

    @property
    def storage_key(self) -> str:
        return f"{STORAGE_KEY_PREFIX}{self.definition.id}"

    def _load_state(self) -> SurveyState:
        saved = read_json(self.storage, self.storage_key)
        if isinstance(saved, dict):
            try:
                state = SurveyState.model_validate(saved)
            except ValidationError:
                logger.warning(f"Discarding corrupt saved state for {self.definition.id}")
            else:
                if state.survey_id == self.definition.id:
                    return state.model_copy(
                        update={"current_question_index": self._clamp(state)}
                    )

        now = self._clock()
        return SurveyState(survey_id=self.definition.id, started_at=now, last_updated_at=now)

    def _autosave(self, state: SurveyState) -> None:
        if self.is_submitted:
            return
        data = state.model_dump(mode="json")
        data["last_updated_at"] = self._clock().isoformat()
        write_json(self.storage, self.storage_key, data)

    def _clamp(self, state: SurveyState) -> int:
        count = len(visible_questions(state.answers, self.definition.questions))
        return max(0, min(state.current_question_index, count - 1))

    # -------------------------------------------------------------------------
    # Derived view
    # -------------------------------------------------------------------------

    @property
    def answers(self) -> dict[str, AnswerValue]:
        return self.state.answers

    @property
    def visible_questions(self) -> list[SurveyQuestion]:
        return visible_questions(self.state.answers, self.definition.questions)

    @property
    def current_question(self) -> SurveyQuestion | None:
        visible = self.visible_questions
        index = self.state.current_question_index
        return visible[index] if 0 <= index < len(visible) else None

    @property
    def progress(self) -> float:
        """Percentage through the visible questions, counting the current one."""
        visible = self.visible_questions
        if not visible:
            return 0.0
        return (self.state.current_question_index + 1) / len(visible) * 100

    @property
    def is_first(self) -> bool:
        return self.state.current_question_index == 0

    @property
    def is_last(self) -> bool:
        return self.state.current_question_index == len(self.visible_questions) - 1

    @property
    def can_proceed(self) -> bool:
        question = self.current_question
        if question is None:
            return False
        if not question.required:
            return True
        return _is_answered(self.state.answers.get(question.id))

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def set_answer(self, question_id: str, value: AnswerValue) -> None:
        """
        Record an answer and re-clamp the current index.

        Raises:
            KeyError: If the survey has no such question
            ValueError: If the value does not fit the question type
        """
        question = next((q for q in self.definition.questions if q.id == question_id), None)
        if question is None:
            raise KeyError(f"Unknown question: {question_id}")
        self._validate_answer(question, value)

        answers = {**self.state.answers, question_id: value}
        updated = self.state.model_copy(update={"answers": answers})
        self.set_state(answers=answers, current_question_index=self._clamp(updated))

    def _validate_answer(self, question: SurveyQuestion, value: AnswerValue) -> None:
        if question.type in ANSWER_RANGES:
            low, high = ANSWER_RANGES[question.type]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{question.id} expects a number")
            if not low <= value <= high:
                raise ValueError(f"{question.id} must be between {low} and {high}")
            return

        allowed = {option.value for option in question.options}
        if question.type == QuestionType.MULTI_SELECT:
            if not isinstance(value, list):
                raise ValueError(f"{question.id} expects a list of options")
            if question.max_selections is not None and len(value) > question.max_selections:
                raise ValueError(
                    f"{question.id} allows at most {question.max_selections} selections"
                )
            unknown = [v for v in value if v not in allowed]
        elif question.type == QuestionType.SINGLE_SELECT:
            unknown = [] if value in allowed else [value]
        else:
            if not isinstance(value, str):
                raise ValueError(f"{question.id} expects text")
            unknown = []

        if unknown:
            raise ValueError(f"Invalid option(s) for {question.id}: {unknown}")

    def go_to_next(self) -> None:
        if self.state.current_question_index < len(self.visible_questions) - 1:
            self.set_state(current_question_index=self.state.current_question_index + 1)

    def go_to_previous(self) -> None:
        if self.state.current_question_index > 0:
            self.set_state(current_question_index=self.state.current_question_index - 1)

    def submit(self) -> SurveySubmission | None:
        """
        Complete the survey: record it in the history and clear saved progress.

        Returns:
            The submission, or None if a submit is already in progress or done
        """
        if self.is_submitting or self.is_submitted:
            return None
        self.is_submitting = True

        try:
            answers = dict(self.state.answers)
            nps = answers.get(NPS_QUESTION)
            goal = next((answers[q] for q in GOAL_QUESTIONS if answers.get(q)), None)
            friction_tags: list[str] = []
            for question_id in FRICTION_QUESTIONS:
                answer = answers.get(question_id)
                if isinstance(answer, list):
                    friction_tags.extend(answer)

            submitted_at = self._clock()
            submission = SurveySubmission(
                survey_id=self.definition.id,
                answers=answers,
                trigger=self.trigger,
                submitted_at=submitted_at,
                nps_score=int(nps) if isinstance(nps, (int, float)) else None,
                friction_tags=friction_tags,
                goal_type=goal if isinstance(goal, str) else None,
            )

            track_event(
                logger,
                "survey_answered",
                survey_id=self.definition.id,
                trigger=self.trigger.value,
                nps_score=submission.nps_score,
                friction_tags=",".join(friction_tags),
                goal_type=submission.goal_type,
            )

            record_survey_completion(self.storage, self.definition.id, self.trigger, submitted_at)
            self.is_submitted = True
            self.storage.remove_item(self.storage_key)
            return submission
        finally:
            self.is_submitting = False

    def dismiss(self) -> None:
        """Close without submitting. Saved progress is kept for next time."""
        track_event(
            logger,
            "survey_dismissed",
            survey_id=self.definition.id,
            trigger=self.trigger.value,
            questions_answered=len(self.state.answers),
        )
