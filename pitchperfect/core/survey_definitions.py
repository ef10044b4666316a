"""
Survey content.

Bump the definition id and version when questions change so answers from
different revisions are never mixed.
"""

from pitchperfect.core.schemas_survey import (
    QuestionType,
    ShowIf,
    SurveyDefinition,
    SurveyOption,
    SurveyQuestion,
    SurveyType,
)


def _options(*pairs: tuple[str, str]) -> tuple[SurveyOption, ...]:
    return tuple(SurveyOption(value=value, label=label) for value, label in pairs)


def _other(question_id: str, parent_id: str, text: str, placeholder: str) -> SurveyQuestion:
    return SurveyQuestion(
        id=question_id,
        type=QuestionType.TEXTAREA,
        text=text,
        placeholder=placeholder,
        show_if=ShowIf(question_id=parent_id, values=("other",)),
    )


_GOAL_OPTIONS = _options(
    ("investor_pitch", "Investor pitch"),
    ("sales_demo", "Sales / demo pitch"),
    ("job_interview", "Job interview self-presentation"),
    ("school_hackathon", "School / hackathon pitch"),
    ("other", "Other"),
)


PULSE_SURVEY_V1 = SurveyDefinition(
    id="pitchperfect_pulse_v1",
    version="v1",
    type=SurveyType.PULSE,
    title="Quick Feedback",
    description="Help us improve in 30 seconds",
    show_progress=False,
    estimated_time="30 sec",
    questions=(
        SurveyQuestion(
            id="q1_usefulness",
            type=QuestionType.RATING,
            text="How useful was this session?",
        ),
        SurveyQuestion(
            id="q2_goal",
            type=QuestionType.SINGLE_SELECT,
            text="What was your main goal today?",
            options=_GOAL_OPTIONS,
        ),
        _other("q2a_goal_other", "q2_goal", "Please describe your goal", "Describe your goal..."),
        SurveyQuestion(
            id="q3_frustrations",
            type=QuestionType.MULTI_SELECT,
            text="What frustrated you the most?",
            options=_options(
                ("didnt_know_start", "I didn't know where to start"),
                ("timer_not_helpful", "The timer / pacing wasn't helpful"),
                ("ai_generic", "AI feedback felt too generic"),
                ("technical_issues", "Microphone / permissions / technical issues"),
                ("confusing_ui", "The UI was confusing"),
                ("other", "Other"),
            ),
        ),
        _other(
            "q3a_frustration_other",
            "q3_frustrations",
            "Please describe the issue",
            "Describe the issue...",
        ),
        SurveyQuestion(
            id="q4_improve_first",
            type=QuestionType.TEXTAREA,
            text="In one sentence: what should we improve first?",
            placeholder="Your suggestion...",
        ),
    ),
)


EXPERIENCE_SURVEY_V1 = SurveyDefinition(
    id="pitchperfect_experience_v1",
    version="v1",
    type=SurveyType.EXPERIENCE,
    title="Help Shape PitchPerfect",
    description="Your detailed feedback helps us build better features",
    show_progress=True,
    estimated_time="3 min",
    questions=(
        # Context
        SurveyQuestion(
            id="q1_use_case",
            type=QuestionType.SINGLE_SELECT,
            text="What do you use PitchPerfect for most often?",
            options=_GOAL_OPTIONS,
        ),
        _other(
            "q1a_use_case_other",
            "q1_use_case",
            "Please describe your use case",
            "Describe your use case...",
        ),
        SurveyQuestion(
            id="q2_experience",
            type=QuestionType.SINGLE_SELECT,
            text="Your experience with pitch training tools:",
            options=_options(
                ("none", "None (this is my first)"),
                ("tried_once", "Tried once or twice"),
                ("regular", "I practice regularly"),
            ),
        ),
        SurveyQuestion(
            id="q3_device",
            type=QuestionType.SINGLE_SELECT,
            text="Which device do you mostly use?",
            options=_options(
                ("phone", "Phone"),
                ("desktop", "Desktop / laptop"),
                ("tablet", "Tablet"),
            ),
        ),
        # Core flow
        SurveyQuestion(
            id="q4_achieved_goal",
            type=QuestionType.SINGLE_SELECT,
            text="Did you achieve what you came to do?",
            options=_options(
                ("yes", "Yes, completely"),
                ("partially", "Partially"),
                ("no", "No"),
            ),
        ),
        SurveyQuestion(
            id="q4a_what_missing",
            type=QuestionType.TEXTAREA,
            text="What was missing or broken?",
            placeholder="Describe what was missing...",
            show_if=ShowIf(question_id="q4_achieved_goal", values=("partially", "no")),
        ),
        SurveyQuestion(
            id="q5_confusion_point",
            type=QuestionType.SINGLE_SELECT,
            text="Where did you feel the most confusion?",
            options=_options(
                ("onboarding", "At the start / onboarding"),
                ("settings", "Choosing settings or mode"),
                ("recording", "Starting the recording / timer"),
                ("ai_feedback", "Understanding AI feedback"),
                ("next_steps", "Knowing what to do next"),
                ("none", "I had no confusion"),
            ),
        ),
        # AI feedback quality
        SurveyQuestion(
            id="q6a_ai_specific",
            type=QuestionType.RATING,
            text="The AI feedback was specific (not generic)",
        ),
        SurveyQuestion(
            id="q6b_ai_understandable",
            type=QuestionType.RATING,
            text="The AI feedback was easy to understand",
        ),
        SurveyQuestion(
            id="q6c_ai_relevant",
            type=QuestionType.RATING,
            text="The AI feedback felt relevant to my situation",
        ),
        SurveyQuestion(
            id="q6d_ai_actionable",
            type=QuestionType.RATING,
            text="The AI feedback was actionable for my next attempt",
        ),
        SurveyQuestion(
            id="q7_ai_missing",
            type=QuestionType.SINGLE_SELECT,
            text="What was missing most from the AI feedback?",
            options=_options(
                ("examples", "Concrete examples or rewritten sentences"),
                ("structure", "Clear structure (hook-problem-solution-ask)"),
                ("training_plan", "A clear next-step training plan"),
                ("voice_analysis", "Voice pacing / pauses / speed analysis"),
                ("audience_advice", "Audience-specific advice (investor vs customer)"),
                ("other", "Other"),
            ),
        ),
        _other(
            "q7a_ai_missing_other",
            "q7_ai_missing",
            "Please describe what was missing",
            "Describe what was missing...",
        ),
        # Timer and training mechanics
        SurveyQuestion(
            id="q8_timer_helpful",
            type=QuestionType.RATING,
            text="The timer helped me maintain good pacing",
        ),
        SurveyQuestion(
            id="q9_preferred_format",
            type=QuestionType.SINGLE_SELECT,
            text="Which format would be most useful?",
            options=_options(
                ("30s", "30s elevator pitch"),
                ("60s", "60s pitch"),
                ("3min", "3-minute demo pitch"),
                ("5min", "5-minute investor pitch"),
                ("custom", "Custom"),
            ),
        ),
        SurveyQuestion(
            id="q9a_custom_format",
            type=QuestionType.TEXTAREA,
            text="Describe the ideal length or structure",
            placeholder="Describe your ideal format...",
            show_if=ShowIf(question_id="q9_preferred_format", values=("custom",)),
        ),
        # Barriers and trust
        SurveyQuestion(
            id="q10_barriers",
            type=QuestionType.MULTI_SELECT,
            text="What might prevent you from using PitchPerfect more often?",
            options=_options(
                ("privacy", "Privacy / recording safety concerns"),
                ("ai_accuracy", "AI accuracy or reliability"),
                ("too_many_steps", "Too many steps"),
                ("no_progress", "No progress tracking"),
                ("price", "Price"),
                ("other", "Other"),
            ),
        ),
        _other(
            "q10a_barriers_other",
            "q10_barriers",
            "Please describe the barrier",
            "Describe the barrier...",
        ),
        # Improvement priorities
        SurveyQuestion(
            id="q11_priorities",
            type=QuestionType.MULTI_SELECT,
            text="Which TWO improvements would bring the most value?",
            max_selections=2,
            options=_options(
                ("onboarding", 'Clearer onboarding (1-minute "how it works")'),
                ("templates", "Pitch templates (investor / sales / interview)"),
                ("progress_dashboard", "Progress dashboard (history + improvements)"),
                ("ai_examples", "AI examples (rewritten sentences)"),
                ("voice_metrics", "Voice metrics (pauses / speed / clarity)"),
                ("export_share", "Export or sharing options"),
                ("other", "Other"),
            ),
        ),
        _other(
            "q11a_priorities_other",
            "q11_priorities",
            "Please describe the improvement",
            "Describe the improvement...",
        ),
        # NPS and pricing
        SurveyQuestion(
            id="q12_nps",
            type=QuestionType.NPS,
            text="How likely are you to recommend PitchPerfect to a friend?",
        ),
        SurveyQuestion(
            id="q13_nps_improve",
            type=QuestionType.TEXTAREA,
            text="What would need to change for you to give +2 more points?",
            required=False,
            placeholder="Your thoughts...",
        ),
        SurveyQuestion(
            id="q14_pricing",
            type=QuestionType.SINGLE_SELECT,
            text="What would you be willing to pay per month?",
            required=False,
            options=_options(
                ("$0", "$0"),
                ("$5", "$5"),
                ("$10", "$10"),
                ("$20", "$20"),
                ("$50+", "$50+"),
            ),
        ),
    ),
)


SURVEYS: dict[SurveyType, SurveyDefinition] = {
    SurveyType.PULSE: PULSE_SURVEY_V1,
    SurveyType.EXPERIENCE: EXPERIENCE_SURVEY_V1,
}


def get_survey_by_id(survey_id: str) -> SurveyDefinition | None:
    for survey in SURVEYS.values():
        if survey.id == survey_id:
            return survey
    return None
