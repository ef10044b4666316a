"""Counterpart turns and scoring for interview and sales simulations."""

from typing import Any

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_simulator import (
    CounterpartReply,
    SimulationConfig,
    SimulationMode,
    SimulationTurn,
    TurnAssessment,
    TurnRole,
)
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function

logger = get_logger(__name__)

TURN_FUNCTIONS = {
    SimulationMode.INTERVIEW: "interview-question-turn",
    SimulationMode.SALES: "sales-client-turn",
}

SCORE_FUNCTIONS = {
    SimulationMode.INTERVIEW: "score-interview",
    SimulationMode.SALES: "score-sales-call",
}

SALES_FINAL_INTENTS = {"end", "agree_next_step"}


def _history(turns: list[SimulationTurn], counterpart_role: str) -> list[dict[str, str]]:
    return [
        {
            "role": "user" if turn.role == TurnRole.USER else counterpart_role,
            "content": turn.content,
        }
        for turn in turns
    ]


def build_turn_request(
    config: SimulationConfig,
    turns: list[SimulationTurn],
    user_text: str,
    is_opening: bool,
    question_number: int,
    current_stage: str | None = None,
) -> dict[str, Any]:
    """Request body for the mode's turn function, carrying the full history."""
    if config.mode == SimulationMode.INTERVIEW:
        return {
            "simulation_id": config.id,
            "user_response": user_text,
            "is_opening": is_opening,
            "context": {
                **config.context,
                "conversation_history": _history(turns, "interviewer"),
                "current_question_number": question_number,
            },
        }
    return {
        "simulation_id": config.id,
        "user_message": user_text,
        "is_opening": is_opening,
        "context": {
            **config.context,
            "conversation": [
                {"role": h["role"], "text": h["content"]} for h in _history(turns, "client")
            ],
            "current_stage": current_stage,
        },
    }


def parse_turn_response(mode: SimulationMode, body: dict[str, Any]) -> CounterpartReply:
    """
    Normalize a turn response.

    Raises:
        EdgeFunctionError: If the response has no counterpart message
    """
    function = TURN_FUNCTIONS[mode]
    if mode == SimulationMode.INTERVIEW:
        message = body.get("interviewer_message")
        if not message:
            raise EdgeFunctionError(function, "No interviewer message returned")
        raw_assessment = body.get("response_assessment")
        return CounterpartReply(
            message=message,
            intent=body.get("question_type"),
            targeted_requirement=body.get("targeted_requirement"),
            assessment=TurnAssessment.model_validate(raw_assessment) if raw_assessment else None,
            final_question_hint=bool(body.get("is_final_question")),
        )

    message = body.get("client_reply")
    if not message:
        raise EdgeFunctionError(function, "No client reply returned")
    state_update = body.get("state_update") or {}
    intent = body.get("intent")
    return CounterpartReply(
        message=message,
        intent=intent,
        final_question_hint=intent in SALES_FINAL_INTENTS,
        stage=state_update.get("stage"),
        interest_level=state_update.get("interest_level"),
        objection=body.get("objection"),
    )


async def request_counterpart_turn(
    config: SimulationConfig,
    turns: list[SimulationTurn],
    user_text: str = "",
    is_opening: bool = False,
    question_number: int = 1,
    current_stage: str | None = None,
) -> CounterpartReply:
    """
    Ask the hosted counterpart for its next turn.

    Raises:
        EdgeFunctionError: If the call fails or the reply is unusable
    """
    body = await invoke_function(
        TURN_FUNCTIONS[config.mode],
        json_body=build_turn_request(
            config, turns, user_text, is_opening, question_number, current_stage
        ),
    )
    return parse_turn_response(config.mode, body)


async def score_simulation(config: SimulationConfig) -> dict[str, Any]:
    """
    Score a completed simulation.

    Interview scoring returns hireability_score, category_scores,
    strategic_reframes, verdict_summary, conversion_likelihood, top_strengths
    and areas_to_improve.

    Raises:
        EdgeFunctionError: If scoring fails
    """
    body = await invoke_function(SCORE_FUNCTIONS[config.mode], json_body={"simulation_id": config.id})
    logger.info(f"Scored {config.mode.value} simulation {config.id}")
    return body
