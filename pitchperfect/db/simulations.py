"""Database operations for interview and sales simulations.

Each mode has a simulation table and a turn table. Lookups are always scoped
to the owning user.
"""

from datetime import datetime, timezone

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_simulator import (
    SimulationConfig,
    SimulationMode,
    SimulationTurn,
    TurnRole,
)
from pitchperfect.db.supabase_client import get_supabase

logger = get_logger(__name__)

SIMULATION_TABLES = {
    SimulationMode.INTERVIEW: "interview_simulations",
    SimulationMode.SALES: "sales_simulations",
}

TURN_TABLES = {
    SimulationMode.INTERVIEW: "interview_simulation_turns",
    SimulationMode.SALES: "sales_simulation_turns",
}

CONTEXT_FIELDS = {
    SimulationMode.INTERVIEW: (
        "job_title",
        "company_name",
        "job_description",
        "cv_content",
        "match_gaps",
        "key_evidence",
    ),
    SimulationMode.SALES: (
        "industry",
        "product_description",
        "client_role",
        "client_personality",
        "objection_level",
        "call_goal",
        "custom_goal",
    ),
}

COUNTERPART_ROLES = {
    SimulationMode.INTERVIEW: "interviewer",
    SimulationMode.SALES: "client",
}


class SimulationNotFoundError(Exception):
    """Raised when a simulation id does not exist for the user."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_simulation(mode: SimulationMode, simulation_id: str, user_id: str) -> SimulationConfig:
    """
    Load a simulation owned by ``user_id``.

    Raises:
        SimulationNotFoundError: If no such simulation exists for the user
    """
    supabase = get_supabase()

    response = (
        supabase.table(SIMULATION_TABLES[mode])
        .select("*")
        .eq("id", simulation_id)
        .eq("user_id", user_id)
        .maybe_single()
        .execute()
    )
    row = response.data if response else None
    if not row:
        raise SimulationNotFoundError(f"Simulation not found: {simulation_id}")

    context = {field: row.get(field) for field in CONTEXT_FIELDS[mode] if row.get(field) is not None}
    return SimulationConfig(id=str(row["id"]), user_id=str(row["user_id"]), mode=mode, context=context)


def mark_started(mode: SimulationMode, simulation_id: str) -> None:
    supabase = get_supabase()

    try:
        supabase.table(SIMULATION_TABLES[mode]).update(
            {"status": "in_progress", "started_at": _now()}
        ).eq("id", simulation_id).execute()
    except Exception as e:
        logger.warning(f"Failed to mark simulation {simulation_id} started: {e}")


def mark_completed(mode: SimulationMode, simulation_id: str, duration_seconds: int) -> None:
    supabase = get_supabase()

    try:
        supabase.table(SIMULATION_TABLES[mode]).update(
            {
                "status": "completed",
                "ended_at": _now(),
                "duration_seconds": duration_seconds,
            }
        ).eq("id", simulation_id).execute()
    except Exception as e:
        logger.warning(f"Failed to mark simulation {simulation_id} completed: {e}")


def insert_turn(mode: SimulationMode, simulation_id: str, turn: SimulationTurn) -> dict | None:
    """Persist one turn. Failures are logged; the live session keeps going."""
    supabase = get_supabase()

    role = "user" if turn.role == TurnRole.USER else COUNTERPART_ROLES[mode]
    row = {
        "simulation_id": simulation_id,
        "turn_number": turn.turn_number,
        "role": role,
        "content": turn.content,
    }
    if turn.intent:
        row["intent"] = turn.intent

    try:
        response = supabase.table(TURN_TABLES[mode]).insert(row).execute()
        return response.data[0] if response.data else None
    except Exception as e:
        logger.warning(f"Failed to save turn {turn.turn_number} for {simulation_id}: {e}")
        return None


def list_turns(mode: SimulationMode, simulation_id: str) -> list[dict]:
    supabase = get_supabase()

    response = (
        supabase.table(TURN_TABLES[mode])
        .select("*")
        .eq("simulation_id", simulation_id)
        .order("turn_number")
        .execute()
    )
    return response.data or []
