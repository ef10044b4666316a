"""Database operations for saved pitch scripts.

A wizard session is only persisted when the user explicitly saves it.
"""

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_wizard import ScriptArtifact, WizardSession
from pitchperfect.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "saved_pitches"


def _pitch_row(user_id: str, session: WizardSession, artifact: ScriptArtifact) -> dict:
    return {
        "user_id": user_id,
        "title": session.idea[:100],
        "idea": session.idea,
        "audience": session.audience_id,
        "audience_label": session.audience_label,
        "track": session.audience_id,
        "duration_minutes": session.duration_minutes,
        "speech_blocks": [block.model_dump(mode="json") for block in artifact.blocks],
        "meta": {
            "targetWordCount": artifact.target_word_count,
            "actualWordCount": artifact.actual_word_count,
            "fullScript": artifact.full_script,
            "bulletPoints": list(artifact.bullet_points),
            "estimatedDuration": artifact.duration_minutes,
            "hookStyle": artifact.hook_style.value,
            "demoActions": list(artifact.demo_actions),
        },
        "hook_style": artifact.hook_style.value,
        "generation_mode": "auto",
    }


def save_pitch(
    user_id: str,
    session: WizardSession,
    artifact: ScriptArtifact,
    pitch_id: str | None = None,
) -> dict | None:
    """
    Insert a new saved pitch, or update ``pitch_id`` when given.

    Returns:
        The saved row, or None if saving failed
    """
    supabase = get_supabase()
    row = _pitch_row(user_id, session, artifact)

    try:
        if pitch_id:
            response = (
                supabase.table(TABLE)
                .update(row)
                .eq("id", pitch_id)
                .eq("user_id", user_id)
                .execute()
            )
        else:
            response = supabase.table(TABLE).insert(row).execute()
        return response.data[0] if response.data else None
    except Exception as e:
        logger.error(f"Failed to save pitch for {user_id}: {e}")
        return None


def get_pitch(pitch_id: str, user_id: str) -> dict | None:
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE)
            .select("*")
            .eq("id", pitch_id)
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return response.data if response else None
    except Exception as e:
        logger.warning(f"Failed to get pitch {pitch_id}: {e}")
        return None


def list_pitches(user_id: str) -> list[dict]:
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE)
            .select("id, title, idea, audience_label, duration_minutes, hook_style, created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []
    except Exception as e:
        logger.warning(f"Failed to list pitches for {user_id}: {e}")
        return []


def delete_pitch(pitch_id: str, user_id: str) -> bool:
    supabase = get_supabase()

    try:
        supabase.table(TABLE).delete().eq("id", pitch_id).eq("user_id", user_id).execute()
        return True
    except Exception as e:
        logger.warning(f"Failed to delete pitch {pitch_id}: {e}")
        return False
