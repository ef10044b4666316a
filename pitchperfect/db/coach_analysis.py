"""Database operations for saved AI Coach analyses."""

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_coach import AnalysisResults
from pitchperfect.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "coach_analysis"


def save_coach_analysis(
    user_id: str,
    results: AnalysisResults,
    pitch_id: str | None = None,
    video_url: str | None = None,
    thumbnail_url: str | None = None,
) -> dict | None:
    """
    Save an analysis for an authenticated user.

    Returns:
        The inserted row, or None if saving failed
    """
    supabase = get_supabase()

    row = {
        "user_id": user_id,
        "pitch_id": pitch_id,
        "overall_score": results.content_analysis.score,
        "transcript": results.transcript,
        "delivery_metrics": results.delivery_metrics.model_dump(mode="json"),
        "content_analysis": results.content_analysis.model_dump(mode="json"),
        "recommendations": list(results.content_analysis.recommendations),
        "video_url": video_url,
        "thumbnail_url": thumbnail_url,
        "duration_seconds": results.duration_seconds,
        "prompt_mode": results.prompt_mode.value,
    }

    try:
        response = supabase.table(TABLE).insert(row).execute()
        return response.data[0] if response.data else None
    except Exception as e:
        logger.warning(f"Failed to save coach analysis for {user_id}: {e}")
        return None


def list_coach_analyses(user_id: str, limit: int = 20) -> list[dict]:
    supabase = get_supabase()

    try:
        response = (
            supabase.table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
    except Exception as e:
        logger.warning(f"Failed to list coach analyses for {user_id}: {e}")
        return []


def delete_coach_analysis(analysis_id: str, user_id: str) -> bool:
    supabase = get_supabase()

    try:
        supabase.table(TABLE).delete().eq("id", analysis_id).eq("user_id", user_id).execute()
        return True
    except Exception as e:
        logger.warning(f"Failed to delete coach analysis {analysis_id}: {e}")
        return False
