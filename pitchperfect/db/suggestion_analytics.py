"""Records which AI suggestions users pick."""

from pitchperfect.core.logging import get_logger
from pitchperfect.db.supabase_client import get_supabase

logger = get_logger(__name__)


def track_suggestion_selection(suggestion_type: str, suggestion_text: str) -> None:
    """Insert a selection event. Failures are logged and ignored."""
    supabase = get_supabase()

    try:
        supabase.table("suggestion_analytics").insert(
            {"suggestion_type": suggestion_type, "suggestion_text": suggestion_text}
        ).execute()
    except Exception as e:
        logger.warning(f"Failed to track suggestion selection: {e}")
