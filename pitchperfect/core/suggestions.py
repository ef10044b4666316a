"""
AI suggestion lists for wizard fields.

A SuggestionSet fetches suggestions for one field, retries transient failures
in the background with exponential backoff, and falls back to a fixed local
list once ``max_retries`` consecutive attempts have failed. Explicit
regeneration is rate limited, clears the user's selections and resets the
retry counter; background retries never touch selections.
"""

from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from pitchperfect.core.backoff import ScheduledTask, Sleep, backoff_delay_from_settings
from pitchperfect.core.logging import get_logger, track_event
from pitchperfect.core.rate_limiter import SlidingWindowRateLimiter
from pitchperfect.core.schemas_services import SuggestionType
from pitchperfect.core.store import Store

logger = get_logger(__name__)

Fetcher = Callable[[SuggestionType, str, dict[str, Any]], Awaitable[list[str]]]

DEFAULT_FALLBACKS: dict[SuggestionType, list[str]] = {
    SuggestionType.PROBLEM: [
        "Users spend too much time on repetitive manual tasks",
        "Existing solutions are too complex or expensive",
        "Critical information is scattered across multiple tools",
        "No real-time visibility into key metrics or status",
    ],
    SuggestionType.PERSONA: [
        "Busy professionals who need results without a learning curve",
        "Small teams without a dedicated budget for specialist tools",
        "Early adopters frustrated with their current workaround",
    ],
    SuggestionType.PITCH: [
        "Automates the entire workflow with AI-powered assistance",
        "Provides a unified dashboard for real-time tracking",
        "Integrates with existing tools for seamless adoption",
    ],
    SuggestionType.BUSINESS_MODEL: [
        "Monthly subscription with a free tier",
        "Usage-based pricing",
        "One-time license with paid support",
    ],
    SuggestionType.AUDIENCE: [
        "Investors",
        "Hackathon judges",
        "Potential customers",
    ],
}


def fallback_suggestions(suggestion_type: SuggestionType) -> list[str]:
    """Local suggestions shown when the generator keeps failing."""
    return list(DEFAULT_FALLBACKS.get(suggestion_type, []))


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str


class SuggestionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggestions: tuple[Suggestion, ...] = ()
    selected_ids: tuple[str, ...] = ()
    is_loading: bool = False
    error: str | None = None
    retry_count: int = 0
    using_fallback: bool = False


class SuggestionSet(Store[SuggestionState]):
    """Suggestions, selections and retry state for one wizard field."""

    def __init__(
        self,
        suggestion_type: SuggestionType,
        idea: str,
        fallback: list[str],
        context: dict[str, Any] | None = None,
        fetcher: Fetcher | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        max_retries: int | None = None,
        delay_ms: Callable[[int], int] | None = None,
        sleep: Sleep | None = None,
        track_selection: Callable[[str, str], Any] | None = None,
    ):
        super().__init__(SuggestionState())
        self.suggestion_type = suggestion_type
        self.idea = idea
        self.context = context or {}
        self.fallback = list(fallback)
        self._fetcher = fetcher
        self._limiter = rate_limiter
        self._max_retries = max_retries
        self._delay_ms = delay_ms or backoff_delay_from_settings
        self._retry_task = ScheduledTask(sleep) if sleep else ScheduledTask()
        self._track_selection = track_selection
        self._epoch = 0
        self._next_id = 0
        self.retry_delays: list[int] = []

    # -------------------------------------------------------------------------
    # Configuration resolved lazily
    # -------------------------------------------------------------------------

    @property
    def max_retries(self) -> int:
        if self._max_retries is None:
            from pitchperfect.core.config import get_settings

            self._max_retries = get_settings().SUGGESTION_MAX_RETRIES
        return self._max_retries

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        if self._limiter is None:
            self._limiter = SlidingWindowRateLimiter.from_settings()
        return self._limiter

    def _fetch_fn(self) -> Fetcher:
        if self._fetcher is None:
            from pitchperfect.services.generation import generate_suggestions

            self._fetcher = generate_suggestions
        return self._fetcher

    # -------------------------------------------------------------------------
    # Rate limit view
    # -------------------------------------------------------------------------

    @property
    def is_rate_limited(self) -> bool:
        return self.rate_limiter.is_limited

    @property
    def cooldown_seconds(self) -> int:
        return self.rate_limiter.cooldown_remaining()

    @property
    def remaining_attempts(self) -> int:
        return self.rate_limiter.remaining_attempts

    @property
    def has_retry_pending(self) -> bool:
        return self._retry_task.pending

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def fetch(self) -> bool:
        """Initial load. Returns True when live suggestions were received."""
        if not self.idea.strip():
            return False
        self._retry_task.cancel()
        self._epoch += 1
        self.set_state(retry_count=0, error=None)
        return await self._attempt()

    async def regenerate(self) -> bool:
        """
        User-requested refresh.

        Returns False without calling the service while rate limited; the
        countdown is exposed through ``cooldown_seconds``.
        """
        if not self.rate_limiter.try_acquire():
            logger.info(
                f"Regenerate {self.suggestion_type.value} rate limited, "
                f"{self.cooldown_seconds}s remaining"
            )
            return False

        self._retry_task.cancel()
        self._epoch += 1
        self.set_state(selected_ids=(), retry_count=0, error=None)
        return await self._attempt()

    def retry_with_backoff(self) -> None:
        """Manual retry after an error: schedule a fresh attempt after a backoff delay."""
        self._retry_task.cancel()
        self._epoch += 1
        self.set_state(retry_count=0, is_loading=True)
        delay = self._delay_ms(0)
        self.retry_delays.append(delay)
        self._retry_task.schedule(delay, self._attempt)

    async def wait_for_retries(self) -> None:
        await self._retry_task.wait()

    def cancel(self) -> None:
        """Drop any pending retry and ignore in-flight responses."""
        self._epoch += 1
        self._retry_task.cancel()
        self.set_state(is_loading=False)

    async def _attempt(self) -> bool:
        epoch = self._epoch
        self.set_state(is_loading=True)

        try:
            texts = await self._fetch_fn()(self.suggestion_type, self.idea, self.context)
        except Exception as e:
            if epoch != self._epoch:
                return False
            self._handle_failure(e)
            return False

        if epoch != self._epoch:
            return False

        suggestions, selected_ids = self._next_batch(texts)
        self.set_state(
            suggestions=suggestions,
            selected_ids=selected_ids,
            is_loading=False,
            error=None,
            retry_count=0,
            using_fallback=False,
        )
        return True

    def _handle_failure(self, error: Exception) -> None:
        retry_count = self.state.retry_count + 1
        message = f"Failed to load {self.suggestion_type.value} suggestions"

        if retry_count >= self.max_retries:
            logger.warning(
                f"{message} after {retry_count} attempts, using fallback suggestions: {error}"
            )
            fallback, selected_ids = self._next_batch(self.fallback)
            self.set_state(
                suggestions=fallback,
                selected_ids=selected_ids,
                is_loading=False,
                error=message,
                retry_count=retry_count,
                using_fallback=True,
            )
            return

        delay = self._delay_ms(retry_count - 1)
        self.retry_delays.append(delay)
        logger.warning(
            f"{message} (attempt {retry_count}/{self.max_retries}), retrying in {delay}ms: {error}"
        )
        self.set_state(is_loading=True, error=message, retry_count=retry_count)
        self._retry_task.schedule(delay, self._attempt)

    def _next_batch(self, texts: list[str]) -> tuple[tuple[Suggestion, ...], tuple[str, ...]]:
        """
        Build the next batch around the current selection.

        Selected suggestions stay first with their id and text; incoming texts
        that repeat one of them are skipped. Ids are never reused.
        """
        by_id = {s.id: s for s in self.state.suggestions}
        kept = [by_id[sid] for sid in self.state.selected_ids if sid in by_id]
        kept_texts = {s.text for s in kept}

        fresh = []
        for text in texts:
            if text in kept_texts:
                continue
            fresh.append(Suggestion(id=f"s-{self._next_id}", text=text))
            self._next_id += 1
        return tuple(kept + fresh), tuple(s.id for s in kept)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def toggle(self, suggestion_id: str) -> bool:
        """Select or deselect a suggestion. Returns the new selected state."""
        by_id = {s.id: s for s in self.state.suggestions}
        if suggestion_id not in by_id:
            raise KeyError(f"Unknown suggestion: {suggestion_id}")

        selected = list(self.state.selected_ids)
        if suggestion_id in selected:
            selected.remove(suggestion_id)
            self.set_state(selected_ids=tuple(selected))
            return False

        selected.append(suggestion_id)
        self.set_state(selected_ids=tuple(selected))
        text = by_id[suggestion_id].text
        track_event(
            logger,
            "suggestion_selected",
            suggestion_type=self.suggestion_type.value,
            fallback=self.state.using_fallback,
        )
        if self._track_selection is not None:
            self._track_selection(self.suggestion_type.value, text)
        return True

    @property
    def has_selection(self) -> bool:
        return bool(self.state.selected_ids)

    def selected_texts(self) -> list[str]:
        by_id = {s.id: s.text for s in self.state.suggestions}
        return [by_id[sid] for sid in self.state.selected_ids if sid in by_id]

    def combined_value(self, user_input: str = "") -> str:
        """Selected suggestions plus the user's own text, joined as sentences."""
        parts = self.selected_texts()
        if user_input.strip():
            parts.append(user_input.strip())
        return ". ".join(parts)
