"""Sliding-window rate limiting for regeneration requests."""

import math
import time
from typing import Callable

from fastapi import HTTPException
from pydantic import BaseModel, Field

from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


class RateLimitWindow(BaseModel):
    """Recent attempt timestamps plus an optional cooldown end (seconds)."""

    attempts: list[float] = Field(default_factory=list)
    cooldown_until: float | None = None


class SlidingWindowRateLimiter:
    """
    Allows ``max_attempts`` actions per rolling window.

    The attempt that would exceed the window is rejected and starts a cooldown.
    While cooling down every attempt is rejected; once the cooldown ends the
    window starts empty.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 60.0,
        cooldown_seconds: float = 30.0,
        clock: Clock = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self.window = RateLimitWindow()

    @classmethod
    def from_settings(cls, clock: Clock = time.monotonic) -> "SlidingWindowRateLimiter":
        from pitchperfect.core.config import get_settings

        settings = get_settings()
        return cls(
            max_attempts=settings.REGENERATE_MAX_ATTEMPTS,
            window_seconds=settings.REGENERATE_WINDOW_SECONDS,
            cooldown_seconds=settings.REGENERATE_COOLDOWN_SECONDS,
            clock=clock,
        )

    def _refresh(self, now: float) -> None:
        if self.window.cooldown_until is not None and now >= self.window.cooldown_until:
            self.window = RateLimitWindow()
        cutoff = now - self.window_seconds
        self.window.attempts = [t for t in self.window.attempts if t > cutoff]

    def try_acquire(self) -> bool:
        """Record an attempt if allowed. Returns False when rate limited."""
        now = self._clock()
        self._refresh(now)

        if self.window.cooldown_until is not None:
            return False

        if len(self.window.attempts) >= self.max_attempts:
            self.window.cooldown_until = now + self.cooldown_seconds
            logger.info(
                f"Rate limit reached ({self.max_attempts}/{self.window_seconds:g}s), "
                f"cooling down for {self.cooldown_seconds:g}s"
            )
            return False

        self.window.attempts.append(now)
        return True

    def cooldown_remaining(self) -> int:
        """Whole seconds left in the cooldown (0 when not limited)."""
        now = self._clock()
        self._refresh(now)
        if self.window.cooldown_until is None:
            return 0
        return max(0, math.ceil(self.window.cooldown_until - now))

    @property
    def is_limited(self) -> bool:
        return self.cooldown_remaining() > 0

    @property
    def is_idle(self) -> bool:
        """True when no attempt is inside the window and no cooldown is running."""
        self._refresh(self._clock())
        return not self.window.attempts and self.window.cooldown_until is None

    @property
    def remaining_attempts(self) -> int:
        now = self._clock()
        self._refresh(now)
        if self.window.cooldown_until is not None:
            return 0
        return max(0, self.max_attempts - len(self.window.attempts))

    def reset(self) -> None:
        self.window = RateLimitWindow()


class KeyedRateLimiter:
    """
    One sliding window per key (e.g. client id) for API endpoints.

    Uses in-memory storage. Idle windows are evicted whenever an attempt is
    recorded, and reading stats never creates a window.
    """

    def __init__(self, factory: Callable[[], SlidingWindowRateLimiter]):
        self._factory = factory
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}

    def __len__(self) -> int:
        return len(self._limiters)

    def _get(self, key: str) -> SlidingWindowRateLimiter:
        if key not in self._limiters:
            self._limiters[key] = self._factory()
        return self._limiters[key]

    def _evict_idle(self) -> None:
        idle = [key for key, limiter in self._limiters.items() if limiter.is_idle]
        for key in idle:
            del self._limiters[key]

    def check_limit(self, key: str) -> None:
        """
        Record an attempt for ``key``.

        Raises:
            HTTPException: 429 with Retry-After if rate limited
        """
        self._evict_idle()
        limiter = self._get(key)
        if limiter.try_acquire():
            return

        retry_after = max(1, limiter.cooldown_remaining())
        logger.warning(f"Rate limit exceeded for key: {key}, retry after: {retry_after}s")
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    def get_stats(self, key: str) -> dict[str, int]:
        limiter = self._limiters.get(key) or self._factory()
        return {
            "remaining_attempts": limiter.remaining_attempts,
            "cooldown_seconds": limiter.cooldown_remaining(),
            "max_attempts": limiter.max_attempts,
        }

    def reset(self, key: str) -> None:
        if key in self._limiters:
            del self._limiters[key]
        logger.info(f"Rate limit reset for key: {key}")


# Global limiter for suggestion regeneration, one window per client key
regenerate_rate_limiter = KeyedRateLimiter(SlidingWindowRateLimiter.from_settings)


def check_regenerate_rate_limit(client_key: str) -> None:
    """
    Check rate limit for the suggestion regeneration endpoint.

    Raises:
        HTTPException: 429 if rate limited
    """
    regenerate_rate_limiter.check_limit(f"regenerate:{client_key}")
