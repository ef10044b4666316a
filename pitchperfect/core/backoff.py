"""Exponential backoff delays and a single cancellable scheduled retry."""

import asyncio
import random
from typing import Awaitable, Callable

from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(
    attempt: int,
    base_ms: int = 1000,
    max_ms: int = 30000,
    jitter: float = 0.25,
    rng: Callable[[], float] = random.random,
) -> int:
    """
    Delay in milliseconds before retry number ``attempt`` (0-based).

    ``min(max_ms, base_ms * 2**attempt)`` with a uniform relative jitter of
    ``±jitter``, never exceeding ``max_ms``.
    """
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    exponential = min(max_ms, base_ms * (2**attempt))
    factor = 1 + jitter * (2 * rng() - 1)
    return int(min(max_ms, round(exponential * factor)))


def backoff_delay_from_settings(attempt: int, rng: Callable[[], float] = random.random) -> int:
    from pitchperfect.core.config import get_settings

    settings = get_settings()
    return backoff_delay(
        attempt,
        base_ms=settings.BACKOFF_BASE_MS,
        max_ms=settings.BACKOFF_MAX_MS,
        jitter=settings.BACKOFF_JITTER,
        rng=rng,
    )


class ScheduledTask:
    """
    Runs one coroutine after a delay unless cancelled first.

    Scheduling again replaces (cancels) the previous pending run.
    """

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay_ms: int, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel()

        async def _run() -> None:
            await self._sleep(delay_ms / 1000)
            await callback()

        self._task = asyncio.get_running_loop().create_task(_run())
        return self._task

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A callback rescheduling itself must not cancel its own run
        if task is not current:
            task.cancel()
            logger.debug("Cancelled pending scheduled task")

    async def wait(self) -> None:
        """Wait until no run is pending, following any reschedules."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if self._task is task:
                    break
