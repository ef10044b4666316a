"""Tests for exponential backoff and the scheduled retry task."""

import asyncio

import pytest

from pitchperfect.core.backoff import ScheduledTask, backoff_delay, backoff_delay_from_settings


class TestBackoffDelay:
    """Tests for backoff_delay."""

    def test_without_jitter_doubles(self):
        delays = [backoff_delay(n, rng=lambda: 0.5) for n in range(5)]

        assert delays == [1000, 2000, 4000, 8000, 16000]

    def test_capped_at_max(self):
        assert backoff_delay(5, rng=lambda: 0.5) == 30000
        assert backoff_delay(12, rng=lambda: 0.5) == 30000

    def test_jitter_bounds(self):
        assert backoff_delay(0, rng=lambda: 0.0) == 750
        assert backoff_delay(0, rng=lambda: 1.0) == 1250

    def test_jitter_never_exceeds_max(self):
        assert backoff_delay(10, rng=lambda: 1.0) == 30000

    def test_never_negative(self):
        assert backoff_delay(0, jitter=1.0, rng=lambda: 0.0) == 0

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            backoff_delay(-1)

    def test_from_settings(self):
        assert backoff_delay_from_settings(1, rng=lambda: 0.5) == 2000


class TestScheduledTask:
    """Tests for ScheduledTask."""

    @pytest.mark.asyncio
    async def test_runs_callback_after_delay(self):
        sleeps = []
        calls = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        async def callback():
            calls.append("ran")

        task = ScheduledTask(sleep=fake_sleep)
        task.schedule(1500, callback)
        await task.wait()

        assert sleeps == [1.5]
        assert calls == ["ran"]
        assert task.pending is False

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending_run(self):
        calls = []
        task = ScheduledTask()

        async def first():
            calls.append("first")

        async def second():
            calls.append("second")

        task.schedule(10_000, first)
        task.schedule(0, second)
        await task.wait()

        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_cancel_prevents_run(self):
        calls = []
        task = ScheduledTask()

        async def callback():
            calls.append("ran")

        task.schedule(10_000, callback)
        assert task.pending is True

        task.cancel()
        await asyncio.sleep(0)

        assert task.pending is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_callback_can_reschedule_itself(self):
        calls = []
        task = ScheduledTask()

        async def callback():
            calls.append(len(calls))
            if len(calls) < 3:
                task.schedule(0, callback)

        task.schedule(0, callback)
        await task.wait()

        assert calls == [0, 1, 2]

    def test_cancel_without_pending_is_noop(self):
        ScheduledTask().cancel()
