"""Recording capture: one active window of frame samples and duration ticks."""

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_coach import FrameSample, PromptMode, RecordingSession

logger = get_logger(__name__)


class RecordingStateError(Exception):
    """Raised when capture actions arrive outside an active recording."""


class RecordingCapture:
    """
    Accumulates samples for a single active recording.

    Samples and ticks are accepted only between ``start`` and ``stop``.
    ``stop`` seals the capture into an immutable RecordingSession. Frame
    samples are append-only and the duration grows by exactly one per tick.
    """

    def __init__(self):
        self._active = False
        self._prompt_mode = PromptMode.TELEPROMPTER
        self._frames: tuple[FrameSample, ...] = ()
        self._duration = 0

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def frames(self) -> tuple[FrameSample, ...]:
        return self._frames

    @property
    def duration_seconds(self) -> int:
        return self._duration

    def start(self, prompt_mode: PromptMode = PromptMode.TELEPROMPTER) -> None:
        if self._active:
            raise RecordingStateError("A recording is already active")
        self._active = True
        self._prompt_mode = prompt_mode
        self._frames = ()
        self._duration = 0
        logger.debug(f"Recording started (prompt_mode={prompt_mode.value})")

    def add_frame(self, sample: FrameSample) -> tuple[FrameSample, ...]:
        if not self._active:
            raise RecordingStateError("No active recording to add frames to")
        self._frames = self._frames + (sample,)
        return self._frames

    def tick(self) -> int:
        if not self._active:
            raise RecordingStateError("No active recording to tick")
        self._duration += 1
        return self._duration

    def stop(self, audio: bytes, video: bytes | None = None) -> RecordingSession:
        if not self._active:
            raise RecordingStateError("No active recording to stop")
        self._active = False
        session = RecordingSession(
            audio=audio,
            video=video,
            duration_seconds=self._duration,
            frames=self._frames,
            prompt_mode=self._prompt_mode,
        )
        logger.info(
            f"Recording sealed: {session.duration_seconds}s, {len(session.frames)} frames, "
            f"{len(audio)} audio bytes"
        )
        return session

    def discard(self) -> None:
        """Stop without sealing and release buffers. Safe to call repeatedly."""
        self._active = False
        self._frames = ()
        self._duration = 0
