"""Text-to-speech through the ``elevenlabs-tts`` edge function.

Also estimates when each script block is spoken so a teleprompter can follow
the voiceover.
"""

import asyncio
from typing import Awaitable, Callable, Sequence

from pydantic import BaseModel

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_coach import DEFAULT_VOICE_ID, ScriptBlock
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function_bytes

logger = get_logger(__name__)

TTS_FUNCTION = "elevenlabs-tts"

VOICEOVER_WPM = 150
BLOCK_PAUSE_SECONDS = 0.5
BLOCK_SEPARATOR = " ... "


class BlockTimestamp(BaseModel):
    start: float
    end: float


class Voiceover(BaseModel):
    audio: bytes
    voice_id: str
    timestamps: list[BlockTimestamp]
    scaled_to_audio: bool = False


async def synthesize_speech(text: str, voice_id: str = DEFAULT_VOICE_ID) -> bytes:
    """
    Render ``text`` to audio.

    Raises:
        EdgeFunctionError: If the call fails or returns no audio
    """
    if not text.strip():
        raise EdgeFunctionError(TTS_FUNCTION, "No text to synthesize")
    return await invoke_function_bytes(TTS_FUNCTION, json_body={"text": text, "voiceId": voice_id})


# =============================================================================
# Timing
# =============================================================================


def estimate_block_timestamps(
    contents: Sequence[str],
    wpm: int = VOICEOVER_WPM,
    pause_seconds: float = BLOCK_PAUSE_SECONDS,
) -> list[BlockTimestamp]:
    """Estimated start/end of each block at ``wpm`` with a pause between blocks."""
    timestamps = []
    current = 0.0
    for content in contents:
        duration = len(content.split()) / wpm * 60
        timestamps.append(BlockTimestamp(start=current, end=current + duration))
        current += duration + pause_seconds
    return timestamps


def rescale_timestamps(
    timestamps: list[BlockTimestamp], actual_duration: float
) -> list[BlockTimestamp]:
    """Stretch estimates so the last block ends with the real audio."""
    if not timestamps or actual_duration <= 0:
        return timestamps
    estimated_end = timestamps[-1].end or 1.0
    scale = actual_duration / estimated_end
    return [BlockTimestamp(start=ts.start * scale, end=ts.end * scale) for ts in timestamps]


def current_block_from_time(timestamps: list[BlockTimestamp], current_time: float) -> int:
    """
    Index of the block being spoken at ``current_time``.

    During the pause after a block the previous block stays current; past the
    end the last block is returned.
    """
    if not timestamps:
        return 0
    index = 0
    for i, ts in enumerate(timestamps):
        if current_time >= ts.start:
            index = i
        else:
            break
    return index


async def generate_voiceover(
    blocks: Sequence[ScriptBlock],
    voice_id: str = DEFAULT_VOICE_ID,
    measure_duration: Callable[[bytes], float | None] | None = None,
) -> Voiceover | None:
    """
    Synthesize the whole script and estimate per-block timing.

    ``measure_duration`` reads the real audio length; when it is missing or
    fails the word-count estimates are kept.

    Raises:
        EdgeFunctionError: If synthesis fails
    """
    if not blocks:
        return None

    contents = [block.content for block in blocks]
    timestamps = estimate_block_timestamps(contents)
    audio = await synthesize_speech(BLOCK_SEPARATOR.join(contents), voice_id)

    scaled = False
    if measure_duration is not None:
        try:
            actual = measure_duration(audio)
        except Exception as e:
            logger.warning(f"Could not read voiceover duration, keeping estimates: {e}")
            actual = None
        if actual:
            timestamps = rescale_timestamps(timestamps, actual)
            scaled = True

    return Voiceover(audio=audio, voice_id=voice_id, timestamps=timestamps, scaled_to_audio=scaled)


# =============================================================================
# Speaker
# =============================================================================

Player = Callable[[bytes], Awaitable[None]]


class TextToSpeechSpeaker:
    """
    Speaks counterpart lines: synthesize, then hand audio to ``play``.

    Only one utterance runs at a time; a new one or ``stop`` cancels the
    previous. Speech failures are logged and never interrupt the caller.
    """

    def __init__(self, play: Player, voice_id: str = DEFAULT_VOICE_ID):
        self._play = play
        self.voice_id = voice_id
        self._task: asyncio.Task | None = None

    @property
    def is_speaking(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _speak(self, text: str) -> None:
        try:
            audio = await synthesize_speech(text, self.voice_id)
            await self._play(audio)
        except EdgeFunctionError as e:
            logger.warning(f"Speech synthesis failed: {e}")
        except Exception as e:
            logger.warning(f"Speech playback failed: {e}")

    def speak(self, text: str) -> asyncio.Task:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._speak(text))
        return self._task

    def stop(self) -> None:
        if self.is_speaking:
            self._task.cancel()
        self._task = None
