"""Speech-to-text through the ``elevenlabs-stt`` edge function."""

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_services import TranscriptionResult
from pitchperfect.services.edge_functions import EdgeFunctionError, invoke_function

logger = get_logger(__name__)

STT_FUNCTION = "elevenlabs-stt"


async def transcribe_audio(
    audio: bytes,
    filename: str = "recording.webm",
    content_type: str = "audio/webm",
) -> TranscriptionResult:
    """
    Transcribe recorded audio.

    Args:
        audio: Encoded audio bytes
        filename: Upload filename (the service sniffs the container from it)
        content_type: MIME type of the audio

    Returns:
        Transcript text with optional word timings and detected language

    Raises:
        EdgeFunctionError: If the call fails or no transcription is returned
    """
    if not audio:
        raise EdgeFunctionError(STT_FUNCTION, "No audio to transcribe")

    body = await invoke_function(
        STT_FUNCTION,
        files={"audio": (filename, audio, content_type)},
    )
    if not body.get("text"):
        raise EdgeFunctionError(STT_FUNCTION, "No transcription returned")

    result = TranscriptionResult.model_validate(body)
    logger.info(
        f"Transcribed {len(audio)} bytes: {len(result.text.split())} words, "
        f"language: {result.language_code or 'N/A'}"
    )
    return result
