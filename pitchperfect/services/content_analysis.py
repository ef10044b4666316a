"""Judge-style analysis of what a pitch transcript says."""

from langchain_core.messages import HumanMessage, SystemMessage

from pitchperfect.core.llm import ainvoke_structured, get_llm
from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_coach import ContentAnalysis

logger = get_logger(__name__)

_MAX_RETRIES = 2
_INITIAL_DELAY = 1.0

SYSTEM_PROMPT = (
    "You are a critical hackathon judge with 10+ years of experience evaluating startup "
    "pitches. Analyze the pitch transcript and return a JSON object with exactly these "
    "fields:\n"
    "- score: number from 1-10 (be honest and critical)\n"
    "- key_missing_points: array of strings (crucial elements that are missing)\n"
    '- sentiment: one of "Confident", "Hesitant", "Nervous", "Passionate", "Monotone", '
    '"Engaging"\n'
    "- specific_feedback: 2-3 sentences of direct feedback\n"
    "- strengths: array of 2-3 strings\n"
    "- recommendations: array of 3-5 actionable strings\n"
    "Reference actual content from the pitch. Return ONLY valid JSON."
)


async def analyze_pitch_content(transcript: str) -> ContentAnalysis:
    """
    Score a transcript and list strengths, gaps and recommendations.

    Raises:
        ValueError: If the transcript is empty or the LLM is not configured
        json.JSONDecodeError / ValidationError: If every attempt is malformed
    """
    if not transcript.strip():
        raise ValueError("Transcript is empty")

    analysis = await ainvoke_structured(
        get_llm(temperature=0.7),
        [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=f"Analyze this pitch:\n\n{transcript}"),
        ],
        ContentAnalysis,
        max_retries=_MAX_RETRIES,
        initial_delay=_INITIAL_DELAY,
    )
    logger.info(f"Pitch content scored {analysis.score}/10")
    return analysis
