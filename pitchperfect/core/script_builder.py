"""Turn generated pitch text into timed speech blocks.

Generated scripts mark sections with ``[SECTION]`` headers. Each section
becomes a SpeechBlock whose time range is proportional to its word count, so
the ranges are contiguous and together cover exactly the requested duration.
"""

import re
import uuid
from datetime import datetime, timezone

from pitchperfect.core.logging import get_logger
from pitchperfect.core.schemas_wizard import (
    HookStyle,
    ScriptArtifact,
    ScriptVersion,
    SpeechBlock,
    VersionComparison,
)

logger = get_logger(__name__)

_HEADER_RE = re.compile(r"^\s*\[([^\]\n]+)\]\s*(.*)$")
_VISUAL_RE = re.compile(r"^\s*(?:visual|on screen|slide)\s*:\s*(.+)$", re.IGNORECASE)
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]")

PARAGRAPH_LABELS = ["Opening", "Problem", "Solution", "Proof", "Closing"]
MAX_BULLET_POINTS = 6


# =============================================================================
# Word counts and time formatting
# =============================================================================


def count_words(text: str) -> int:
    return len(text.split())


def target_word_count(duration_minutes: float, speaking_rate_wpm: int = 150) -> int:
    return round(duration_minutes * speaking_rate_wpm)


def word_count_range(target: int, tolerance: float = 0.10) -> tuple[int, int]:
    return round(target * (1 - tolerance)), round(target * (1 + tolerance))


def format_timestamp(seconds: int) -> str:
    """Format whole seconds as M:SS."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def parse_timestamp(value: str) -> int:
    minutes, _, secs = value.partition(":")
    return int(minutes) * 60 + int(secs or 0)


# =============================================================================
# Section parsing
# =============================================================================


def _clean_title(raw: str) -> str:
    # "[HOOK - 0:00-0:15]" -> "Hook"
    title = re.split(r"\s+[-–(]\s*\d", raw, maxsplit=1)[0].strip()
    return title.title() if title.isupper() else title


def parse_sections(script: str) -> list[tuple[str, str]]:
    """
    Split a script into (title, content) pairs.

    Uses ``[SECTION]`` headers when present. Without headers, blank-line
    separated paragraphs are labelled by position (Opening, Problem, Solution,
    Proof, Closing). Empty sections are dropped.
    """
    lines = script.strip().splitlines()
    sections: list[tuple[str, list[str]]] = []
    preamble: list[str] = []

    for line in lines:
        match = _HEADER_RE.match(line)
        if match:
            sections.append((_clean_title(match.group(1)), [match.group(2)] if match.group(2) else []))
        elif sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line)

    if sections:
        result = [(title, "\n".join(body).strip()) for title, body in sections]
        intro = "\n".join(preamble).strip()
        if intro:
            result.insert(0, ("Opening", intro))
        return [(title, content) for title, content in result if content]

    paragraphs = [p.strip() for p in re.split(r"\n\s*\n+", script.strip()) if p.strip()]
    if len(paragraphs) < 3:
        return [("Pitch", " ".join(paragraphs))] if paragraphs else []

    labelled = []
    for index, text in enumerate(paragraphs):
        if index == 0:
            label = "Opening"
        elif index == len(paragraphs) - 1:
            label = "Closing"
        elif index < len(PARAGRAPH_LABELS) - 1:
            label = PARAGRAPH_LABELS[index]
        else:
            label = f"Section {index + 1}"
        labelled.append((label, text))
    return labelled


def _split_visual_cue(content: str) -> tuple[str, str | None]:
    spoken: list[str] = []
    cues: list[str] = []
    for line in content.splitlines():
        match = _VISUAL_RE.match(line)
        if match:
            cues.append(match.group(1).strip())
        else:
            spoken.append(line)
    return "\n".join(spoken).strip(), ("; ".join(cues) if cues else None)


# =============================================================================
# Timing
# =============================================================================


def allocate_time_ranges(word_counts: list[int], total_seconds: int) -> list[tuple[int, int]]:
    """
    Split ``0..total_seconds`` into contiguous ranges proportional to words.

    Boundaries are rounded cumulative shares, so the ranges never overlap,
    have no gaps, and the last one ends exactly at ``total_seconds``.
    """
    if not word_counts:
        return []

    total_words = sum(word_counts)
    weights = word_counts if total_words > 0 else [1] * len(word_counts)
    weight_sum = sum(weights)

    ranges = []
    cumulative = 0
    start = 0
    for index, weight in enumerate(weights):
        cumulative += weight
        if index == len(weights) - 1:
            end = total_seconds
        else:
            end = round(total_seconds * cumulative / weight_sum)
        ranges.append((start, end))
        start = end
    return ranges


def build_speech_blocks(sections: list[tuple[str, str]], duration_minutes: float) -> list[SpeechBlock]:
    total_seconds = round(duration_minutes * 60)
    prepared = [(title, *_split_visual_cue(content)) for title, content in sections]
    ranges = allocate_time_ranges([count_words(spoken) for _, spoken, _ in prepared], total_seconds)

    blocks = []
    for (title, spoken, cue), (start, end) in zip(prepared, ranges):
        blocks.append(
            SpeechBlock(
                time_start=format_timestamp(start),
                time_end=format_timestamp(end),
                title=title,
                content=spoken,
                is_demo="demo" in title.lower(),
                visual_cue=cue,
            )
        )
    return blocks


# =============================================================================
# Bullet points
# =============================================================================


def generate_bullet_points(blocks: list[SpeechBlock] | tuple[SpeechBlock, ...]) -> list[str]:
    """Cue-card bullets: the first sentence of each of the first six blocks."""
    bullets = []
    for block in list(blocks)[:MAX_BULLET_POINTS]:
        match = _SENTENCE_RE.match(block.content.strip())
        first_sentence = match.group(0).strip() if match else block.content.strip()[:80]
        bullets.append(f"{block.title}: {first_sentence}")
    return bullets


# =============================================================================
# Artifact assembly
# =============================================================================


def build_script_artifact(
    script: str,
    duration_minutes: float,
    hook_style: HookStyle = HookStyle.AUTO,
    demo_actions: list[str] | None = None,
    speaking_rate_wpm: int = 150,
    tolerance: float = 0.10,
) -> ScriptArtifact:
    """
    Build a ScriptArtifact from generated script text.

    Raises:
        ValueError: If the script contains no usable content
    """
    sections = parse_sections(script)
    if not sections:
        raise ValueError("Generated script is empty")

    blocks = build_speech_blocks(sections, duration_minutes)
    full_script = "\n\n".join(block.content for block in blocks)
    artifact = ScriptArtifact(
        blocks=tuple(blocks),
        target_word_count=target_word_count(duration_minutes, speaking_rate_wpm),
        actual_word_count=count_words(full_script),
        full_script=full_script,
        bullet_points=tuple(generate_bullet_points(blocks)),
        hook_style=hook_style,
        duration_minutes=duration_minutes,
        demo_actions=tuple(demo_actions or ()),
        word_count_tolerance=tolerance,
    )

    if not artifact.within_tolerance:
        low, high = word_count_range(artifact.target_word_count, tolerance)
        logger.info(
            f"Script word count {artifact.actual_word_count} outside target range {low}-{high}"
        )
    return artifact


def replace_hook(artifact: ScriptArtifact, new_hook: str, style: HookStyle) -> ScriptArtifact:
    """Return a copy with the first block's content replaced, re-timed."""
    if not artifact.blocks:
        raise ValueError("Script has no blocks")

    sections = [(block.title, block.content) for block in artifact.blocks]
    sections[0] = (sections[0][0], new_hook.strip())
    blocks = build_speech_blocks(sections, artifact.duration_minutes)
    # Preserve cues that were split out originally
    blocks = [
        block.model_copy(update={"visual_cue": original.visual_cue})
        for block, original in zip(blocks, artifact.blocks)
    ]
    full_script = "\n\n".join(block.content for block in blocks)
    return artifact.model_copy(
        update={
            "blocks": tuple(blocks),
            "full_script": full_script,
            "actual_word_count": count_words(full_script),
            "bullet_points": tuple(generate_bullet_points(blocks)),
            "hook_style": style,
        }
    )


# =============================================================================
# Version history
# =============================================================================


class ScriptVersionHistory:
    """Named snapshots of a script that can be restored, deleted or compared."""

    MAX_COMPARE = 2

    def __init__(self, clock=lambda: datetime.now(timezone.utc)):
        self._clock = clock
        self._versions: list[ScriptVersion] = []
        self._counter = 0

    @property
    def versions(self) -> list[ScriptVersion]:
        return list(self._versions)

    def save(self, artifact: ScriptArtifact, name: str | None = None) -> ScriptVersion:
        self._counter += 1
        version = ScriptVersion(
            id=str(uuid.uuid4()),
            name=name or f"Version {self._counter}",
            timestamp=self._clock(),
            blocks=artifact.blocks,
            full_script=artifact.full_script,
            bullet_points=artifact.bullet_points,
            word_count=artifact.actual_word_count,
        )
        self._versions.append(version)
        return version

    def get(self, version_id: str) -> ScriptVersion:
        for version in self._versions:
            if version.id == version_id:
                return version
        raise KeyError(f"Unknown script version: {version_id}")

    def restore(self, version_id: str, artifact: ScriptArtifact) -> ScriptArtifact:
        """Return ``artifact`` with the saved version's script content."""
        version = self.get(version_id)
        return artifact.model_copy(
            update={
                "blocks": version.blocks,
                "full_script": version.full_script,
                "bullet_points": version.bullet_points,
                "actual_word_count": version.word_count,
            }
        )

    def delete(self, version_id: str) -> None:
        version = self.get(version_id)
        self._versions.remove(version)

    def compare(self, left_id: str, right_id: str) -> VersionComparison:
        left = self.get(left_id)
        right = self.get(right_id)

        left_blocks = {block.title: block.content for block in left.blocks}
        right_blocks = {block.title: block.content for block in right.blocks}

        return VersionComparison(
            left_id=left_id,
            right_id=right_id,
            word_count_delta=right.word_count - left.word_count,
            changed_titles=[
                title
                for title in left_blocks
                if title in right_blocks and left_blocks[title] != right_blocks[title]
            ],
            added_titles=[title for title in right_blocks if title not in left_blocks],
            removed_titles=[title for title in left_blocks if title not in right_blocks],
        )
