"""Delivery and content metrics computed from a transcript and frame samples."""

import math
import re
from typing import Iterable, Sequence

from pitchperfect.core.schemas_coach import (
    BulletCoverage,
    ContentCoverage,
    DeliveryMetrics,
    FrameSample,
    PostureGrade,
)

FILLER_PATTERNS: dict[str, re.Pattern] = {
    "um": re.compile(r"\bum+\b", re.IGNORECASE),
    "uh": re.compile(r"\buh+\b", re.IGNORECASE),
    "like": re.compile(r"\blike\b", re.IGNORECASE),
    "you know": re.compile(r"\byou know\b", re.IGNORECASE),
    "basically": re.compile(r"\bbasically\b", re.IGNORECASE),
    "actually": re.compile(r"\bactually\b", re.IGNORECASE),
    # Only sentence-initial "so"
    "so": re.compile(r"^so\b|\.\s+so\b", re.IGNORECASE),
    "right": re.compile(r"\bright\??(?!\w)", re.IGNORECASE),
}

COVERAGE_PATTERNS: dict[str, re.Pattern] = {
    "problem": re.compile(r"problem|pain|issue|challenge|struggle|difficult|frustrat"),
    "solution": re.compile(r"solution|solve|fix|address|approach|built|created|developed"),
    "market": re.compile(r"market|industry|billion|million|users|customers|segment|tam|sam"),
    "traction": re.compile(r"traction|users|revenue|growth|customers|mau|dau|arpu|retention"),
    "team": re.compile(r"team|founder|co-founder|experience|background|built|years"),
    "ask": re.compile(r"ask|raise|seeking|investment|funding|round|capital"),
    "demo": re.compile(r"demo|show|let me|watch|see|work|here's"),
    "unique_value": re.compile(r"unique|different|unlike|first|only|better|competitive|advantage"),
}

_STOP_WORDS = {
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "with", "our", "we",
    "is", "are", "it", "that", "this", "your", "you", "i", "be", "by", "as", "at",
}


def count_filler_words(transcript: str) -> tuple[int, dict[str, int]]:
    """Total filler words and a breakdown containing only non-zero counts."""
    breakdown: dict[str, int] = {}
    for word, pattern in FILLER_PATTERNS.items():
        count = len(pattern.findall(transcript))
        if count > 0:
            breakdown[word] = count
    return sum(breakdown.values()), breakdown


def calculate_wpm(transcript: str, duration_seconds: float) -> int:
    if duration_seconds <= 0:
        return 0
    return round(len(transcript.split()) / (duration_seconds / 60))


def detect_content_coverage(transcript: str) -> ContentCoverage:
    lowered = transcript.lower()
    return ContentCoverage(
        **{name: bool(pattern.search(lowered)) for name, pattern in COVERAGE_PATTERNS.items()}
    )


def posture_grade(score: float) -> PostureGrade:
    if score >= 80:
        return PostureGrade.A
    if score >= 60:
        return PostureGrade.B
    return PostureGrade.C


def _percent(count: int, total: int) -> int:
    return round(count / total * 100) if total else 0


def _stability(values: Sequence[float], scale: float) -> int:
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return round(max(0.0, 100 - math.sqrt(variance) * scale))


def aggregate_frames(frames: Sequence[FrameSample]) -> dict:
    """
    Aggregate frame samples into presence metrics.

    Stability is ``100 - 5 * stddev(head_deviation)`` clamped at 0. Body
    metrics are only reported when samples carried them. An empty sequence
    yields zeros.
    """
    if not frames:
        return {"eye_contact_percent": 0, "smile_percent": 0, "stability_score": 0}

    total = len(frames)
    metrics: dict = {
        "eye_contact_percent": _percent(sum(1 for f in frames if f.eye_contact), total),
        "smile_percent": _percent(sum(1 for f in frames if f.smiling), total),
        "stability_score": _stability([f.head_deviation for f in frames], 5),
    }

    postures = [f.posture_score for f in frames if f.posture_score is not None]
    if postures:
        average = round(sum(postures) / len(postures))
        metrics["posture_score"] = average
        metrics["posture_grade"] = posture_grade(average)

    hands = [f.hands_visible for f in frames if f.hands_visible is not None]
    if hands:
        metrics["hands_visible_percent"] = _percent(sum(1 for h in hands if h), len(hands))

    sways = [f.body_sway for f in frames if f.body_sway is not None]
    if sways:
        metrics["body_stability_score"] = _stability(sways, 100)

    return metrics


def build_delivery_metrics(
    transcript: str, duration_seconds: float, frames: Sequence[FrameSample]
) -> DeliveryMetrics:
    filler_total, breakdown = count_filler_words(transcript)
    return DeliveryMetrics(
        wpm=calculate_wpm(transcript, duration_seconds),
        filler_count=filler_total,
        filler_breakdown=breakdown,
        **aggregate_frames(frames),
    )


def _keywords(text: str) -> set[str]:
    words = re.findall(r"[a-z0-9']+", text.lower())
    return {w for w in words if len(w) > 2 and w not in _STOP_WORDS}


def bullet_point_coverage(
    bullets: Iterable[str], transcript: str, threshold: float = 0.5
) -> list[BulletCoverage]:
    """
    Mark a bullet as covered when enough of its keywords were spoken.

    The "Title:" prefix of a cue-card bullet is ignored.
    """
    spoken = _keywords(transcript)
    coverage = []
    for bullet in bullets:
        _, _, body = bullet.partition(":")
        keywords = _keywords(body or bullet)
        if not keywords:
            coverage.append(BulletCoverage(bullet=bullet, covered=False))
            continue
        hit_ratio = len(keywords & spoken) / len(keywords)
        coverage.append(BulletCoverage(bullet=bullet, covered=hit_ratio >= threshold))
    return coverage
