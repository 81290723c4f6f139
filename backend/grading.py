"""Map 0-100 scores to letter grades and colour bands.

Scores are not clamped: upstream values outside 0-100 grade as-is.
"""

from typing import Mapping

GRADE_THRESHOLDS: list[tuple[float, str]] = [
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (50, "D"),
]

GOOD_COLOR = "#10b981"
WARN_COLOR = "#f59e0b"
BAD_COLOR = "#ef4444"

OVERALL_KEYS = ("performance", "seo", "security", "accessibility")


def grade(score: float) -> str:
    for threshold, letter in GRADE_THRESHOLDS:
        if score >= threshold:
            return letter
    return "F"


def average_score(scores: Mapping[str, float]) -> float:
    return sum(float(scores.get(key, 0) or 0) for key in OVERALL_KEYS) / len(OVERALL_KEYS)


def overall_grade(scores: Mapping[str, float]) -> str:
    """Grade of the average of performance, seo, security and accessibility."""
    return grade(average_score(scores))


def score_color(score: float) -> str:
    if score >= 80:
        return GOOD_COLOR
    if score >= 50:
        return WARN_COLOR
    return BAD_COLOR
