"""
Grade ledger: weighted course marks and the letter/grade-point scale.

A mark is the sum of ``score / max_score * weight`` over a course's graded
items. It is a percentage, neither clamped nor rounded: weight totals are the
item creator's concern, not the ledger's.
"""
from __future__ import annotations

from typing import Iterable, Protocol


class WeightedScore(Protocol):
    score: float
    max_score: float
    weight: float


# (lower bound, letter, grade points), highest band first
GRADE_SCALE: tuple[tuple[float, str, float], ...] = (
    (90.0, "A", 4.0),
    (85.0, "A-", 3.7),
    (80.0, "B+", 3.3),
    (75.0, "B", 3.0),
    (70.0, "B-", 2.7),
    (65.0, "C+", 2.3),
    (60.0, "C", 2.0),
    (55.0, "C-", 1.7),
    (53.0, "D+", 1.3),
    (50.0, "D", 1.0),
)
FAILING_LETTER = "F"


def compute_mark(items: Iterable[WeightedScore]) -> float | None:
    """Return the weighted mark for a course, or None when no mark is computable.

    Zero-weight items are ignored outright, so adding one never changes the
    result. None is returned when no weighted item remains or when any weighted
    item has a non-positive ``max_score``.
    """
    weighted = [item for item in items if float(item.weight or 0.0) != 0.0]
    if not weighted:
        return None
    total = 0.0
    for item in weighted:
        max_score = float(item.max_score or 0.0)
        if max_score <= 0:
            return None
        total += float(item.score or 0.0) / max_score * float(item.weight)
    return total


def total_weight(items: Iterable[WeightedScore]) -> float:
    return sum(float(item.weight or 0.0) for item in items)


def _band(mark: float) -> tuple[str, float]:
    for lower, letter, points in GRADE_SCALE:
        if mark >= lower:
            return letter, points
    return FAILING_LETTER, 0.0


def mark_to_letter(mark: float) -> str:
    return _band(float(mark))[0]


def mark_to_points(mark: float) -> float:
    """Map a mark onto the 4.0 grade-point scale (monotonic in the mark)."""
    return _band(float(mark))[1]
