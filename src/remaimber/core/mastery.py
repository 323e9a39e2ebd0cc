"""Mastery calculation.

Per-question mastery weights the latest score against the history:

    mastery = latest * 0.6 + historical_average * 0.4

where the historical average excludes the latest score. The first answer
sets mastery to its score.

Aggregates (bank, category, folder) flatten every question underneath and
take one arithmetic mean; unanswered questions count as 0. Averaging
per-bank averages would weight small banks too heavily, so it is never
done.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable

# Score at or above which an answer counts as correct
CORRECT_THRESHOLD = 70

LATEST_WEIGHT = 0.6
HISTORY_WEIGHT = 0.4


@dataclass(frozen=True)
class QuestionStats:
    """Performance statistics for a single question."""

    question_id: str
    times_answered: int = 0
    times_correct: int = 0
    total_score: int = 0
    latest_score: int = 0
    mastery: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def calculate_mastery(stats: QuestionStats) -> int:
    """Compute mastery from accumulated stats."""
    if stats.times_answered == 0:
        return 0

    if stats.times_answered == 1:
        return _clamp(stats.latest_score)

    historical_avg = (stats.total_score - stats.latest_score) / (stats.times_answered - 1)
    mastery = _round_half_up(stats.latest_score * LATEST_WEIGHT + historical_avg * HISTORY_WEIGHT)
    return _clamp(mastery)


def apply_grade(stats: QuestionStats | None, question_id: str, score: int) -> QuestionStats:
    """Return the stats after one more successful grade.

    Args:
        stats: Current stats, or None if the question was never answered
        question_id: Question the grade belongs to
        score: New score, 0-100

    Returns:
        New QuestionStats with counters, latest score and mastery updated
    """
    if stats is None:
        stats = QuestionStats(question_id=question_id)

    updated = replace(
        stats,
        times_answered=stats.times_answered + 1,
        times_correct=stats.times_correct + (1 if score >= CORRECT_THRESHOLD else 0),
        total_score=stats.total_score + score,
        latest_score=score,
    )
    return replace(updated, mastery=calculate_mastery(updated))


def average_mastery(masteries: Iterable[int]) -> int:
    """Arithmetic mean of question masteries, truncated; 0 when empty."""
    values = list(masteries)
    if not values:
        return 0
    return int(sum(values) / len(values))


def flatten_mastery(groups: Iterable[Iterable[int]]) -> int:
    """Mean over all questions of all groups (banks), not mean of means."""
    return average_mastery(m for group in groups for m in group)
