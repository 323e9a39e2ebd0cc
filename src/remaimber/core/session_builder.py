"""Practice session question selection.

Turns a bank's questions plus a SessionConfig into the ordered, immutable
question list of one session:

1. explicit question ids (request order, unknown ids dropped), or
2. focus-on-weak with a list already ordered by ascending mastery, or
3. a uniformly random permutation of the bank;

then truncation to ``max_questions``. Truncating a weakest-first list gives
the N weakest questions, truncating a shuffle gives N random ones.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence

import structlog

from remaimber.core.errors import ValidationError
from remaimber.core.models import Question

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """Optional constraints for a practice session."""

    max_questions: int | None = None  # None = all questions from the bank
    max_duration_min: int | None = None  # None = no time limit (informational)
    focus_on_weak: bool = False

    @classmethod
    def default(cls) -> SessionConfig:
        return cls()

    @classmethod
    def from_request(
        cls,
        max_questions: int | None = None,
        max_duration_min: int | None = None,
        focus_on_weak: bool = False,
    ) -> SessionConfig:
        """Build a config treating non-positive limits as unset."""
        return cls(
            max_questions=max_questions if max_questions and max_questions > 0 else None,
            max_duration_min=max_duration_min if max_duration_min and max_duration_min > 0 else None,
            focus_on_weak=focus_on_weak,
        )


def build_questions(
    bank_questions: Sequence[Question],
    config: SessionConfig,
    question_ids: Sequence[str] | None = None,
    ordered_by_mastery: Sequence[Question] | None = None,
    rng: random.Random | None = None,
) -> tuple[Question, ...]:
    """Select and order the questions of a new session.

    Args:
        bank_questions: All questions of the bank
        config: Session constraints
        question_ids: Explicit selection; takes precedence over other modes
        ordered_by_mastery: Bank questions sorted weakest first, used when
            config.focus_on_weak is set
        rng: Random source for the shuffle (tests inject a seeded one)

    Returns:
        Tuple of questions, in session order

    Raises:
        ValidationError: If the bank is empty or no explicit id matches
    """
    if not bank_questions:
        raise ValidationError("bank has no questions")

    if question_ids:
        by_id = {q.id: q for q in bank_questions}
        selected = [by_id[qid] for qid in dict.fromkeys(question_ids) if qid in by_id]
        if not selected:
            raise ValidationError("no valid questions found")
        mode = "explicit"
    elif config.focus_on_weak and ordered_by_mastery:
        selected = list(ordered_by_mastery)
        mode = "weakest_first"
    else:
        selected = list(bank_questions)
        (rng or random).shuffle(selected)
        mode = "shuffled"

    if config.max_questions is not None and config.max_questions < len(selected):
        selected = selected[: config.max_questions]

    logger.debug("session_questions_built", mode=mode, count=len(selected))
    return tuple(selected)
