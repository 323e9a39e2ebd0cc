"""Practice session entity and its state machine.

A session starts ``active`` and moves to ``completed`` exactly once. There is
no way back. Answers are only accepted while active.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from remaimber.core.errors import ConflictError, NotFoundError
from remaimber.core.models import Question, generate_id
from remaimber.core.session_builder import SessionConfig


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class PracticeSession:
    """One practice run over a snapshot of a bank's questions."""

    id: str
    bank_id: str
    questions: tuple[Question, ...]
    status: SessionStatus = SessionStatus.ACTIVE
    max_duration_min: int | None = None  # stored and echoed, never enforced
    focus_on_weak: bool = False

    @classmethod
    def new(
        cls,
        bank_id: str,
        questions: Sequence[Question],
        config: SessionConfig | None = None,
    ) -> PracticeSession:
        config = config or SessionConfig.default()
        return cls(
            id=generate_id(),
            bank_id=bank_id,
            questions=tuple(questions),
            max_duration_min=config.max_duration_min,
            focus_on_weak=config.focus_on_weak,
        )

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def ensure_active(self) -> None:
        """Raise ConflictError unless answers may still be submitted."""
        if not self.is_active:
            raise ConflictError("session is already completed")

    def complete(self) -> None:
        """Transition active -> completed.

        Raises:
            ConflictError: If the session was already completed
        """
        self.ensure_active()
        self.status = SessionStatus.COMPLETED

    def find_question(self, question_id: str) -> Question:
        """Return the session's question with this id.

        Raises:
            NotFoundError: If the question is not part of the session
        """
        for question in self.questions:
            if question.id == question_id:
                return question
        raise NotFoundError("question not found in session")

    @property
    def max_score(self) -> int:
        return len(self.questions) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "bank_id": self.bank_id,
            "status": self.status.value,
            "questions": [q.to_dict() for q in self.questions],
            "max_duration_min": self.max_duration_min,
            "focus_on_weak": self.focus_on_weak,
        }
