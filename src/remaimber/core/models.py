"""Domain types shared across the grading core and the store.

Hierarchy: Folder -> Categories -> Banks -> Questions.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Create a unique 16-character lowercase alphanumeric ID."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(16))


class BankType(str, Enum):
    """Grading mode of a bank. Selects the prompt strategy."""

    THEORY = "theory"
    CODE = "code"
    CLI = "cli"


class GradeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Question:
    """A question/expected-answer pair. Immutable once created."""

    id: str
    subject: str
    expected_answer: str

    @classmethod
    def new(cls, subject: str, expected_answer: str) -> Question:
        if not subject.strip():
            raise ValueError("question subject cannot be empty")
        return cls(id=generate_id(), subject=subject, expected_answer=expected_answer)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "expected_answer": self.expected_answer,
        }


@dataclass
class QuestionBank:
    """A named collection of questions sharing a subject and grading mode."""

    id: str
    subject: str
    bank_type: BankType = BankType.THEORY
    grading_prompt: str | None = None
    category_id: str | None = None
    questions: list[Question] = field(default_factory=list)

    @classmethod
    def new(
        cls,
        subject: str,
        bank_type: BankType = BankType.THEORY,
        grading_prompt: str | None = None,
        category_id: str | None = None,
    ) -> QuestionBank:
        return cls(
            id=generate_id(),
            subject=subject,
            bank_type=bank_type,
            grading_prompt=grading_prompt,
            category_id=category_id,
        )


@dataclass
class Category:
    id: str
    name: str
    folder_id: str | None = None  # None = not in any folder


@dataclass
class Folder:
    id: str
    name: str


@dataclass
class GradeRequest:
    """Everything needed to grade a single answer. Never persisted as such."""

    session_id: str
    question_id: str
    question: str
    expected_answer: str
    user_answer: str
    grading_prompt: str | None = None
    bank_type: BankType = BankType.THEORY


@dataclass
class StoredGrade:
    """One persisted grading attempt for a (session, question) pair."""

    question_id: str
    score: int
    covered: list[str]
    missed: list[str]
    user_answer: str
    status: GradeStatus = GradeStatus.SUCCESS
