"""Pydantic schemas for the Web API.

Serialization models for folders, categories, banks, sessions and grading
results.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from remaimber.core.models import BankType


# =============================================================================
# HIERARCHY SCHEMAS
# =============================================================================


class FolderCreate(BaseModel):
    """Request body for creating a folder."""

    name: str = Field(..., min_length=1, max_length=200)


class FolderResponse(BaseModel):
    id: str
    name: str
    mastery: int = 0


class CategoryCreate(BaseModel):
    """Request body for creating a category."""

    name: str = Field(..., min_length=1, max_length=200)
    folder_id: str | None = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    folder_id: str | None = None
    mastery: int = 0


# =============================================================================
# BANK SCHEMAS
# =============================================================================


class QuestionCreate(BaseModel):
    """Request body for adding a question to a bank."""

    subject: str = Field(..., min_length=1)
    expected_answer: str = Field(..., min_length=1)

    model_config = {"str_strip_whitespace": True}


class QuestionResponse(BaseModel):
    id: str
    subject: str
    expected_answer: str


class BankCreate(BaseModel):
    """Request body for creating a bank, optionally with questions."""

    subject: str = Field(..., min_length=1, max_length=200)
    bank_type: BankType = BankType.THEORY
    grading_prompt: str | None = None
    category_id: str | None = None
    questions: list[QuestionCreate] = Field(default_factory=list)


class BankResponse(BaseModel):
    id: str
    subject: str
    bank_type: BankType
    grading_prompt: str | None = None
    category_id: str | None = None
    questions: list[QuestionResponse]
    mastery: int = 0


class QuestionStatsResponse(BaseModel):
    question_id: str
    times_answered: int
    times_correct: int
    total_score: int
    latest_score: int
    mastery: int


class BankStatsResponse(BaseModel):
    bank_id: str
    total_questions: int
    mastery: int
    questions: list[QuestionStatsResponse]


# =============================================================================
# SESSION SCHEMAS
# =============================================================================


class SessionCreateRequest(BaseModel):
    """Request to start a practice session."""

    bank_id: str = Field(..., min_length=1)
    max_questions: int | None = None
    max_duration_min: int | None = None
    focus_on_weak: bool = False
    question_ids: list[str] | None = None


class SessionResponse(BaseModel):
    id: str
    bank_id: str
    status: str = "active"  # active | completed
    questions: list[QuestionResponse]
    max_duration_min: int | None = None
    focus_on_weak: bool = False


class AnswerSubmitRequest(BaseModel):
    """Request to submit an answer for grading."""

    question_id: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class AnswerSubmitResponse(BaseModel):
    status: str = "submitted"


class GradeDetails(BaseModel):
    question_id: str
    score: int
    covered: list[str]
    missed: list[str]
    user_answer: str
    status: str  # success | failed | not_answered


class SessionCompleteResponse(BaseModel):
    session_id: str
    total_score: int
    max_score: int
    results: list[GradeDetails]


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
