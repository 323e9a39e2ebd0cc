"""Question bank endpoints."""

import structlog
from fastapi import APIRouter, Depends, status

from remaimber.core.models import Question, QuestionBank
from remaimber.db.store import SQLiteStore
from remaimber.web.dependencies import get_store
from remaimber.web.schemas import (
    BankCreate,
    BankResponse,
    BankStatsResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionStatsResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/banks", tags=["banks"])


def _bank_response(bank: QuestionBank, mastery: int = 0) -> BankResponse:
    return BankResponse(
        id=bank.id,
        subject=bank.subject,
        bank_type=bank.bank_type,
        grading_prompt=bank.grading_prompt,
        category_id=bank.category_id,
        questions=[QuestionResponse(**q.to_dict()) for q in bank.questions],
        mastery=mastery,
    )


@router.post("", response_model=BankResponse, status_code=status.HTTP_201_CREATED)
async def create_bank(request: BankCreate, store: SQLiteStore = Depends(get_store)) -> BankResponse:
    """Create a bank, optionally with an initial list of questions."""
    bank = QuestionBank.new(
        subject=request.subject,
        bank_type=request.bank_type,
        grading_prompt=request.grading_prompt,
        category_id=request.category_id,
    )
    bank.questions = [Question.new(q.subject, q.expected_answer) for q in request.questions]
    store.save_bank(bank)
    return _bank_response(bank)


@router.get("", response_model=list[BankResponse])
async def list_banks(
    category_id: str | None = None,
    store: SQLiteStore = Depends(get_store),
) -> list[BankResponse]:
    """List banks, optionally only those in one category."""
    if category_id is not None:
        store.get_category(category_id)
    return [_bank_response(b, mastery=store.get_bank_mastery(b.id)) for b in store.list_banks(category_id)]


@router.get("/{bank_id}", response_model=BankResponse)
async def get_bank(bank_id: str, store: SQLiteStore = Depends(get_store)) -> BankResponse:
    """Get a bank, its questions and its mastery."""
    bank = store.get_bank(bank_id)
    return _bank_response(bank, mastery=store.get_bank_mastery(bank.id))


@router.post(
    "/{bank_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_question(
    bank_id: str,
    request: QuestionCreate,
    store: SQLiteStore = Depends(get_store),
) -> QuestionResponse:
    """Append a question to a bank."""
    question = Question.new(request.subject, request.expected_answer)
    store.add_question(bank_id, question)
    logger.info("question_added", bank_id=bank_id, question_id=question.id)
    return QuestionResponse(**question.to_dict())


@router.get("/{bank_id}/stats", response_model=BankStatsResponse)
async def get_bank_stats(bank_id: str, store: SQLiteStore = Depends(get_store)) -> BankStatsResponse:
    """Per-question statistics and the bank's mastery."""
    bank = store.get_bank(bank_id)
    stats = store.get_question_stats_by_bank(bank.id)
    return BankStatsResponse(
        bank_id=bank.id,
        total_questions=len(bank.questions),
        mastery=store.get_bank_mastery(bank.id),
        questions=[
            QuestionStatsResponse(
                question_id=s.question_id,
                times_answered=s.times_answered,
                times_correct=s.times_correct,
                total_score=s.total_score,
                latest_score=s.latest_score,
                mastery=s.mastery,
            )
            for s in stats
        ],
    )
