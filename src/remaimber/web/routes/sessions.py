"""Practice session endpoints."""

from fastapi import APIRouter, Depends, status

from remaimber.core.practice_service import PracticeService
from remaimber.core.practice_session import PracticeSession
from remaimber.core.session_builder import SessionConfig
from remaimber.web.dependencies import get_practice_service
from remaimber.web.schemas import (
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    GradeDetails,
    QuestionResponse,
    SessionCompleteResponse,
    SessionCreateRequest,
    SessionResponse,
)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _session_response(session: PracticeSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        bank_id=session.bank_id,
        status=session.status.value,
        questions=[QuestionResponse(**q.to_dict()) for q in session.questions],
        max_duration_min=session.max_duration_min,
        focus_on_weak=session.focus_on_weak,
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreateRequest,
    service: PracticeService = Depends(get_practice_service),
) -> SessionResponse:
    """Start a practice session from a bank.

    Optionally limit the question count, set an (informational) timer,
    focus on the weakest questions, or pick specific question ids.
    """
    config = SessionConfig.from_request(
        max_questions=request.max_questions,
        max_duration_min=request.max_duration_min,
        focus_on_weak=request.focus_on_weak,
    )
    session = service.create_session(request.bank_id, config, question_ids=request.question_ids)
    return _session_response(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    service: PracticeService = Depends(get_practice_service),
) -> SessionResponse:
    """Get a session and its questions."""
    return _session_response(service.get_session(session_id))


@router.post("/{session_id}/answers", response_model=AnswerSubmitResponse)
async def submit_answer(
    session_id: str,
    request: AnswerSubmitRequest,
    service: PracticeService = Depends(get_practice_service),
) -> AnswerSubmitResponse:
    """Submit an answer. Grading happens in the background."""
    ack = service.submit_answer(session_id, request.question_id, request.answer)
    return AnswerSubmitResponse(status=ack)


@router.post("/{session_id}/complete", response_model=SessionCompleteResponse)
async def complete_session(
    session_id: str,
    service: PracticeService = Depends(get_practice_service),
) -> SessionCompleteResponse:
    """Complete the session, wait for pending grades and return results."""
    report = await service.complete_session(session_id)
    return SessionCompleteResponse(
        session_id=report.session_id,
        total_score=report.total_score,
        max_score=report.max_score,
        results=[GradeDetails(**r.to_dict()) for r in report.results],
    )
