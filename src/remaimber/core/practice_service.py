"""Practice session use cases: create, get, submit answer, complete.

Glue between the HTTP layer, the store and the grading orchestrator.
Store calls are short synchronous SQLite operations made on the event
loop; only grading runs in worker threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import structlog

from remaimber.core.errors import NotFoundError
from remaimber.core.models import BankType, GradeRequest, GradeStatus, StoredGrade
from remaimber.core.orchestrator import GradingOrchestrator
from remaimber.core.practice_session import PracticeSession
from remaimber.core.session_builder import SessionConfig, build_questions
from remaimber.db.store import Store

logger = structlog.get_logger(__name__)

ResultStatus = Literal["success", "failed", "not_answered"]

NOT_ANSWERED = "Not answered"


@dataclass
class QuestionResult:
    """Outcome of one session question in the completion report."""

    question_id: str
    score: int
    covered: list[str]
    missed: list[str]
    user_answer: str
    status: ResultStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "score": self.score,
            "covered": self.covered,
            "missed": self.missed,
            "user_answer": self.user_answer,
            "status": self.status,
        }


@dataclass
class SessionReport:
    """Result of completing a session."""

    session_id: str
    total_score: int
    max_score: int
    results: list[QuestionResult] = field(default_factory=list)


def build_report(session: PracticeSession, grades: Sequence[StoredGrade]) -> SessionReport:
    """Aggregate grades into a report in session question order.

    Grades finish in any order, so they are keyed by question id. When a
    question was graded more than once the latest record wins.
    """
    by_question = {g.question_id: g for g in grades}

    results: list[QuestionResult] = []
    total_score = 0
    for question in session.questions:
        grade = by_question.get(question.id)
        if grade is None:
            results.append(
                QuestionResult(
                    question_id=question.id,
                    score=0,
                    covered=[],
                    missed=[NOT_ANSWERED],
                    user_answer="",
                    status="not_answered",
                )
            )
            continue

        status: ResultStatus = "failed" if grade.status is GradeStatus.FAILED else "success"
        results.append(
            QuestionResult(
                question_id=question.id,
                score=grade.score,
                covered=list(grade.covered),
                missed=list(grade.missed),
                user_answer=grade.user_answer,
                status=status,
            )
        )
        total_score += grade.score

    return SessionReport(
        session_id=session.id,
        total_score=total_score,
        max_score=session.max_score,
        results=results,
    )


class PracticeService:
    """Upstream operations on practice sessions."""

    def __init__(self, store: Store, orchestrator: GradingOrchestrator):
        self.store = store
        self.orchestrator = orchestrator

    def create_session(
        self,
        bank_id: str,
        config: SessionConfig | None = None,
        question_ids: Sequence[str] | None = None,
    ) -> PracticeSession:
        """Build, persist and start tracking a new active session.

        Raises:
            NotFoundError: Unknown bank
            ValidationError: Empty bank or no matching explicit ids
        """
        config = config or SessionConfig.default()
        bank = self.store.get_bank(bank_id)

        ordered = None
        if config.focus_on_weak and not question_ids:
            ordered = self.store.get_questions_ordered_by_mastery(bank_id, ascending=True)

        questions = build_questions(
            bank.questions,
            config,
            question_ids=question_ids,
            ordered_by_mastery=ordered,
        )
        session = PracticeSession.new(bank.id, questions, config)

        self.store.save_session(session)
        self.orchestrator.register_session(session.id)

        logger.info(
            "session_created",
            session_id=session.id,
            bank_id=bank.id,
            questions=len(session.questions),
            focus_on_weak=session.focus_on_weak,
        )
        return session

    def get_session(self, session_id: str) -> PracticeSession:
        return self.store.get_session(session_id)

    def submit_answer(self, session_id: str, question_id: str, answer: str) -> str:
        """Queue an answer for grading and acknowledge immediately.

        Must run on the event loop (the grading task is scheduled there).

        Raises:
            NotFoundError: Unknown session, or question not in the session
            ConflictError: Session already completed
        """
        session = self.store.get_session(session_id)
        session.ensure_active()
        question = session.find_question(question_id)

        # The session snapshot outlives its bank; grade as theory if it is gone
        grading_prompt, bank_type = None, BankType.THEORY
        try:
            bank = self.store.get_bank(session.bank_id)
        except NotFoundError:
            logger.warning("session_bank_missing", session_id=session.id, bank_id=session.bank_id)
        else:
            grading_prompt, bank_type = bank.grading_prompt, bank.bank_type

        self.orchestrator.submit(
            GradeRequest(
                session_id=session.id,
                question_id=question.id,
                question=question.subject,
                expected_answer=question.expected_answer,
                user_answer=answer,
                grading_prompt=grading_prompt,
                bank_type=bank_type,
            )
        )
        return "submitted"

    async def complete_session(self, session_id: str) -> SessionReport:
        """Complete the session, wait for pending grades, and report.

        The state transition happens before waiting, so no new answer can
        be accepted while grades settle.

        Raises:
            NotFoundError: Unknown session
            ConflictError: Session already completed
        """
        session = self.store.get_session(session_id)
        session.complete()
        # Atomic in the store: of two racing callers only one gets past here
        self.store.complete_session(session_id)

        pending = self.orchestrator.pending(session_id)
        if pending:
            logger.info("session_waiting_for_grades", session_id=session_id, pending=pending)
        await self.orchestrator.await_session(session_id)

        report = build_report(session, self.store.get_grades(session_id))
        self.orchestrator.release_session(session_id)

        logger.info(
            "session_completed",
            session_id=session_id,
            total_score=report.total_score,
            max_score=report.max_score,
        )
        return report
