"""Asynchronous grading orchestration.

Each submitted answer becomes one independent asyncio task that runs the
(blocking) grader and store calls in a worker thread. The orchestrator, not
the HTTP request, owns the task, so a client disconnect never cancels a
grade. Per-session CompletionBarriers let "complete" wait for every
outstanding grade of its session.

Registration, submission and waiting all happen on the event loop thread,
so the session -> barrier map needs no lock of its own.
"""

from __future__ import annotations

import asyncio

import structlog

from remaimber.core.barrier import CompletionBarrier
from remaimber.core.errors import GradeError
from remaimber.core.grader import Grader
from remaimber.core.models import GradeRequest
from remaimber.db.store import Store

logger = structlog.get_logger(__name__)


class GradingOrchestrator:
    """Dispatches grading tasks and tracks their completion per session."""

    def __init__(self, store: Store, grader: Grader):
        self.store = store
        self.grader = grader
        self._barriers: dict[str, CompletionBarrier] = {}
        # Strong references so running tasks are not garbage collected
        self._tasks: set[asyncio.Task[None]] = set()

    def register_session(self, session_id: str) -> None:
        """Start tracking a new session with an empty barrier."""
        self._barriers[session_id] = CompletionBarrier()

    def release_session(self, session_id: str) -> None:
        """Stop tracking a session. Waiters already holding its barrier are unaffected."""
        self._barriers.pop(session_id, None)

    def is_tracked(self, session_id: str) -> bool:
        return session_id in self._barriers

    def pending(self, session_id: str) -> int:
        barrier = self._barriers.get(session_id)
        return barrier.pending if barrier is not None else 0

    def submit(self, request: GradeRequest) -> None:
        """Schedule grading of one answer and return immediately.

        Must be called from code running on the event loop. Grading errors
        never surface here; they are recorded as failed grades.
        """
        barrier = self._barriers.get(request.session_id)
        if barrier is not None:
            barrier.add()

        task = asyncio.get_running_loop().create_task(
            self._run(request, barrier),
            name=f"grade:{request.session_id}:{request.question_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "grading_submitted",
            session_id=request.session_id,
            question_id=request.question_id,
            tracked=barrier is not None,
        )

    async def await_session(self, session_id: str) -> None:
        """Block until every grade submitted so far for the session is recorded.

        No timeout: bounded only by the oracle timeout of outstanding tasks.
        """
        barrier = self._barriers.get(session_id)
        if barrier is None:
            return
        await barrier.wait()

    async def drain(self) -> None:
        """Wait for all outstanding grading tasks (shutdown)."""
        while self._tasks:
            logger.info("grading_drain", outstanding=len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, request: GradeRequest, barrier: CompletionBarrier | None) -> None:
        try:
            await asyncio.to_thread(self._grade_and_record, request)
        except Exception:
            logger.exception(
                "grading_task_crashed",
                session_id=request.session_id,
                question_id=request.question_id,
            )
        finally:
            if barrier is not None:
                barrier.done()

    def _grade_and_record(self, request: GradeRequest) -> None:
        """Grade and persist one answer. Runs in a worker thread."""
        log = logger.bind(session_id=request.session_id, question_id=request.question_id)

        try:
            outcome = self.grader.grade(
                request.question,
                request.expected_answer,
                request.user_answer,
                request.grading_prompt,
                request.bank_type,
            )
        except GradeError as e:
            log.error("grading_failed", error=str(e))
            self._record_failure(request, e.detail)
            return
        except Exception as e:
            log.exception("grading_unexpected_error")
            self._record_failure(request, f"unexpected error: {e}")
            return

        self.store.save_grade(
            request.session_id,
            request.question_id,
            outcome.score,
            outcome.covered,
            outcome.missed,
            request.user_answer,
        )
        log.info("grade_saved", score=outcome.score)

        # Losing a derived statistic is preferable to losing the grade
        try:
            stats = self.store.update_question_stats(request.question_id, outcome.score)
        except Exception:
            log.exception("question_stats_update_failed")
        else:
            log.debug("question_stats_updated", mastery=stats.mastery)

    def _record_failure(self, request: GradeRequest, reason: str) -> None:
        try:
            self.store.save_grade_failure(
                request.session_id,
                request.question_id,
                request.user_answer,
                reason,
            )
        except Exception:
            logger.exception(
                "grade_failure_save_failed",
                session_id=request.session_id,
                question_id=request.question_id,
            )
