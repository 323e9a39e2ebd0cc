"""Tests for practice session use cases end to end (store + orchestrator)."""

import asyncio

import pytest

from remaimber.core.errors import ConflictError, NotFoundError, ValidationError
from remaimber.core.models import BankType, GradeStatus, Question, QuestionBank, StoredGrade
from remaimber.core.practice_service import NOT_ANSWERED, build_report
from remaimber.core.practice_session import PracticeSession, SessionStatus
from remaimber.core.session_builder import SessionConfig


class TestCreateSession:
    """Tests for create_session."""

    def test_create_uses_all_questions(self, store, sample_bank, service_factory, fake_grader):
        service = service_factory(fake_grader)

        session = service.create_session(sample_bank.id)

        assert session.status is SessionStatus.ACTIVE
        assert {q.id for q in session.questions} == {q.id for q in sample_bank.questions}
        assert store.get_session(session.id).questions == session.questions
        assert service.orchestrator.is_tracked(session.id)

    def test_create_limits_questions(self, sample_bank, service_factory, fake_grader):
        session = service_factory(fake_grader).create_session(sample_bank.id, SessionConfig(max_questions=2))
        assert len(session.questions) == 2

    def test_focus_on_weak_picks_lowest_mastery(self, store, sample_bank, service_factory, fake_grader):
        q1, q2, q3 = sample_bank.questions
        store.update_question_stats(q1.id, 100)
        store.update_question_stats(q2.id, 20)
        store.update_question_stats(q3.id, 60)

        session = service_factory(fake_grader).create_session(
            sample_bank.id, SessionConfig(max_questions=2, focus_on_weak=True)
        )

        assert [q.id for q in session.questions] == [q2.id, q3.id]

    def test_explicit_question_ids(self, sample_bank, service_factory, fake_grader):
        q1, _, q3 = sample_bank.questions
        session = service_factory(fake_grader).create_session(sample_bank.id, question_ids=[q3.id, q1.id])
        assert [q.id for q in session.questions] == [q3.id, q1.id]

    def test_unknown_bank(self, service_factory, fake_grader):
        with pytest.raises(NotFoundError):
            service_factory(fake_grader).create_session("nope")

    def test_empty_bank(self, store, service_factory, fake_grader):
        bank = QuestionBank.new("Empty")
        store.save_bank(bank)
        with pytest.raises(ValidationError):
            service_factory(fake_grader).create_session(bank.id)


class TestSubmitAndComplete:
    """Submitting answers and completing sessions."""

    @pytest.mark.asyncio
    async def test_full_session(self, sample_bank, service_factory, make_grader):
        grader = make_grader(outcomes={"partial": (["a"], ["b", "c"])})
        service = service_factory(grader)
        session = service.create_session(sample_bank.id)
        q1, q2, q3 = session.questions

        assert service.submit_answer(session.id, q1.id, "full") == "submitted"
        service.submit_answer(session.id, q2.id, "partial")

        report = await service.complete_session(session.id)

        assert report.session_id == session.id
        assert report.max_score == 300
        assert report.total_score == 133
        assert [r.question_id for r in report.results] == [q1.id, q2.id, q3.id]
        assert [r.status for r in report.results] == ["success", "success", "not_answered"]
        assert report.results[2].missed == [NOT_ANSWERED]
        assert report.results[2].score == 0
        assert not service.orchestrator.is_tracked(session.id)

    @pytest.mark.asyncio
    async def test_complete_waits_for_in_flight_grades(
        self, sample_bank, service_factory, make_grader, grading_gate
    ):
        service = service_factory(make_grader(gate=grading_gate))
        session = service.create_session(sample_bank.id)
        for question in session.questions:
            service.submit_answer(session.id, question.id, "answer")

        completing = asyncio.create_task(service.complete_session(session.id))
        await asyncio.sleep(0.05)
        assert not completing.done()

        grading_gate.set()
        report = await asyncio.wait_for(completing, timeout=5)

        assert all(r.status == "success" for r in report.results)
        assert report.total_score == 300

    @pytest.mark.asyncio
    async def test_submit_after_complete_conflicts(self, sample_bank, service_factory, fake_grader):
        service = service_factory(fake_grader)
        session = service.create_session(sample_bank.id)
        await service.complete_session(session.id)

        with pytest.raises(ConflictError):
            service.submit_answer(session.id, session.questions[0].id, "late")

    @pytest.mark.asyncio
    async def test_submit_while_completing_conflicts(
        self, sample_bank, service_factory, make_grader, grading_gate
    ):
        """The session is completed before waiting, so no answer slips in."""
        service = service_factory(make_grader(gate=grading_gate))
        session = service.create_session(sample_bank.id)
        q1, q2, _ = session.questions
        service.submit_answer(session.id, q1.id, "first")

        completing = asyncio.create_task(service.complete_session(session.id))
        await asyncio.sleep(0.05)

        with pytest.raises(ConflictError):
            service.submit_answer(session.id, q2.id, "too late")

        grading_gate.set()
        await asyncio.wait_for(completing, timeout=5)

    @pytest.mark.asyncio
    async def test_complete_twice_conflicts(self, sample_bank, service_factory, fake_grader):
        service = service_factory(fake_grader)
        session = service.create_session(sample_bank.id)
        await service.complete_session(session.id)

        with pytest.raises(ConflictError):
            await service.complete_session(session.id)

    @pytest.mark.asyncio
    async def test_concurrent_completes_only_one_wins(self, sample_bank, service_factory, fake_grader):
        service = service_factory(fake_grader)
        session = service.create_session(sample_bank.id)

        results = await asyncio.gather(
            service.complete_session(session.id),
            service.complete_session(session.id),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(conflicts) == 1

    @pytest.mark.asyncio
    async def test_unknown_question(self, sample_bank, service_factory, fake_grader):
        service = service_factory(fake_grader)
        session = service.create_session(sample_bank.id)

        with pytest.raises(NotFoundError, match="question not found in session"):
            service.submit_answer(session.id, "not-in-session", "answer")

        assert service.orchestrator.pending(session.id) == 0
        assert service.orchestrator._tasks == set()

    @pytest.mark.asyncio
    async def test_unknown_session(self, service_factory, fake_grader):
        with pytest.raises(NotFoundError):
            service_factory(fake_grader).submit_answer("nope", "q", "answer")
        with pytest.raises(NotFoundError):
            await service_factory(fake_grader).complete_session("nope")

    @pytest.mark.asyncio
    async def test_bank_settings_reach_grader(self, store, service_factory, fake_grader):
        bank = QuestionBank.new("Shell", bank_type=BankType.CLI, grading_prompt="Flags only.")
        bank.questions = [Question.new("List files", "ls -la")]
        store.save_bank(bank)
        service = service_factory(fake_grader)
        session = service.create_session(bank.id)

        service.submit_answer(session.id, session.questions[0].id, "ls -al")
        await service.complete_session(session.id)

        call = fake_grader.calls[0]
        assert call["bank_type"] is BankType.CLI
        assert call["grading_prompt"] == "Flags only."
        assert call["expected_answer"] == "ls -la"

    @pytest.mark.asyncio
    async def test_failed_grade_in_report(self, sample_bank, service_factory, make_grader):
        service = service_factory(make_grader(failing={"bad"}))
        session = service.create_session(sample_bank.id)
        service.submit_answer(session.id, session.questions[0].id, "bad")

        report = await service.complete_session(session.id)

        failed = report.results[0]
        assert failed.status == "failed"
        assert failed.score == 0
        assert failed.missed[0].startswith("Grading failed: ")


class TestBuildReport:
    """Tests for grade aggregation into a report."""

    def test_latest_grade_wins(self):
        session = PracticeSession.new("b", [Question(id="q1", subject="S", expected_answer="E")])
        grades = [
            StoredGrade("q1", 20, ["a"], ["b", "c", "d"], "first"),
            StoredGrade("q1", 100, ["a"], [], "second"),
        ]

        report = build_report(session, grades)

        assert report.total_score == 100
        assert report.results[0].user_answer == "second"

    def test_failed_grade_status(self):
        session = PracticeSession.new("b", [Question(id="q1", subject="S", expected_answer="E")])
        grades = [StoredGrade("q1", 0, [], ["Grading failed: x"], "u", GradeStatus.FAILED)]

        result = build_report(session, grades).results[0]

        assert result.status == "failed"
        assert result.to_dict()["missed"] == ["Grading failed: x"]
