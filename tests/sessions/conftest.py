"""Fixtures for session, orchestrator and practice service tests."""

import pytest

from remaimber.core.orchestrator import GradingOrchestrator
from remaimber.core.practice_service import PracticeService
from remaimber.core.practice_session import PracticeSession


@pytest.fixture
def saved_session(store, sample_bank) -> PracticeSession:
    session = PracticeSession.new(sample_bank.id, sample_bank.questions)
    store.save_session(session)
    return session


@pytest.fixture
def service_factory(store):
    def _make(grader):
        return PracticeService(store, GradingOrchestrator(store, grader))

    return _make
