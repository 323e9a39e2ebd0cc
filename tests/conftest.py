"""Shared fixtures: a temporary SQLite store, canned graders, mock LLM clients."""

import json
import threading
from unittest.mock import MagicMock

import pytest
import structlog

from remaimber.config.app_config import AppConfig, DatabaseSettings, clear_config_cache
from remaimber.core.errors import GradeError
from remaimber.core.grader import GradeOutcome, compute_score
from remaimber.core.models import BankType, Question, QuestionBank
from remaimber.db.database import Database
from remaimber.db.store import SQLiteStore


class FakeGrader:
    """Grader returning canned outcomes, keyed by the user's answer.

    Answers listed in ``failing`` raise GradeError. When ``gate`` is set,
    every call blocks until it is released, which lets tests observe
    grades that are still in flight.
    """

    def __init__(self, outcomes=None, failing=(), gate=None):
        self.outcomes = outcomes or {}
        self.failing = set(failing)
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def grade(self, question, expected_answer, user_answer, grading_prompt, bank_type):
        with self._lock:
            self.calls.append(
                {
                    "question": question,
                    "expected_answer": expected_answer,
                    "user_answer": user_answer,
                    "grading_prompt": grading_prompt,
                    "bank_type": bank_type,
                }
            )
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if user_answer in self.failing:
            raise GradeError("failed after 2 attempts", RuntimeError("oracle down"))
        covered, missed = self.outcomes.get(user_answer, (["point"], []))
        return GradeOutcome(score=compute_score(covered, missed), covered=covered, missed=missed)


@pytest.fixture(autouse=True)
def _fresh_process_state():
    """Config and logging are process-wide; keep tests independent."""
    clear_config_cache()
    yield
    clear_config_cache()
    structlog.reset_defaults()


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(tmp_path / "test.db")
    database.init()
    return database


@pytest.fixture
def store(db) -> SQLiteStore:
    return SQLiteStore(db)


@pytest.fixture
def sample_bank(store) -> QuestionBank:
    """A theory bank with three questions, saved to the store."""
    bank = QuestionBank.new("Go concurrency", bank_type=BankType.THEORY)
    bank.questions = [
        Question.new("What is a goroutine?", "- lightweight thread\n- managed by the runtime"),
        Question.new("What is a channel?", "- typed conduit\n- used to communicate"),
        Question.new("What does select do?", "- waits on multiple channel operations"),
    ]
    store.save_bank(bank)
    return bank


@pytest.fixture
def fake_grader() -> FakeGrader:
    return FakeGrader()


@pytest.fixture
def grading_gate() -> threading.Event:
    return threading.Event()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(database=DatabaseSettings(path=str(tmp_path / "api.db")))


@pytest.fixture
def mock_llm_client():
    """LLM client whose complete() returns a valid grading reply."""
    client = MagicMock()
    client.complete.return_value = json.dumps(
        {"covered": ["lightweight thread"], "missed": ["managed by the runtime"]}
    )
    return client


@pytest.fixture
def make_grader():
    """Factory for FakeGrader with custom outcomes, failures or a gate."""
    return FakeGrader
