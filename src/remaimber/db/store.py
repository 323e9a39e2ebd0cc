"""Persistence gateway.

``Store`` is the interface the grading core depends on; ``SQLiteStore`` is
the implementation used by the application. The store receives its
Database at construction and never opens or closes it on its own.
"""

from __future__ import annotations

import json
import sqlite3
from collections import defaultdict
from typing import Protocol

import structlog

from remaimber.core.errors import ConflictError, NotFoundError
from remaimber.core.mastery import QuestionStats, apply_grade, average_mastery, flatten_mastery
from remaimber.core.models import (
    BankType,
    Category,
    Folder,
    GradeStatus,
    Question,
    QuestionBank,
    StoredGrade,
)
from remaimber.core.practice_session import PracticeSession, SessionStatus
from remaimber.db.database import Database

logger = structlog.get_logger(__name__)

GRADING_FAILED_PREFIX = "Grading failed: "


class Store(Protocol):
    """Operations the grading core needs from persistence."""

    def get_bank(self, bank_id: str) -> QuestionBank: ...

    def get_questions_ordered_by_mastery(self, bank_id: str, ascending: bool = True) -> list[Question]: ...

    def save_session(self, session: PracticeSession) -> None: ...

    def get_session(self, session_id: str) -> PracticeSession: ...

    def complete_session(self, session_id: str) -> None: ...

    def save_grade(
        self,
        session_id: str,
        question_id: str,
        score: int,
        covered: list[str],
        missed: list[str],
        user_answer: str,
    ) -> None: ...

    def save_grade_failure(self, session_id: str, question_id: str, user_answer: str, reason: str) -> None: ...

    def get_grades(self, session_id: str) -> list[StoredGrade]: ...

    def update_question_stats(self, question_id: str, score: int) -> QuestionStats: ...


def _stats_from_row(row: sqlite3.Row) -> QuestionStats:
    return QuestionStats(
        question_id=row["question_id"],
        times_answered=row["times_answered"],
        times_correct=row["times_correct"],
        total_score=row["total_score"],
        latest_score=row["latest_score"],
        mastery=row["mastery"],
    )


class SQLiteStore:
    """SQLite implementation of Store plus the CRUD used by the HTTP layer."""

    def __init__(self, db: Database):
        self.db = db

    # ========================================================================
    # Folders & categories
    # ========================================================================

    def save_folder(self, folder: Folder) -> None:
        with self.db.connect() as conn:
            conn.execute("INSERT INTO folders (id, name) VALUES (?, ?)", (folder.id, folder.name))

    def get_folder(self, folder_id: str) -> Folder:
        with self.db.connect() as conn:
            row = conn.execute("SELECT id, name FROM folders WHERE id = ?", (folder_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"folder '{folder_id}' not found")
        return Folder(id=row["id"], name=row["name"])

    def list_folders(self) -> list[Folder]:
        with self.db.connect() as conn:
            rows = conn.execute("SELECT id, name FROM folders ORDER BY name").fetchall()
        return [Folder(id=r["id"], name=r["name"]) for r in rows]

    def save_category(self, category: Category) -> None:
        if category.folder_id is not None:
            self.get_folder(category.folder_id)
        with self.db.connect() as conn:
            conn.execute(
                "INSERT INTO categories (id, name, folder_id) VALUES (?, ?, ?)",
                (category.id, category.name, category.folder_id),
            )

    def get_category(self, category_id: str) -> Category:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT id, name, folder_id FROM categories WHERE id = ?", (category_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"category '{category_id}' not found")
        return Category(id=row["id"], name=row["name"], folder_id=row["folder_id"])

    def list_categories(self, folder_id: str | None = None) -> list[Category]:
        query = "SELECT id, name, folder_id FROM categories"
        params: tuple[str, ...] = ()
        if folder_id is not None:
            query += " WHERE folder_id = ?"
            params = (folder_id,)
        with self.db.connect() as conn:
            rows = conn.execute(query + " ORDER BY name", params).fetchall()
        return [Category(id=r["id"], name=r["name"], folder_id=r["folder_id"]) for r in rows]

    # ========================================================================
    # Banks & questions
    # ========================================================================

    def save_bank(self, bank: QuestionBank) -> None:
        """Insert a bank together with its current questions."""
        if bank.category_id is not None:
            self.get_category(bank.category_id)
        with self.db.connect() as conn:
            conn.execute(
                "INSERT INTO banks (id, subject, category_id, grading_prompt, bank_type) VALUES (?, ?, ?, ?, ?)",
                (bank.id, bank.subject, bank.category_id, bank.grading_prompt, bank.bank_type.value),
            )
            conn.executemany(
                "INSERT INTO questions (id, bank_id, subject, expected_answer, position) VALUES (?, ?, ?, ?, ?)",
                [
                    (q.id, bank.id, q.subject, q.expected_answer, position)
                    for position, q in enumerate(bank.questions)
                ],
            )
        logger.info("bank_saved", bank_id=bank.id, questions=len(bank.questions))

    def get_bank(self, bank_id: str) -> QuestionBank:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT id, subject, category_id, grading_prompt, bank_type FROM banks WHERE id = ?",
                (bank_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"bank '{bank_id}' not found")
            question_rows = conn.execute(
                "SELECT id, subject, expected_answer FROM questions WHERE bank_id = ? ORDER BY position, rowid",
                (bank_id,),
            ).fetchall()

        return QuestionBank(
            id=row["id"],
            subject=row["subject"],
            bank_type=BankType(row["bank_type"]),
            grading_prompt=row["grading_prompt"],
            category_id=row["category_id"],
            questions=[
                Question(id=q["id"], subject=q["subject"], expected_answer=q["expected_answer"])
                for q in question_rows
            ],
        )

    def list_banks(self, category_id: str | None = None) -> list[QuestionBank]:
        query = "SELECT id FROM banks"
        params: tuple[str, ...] = ()
        if category_id is not None:
            query += " WHERE category_id = ?"
            params = (category_id,)
        with self.db.connect() as conn:
            ids = [r["id"] for r in conn.execute(query + " ORDER BY subject", params).fetchall()]
        return [self.get_bank(bank_id) for bank_id in ids]

    def add_question(self, bank_id: str, question: Question) -> None:
        with self.db.connect() as conn:
            if conn.execute("SELECT 1 FROM banks WHERE id = ?", (bank_id,)).fetchone() is None:
                raise NotFoundError(f"bank '{bank_id}' not found")
            conn.execute(
                """
                INSERT INTO questions (id, bank_id, subject, expected_answer, position)
                VALUES (?, ?, ?, ?, (SELECT COALESCE(MAX(position), -1) + 1 FROM questions WHERE bank_id = ?))
                """,
                (question.id, bank_id, question.subject, question.expected_answer, bank_id),
            )

    # ========================================================================
    # Sessions
    # ========================================================================

    def save_session(self, session: PracticeSession) -> None:
        with self.db.connect() as conn:
            conn.execute(
                "INSERT INTO sessions (id, bank_id, status, max_duration_min, focus_on_weak) VALUES (?, ?, ?, ?, ?)",
                (
                    session.id,
                    session.bank_id,
                    session.status.value,
                    session.max_duration_min,
                    int(session.focus_on_weak),
                ),
            )
            conn.executemany(
                """
                INSERT INTO session_questions (session_id, question_id, question_subject, expected_answer, position)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (session.id, q.id, q.subject, q.expected_answer, position)
                    for position, q in enumerate(session.questions)
                ],
            )

    def get_session(self, session_id: str) -> PracticeSession:
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT id, bank_id, status, max_duration_min, focus_on_weak FROM sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"session '{session_id}' not found")
            question_rows = conn.execute(
                """
                SELECT question_id, question_subject, expected_answer
                FROM session_questions WHERE session_id = ? ORDER BY position
                """,
                (session_id,),
            ).fetchall()

        return PracticeSession(
            id=row["id"],
            bank_id=row["bank_id"],
            questions=tuple(
                Question(id=q["question_id"], subject=q["question_subject"], expected_answer=q["expected_answer"])
                for q in question_rows
            ),
            status=SessionStatus(row["status"]),
            max_duration_min=row["max_duration_min"],
            focus_on_weak=bool(row["focus_on_weak"]),
        )

    def complete_session(self, session_id: str) -> None:
        """Mark the session completed; only one caller can ever succeed.

        Raises:
            NotFoundError: Unknown session
            ConflictError: Session already completed
        """
        with self.db.connect() as conn:
            cursor = conn.execute(
                "UPDATE sessions SET status = 'completed', completed_at = datetime('now') WHERE id = ? AND status = 'active'",
                (session_id,),
            )
            if cursor.rowcount == 1:
                return
            exists = conn.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,)).fetchone()

        if exists is None:
            raise NotFoundError(f"session '{session_id}' not found")
        raise ConflictError("session is already completed")

    # ========================================================================
    # Grades
    # ========================================================================

    def _insert_grade(
        self,
        session_id: str,
        question_id: str,
        score: int,
        covered: list[str],
        missed: list[str],
        user_answer: str,
        status: GradeStatus,
    ) -> None:
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO grades (session_id, question_id, score, covered, missed, user_answer, status)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    question_id,
                    score,
                    json.dumps(covered, ensure_ascii=False),
                    json.dumps(missed, ensure_ascii=False),
                    user_answer,
                    status.value,
                ),
            )

    def save_grade(
        self,
        session_id: str,
        question_id: str,
        score: int,
        covered: list[str],
        missed: list[str],
        user_answer: str,
    ) -> None:
        """Store a successful grading result."""
        self._insert_grade(session_id, question_id, score, covered, missed, user_answer, GradeStatus.SUCCESS)

    def save_grade_failure(self, session_id: str, question_id: str, user_answer: str, reason: str) -> None:
        """Store a failed grading so the user sees "grading failed", not "not answered"."""
        self._insert_grade(
            session_id,
            question_id,
            0,
            [],
            [GRADING_FAILED_PREFIX + reason],
            user_answer,
            GradeStatus.FAILED,
        )

    def get_grades(self, session_id: str) -> list[StoredGrade]:
        """All grade records of a session, oldest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                """
                SELECT question_id, score, covered, missed, user_answer, status
                FROM grades WHERE session_id = ? ORDER BY id
                """,
                (session_id,),
            ).fetchall()

        return [
            StoredGrade(
                question_id=r["question_id"],
                score=r["score"],
                covered=json.loads(r["covered"]),
                missed=json.loads(r["missed"]),
                user_answer=r["user_answer"],
                status=GradeStatus(r["status"]),
            )
            for r in rows
        ]

    # ========================================================================
    # Question statistics
    # ========================================================================

    def update_question_stats(self, question_id: str, score: int) -> QuestionStats:
        """Apply one grade to the question's stats in a single write transaction."""
        with self.db.transaction() as conn:
            row = conn.execute(
                """
                SELECT question_id, times_answered, times_correct, total_score, latest_score, mastery
                FROM question_stats WHERE question_id = ?
                """,
                (question_id,),
            ).fetchone()
            current = _stats_from_row(row) if row is not None else None
            updated = apply_grade(current, question_id, score)
            conn.execute(
                """
                INSERT INTO question_stats (question_id, times_answered, times_correct, total_score, latest_score, mastery)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(question_id) DO UPDATE SET
                    times_answered = excluded.times_answered,
                    times_correct = excluded.times_correct,
                    total_score = excluded.total_score,
                    latest_score = excluded.latest_score,
                    mastery = excluded.mastery
                """,
                (
                    updated.question_id,
                    updated.times_answered,
                    updated.times_correct,
                    updated.total_score,
                    updated.latest_score,
                    updated.mastery,
                ),
            )
        return updated

    def get_question_stats(self, question_id: str) -> QuestionStats:
        """Stats for a question; zero stats if it was never answered."""
        with self.db.connect() as conn:
            row = conn.execute(
                """
                SELECT question_id, times_answered, times_correct, total_score, latest_score, mastery
                FROM question_stats WHERE question_id = ?
                """,
                (question_id,),
            ).fetchone()
        if row is None:
            return QuestionStats(question_id=question_id)
        return _stats_from_row(row)

    def get_question_stats_by_bank(self, bank_id: str) -> list[QuestionStats]:
        with self.db.connect() as conn:
            rows = conn.execute(
                """
                SELECT q.id AS question_id,
                       COALESCE(qs.times_answered, 0) AS times_answered,
                       COALESCE(qs.times_correct, 0) AS times_correct,
                       COALESCE(qs.total_score, 0) AS total_score,
                       COALESCE(qs.latest_score, 0) AS latest_score,
                       COALESCE(qs.mastery, 0) AS mastery
                FROM questions q
                LEFT JOIN question_stats qs ON q.id = qs.question_id
                WHERE q.bank_id = ?
                ORDER BY q.position, q.rowid
                """,
                (bank_id,),
            ).fetchall()
        return [_stats_from_row(r) for r in rows]

    def get_questions_ordered_by_mastery(self, bank_id: str, ascending: bool = True) -> list[Question]:
        """Bank questions sorted by mastery; unanswered questions count as 0."""
        order = "ASC" if ascending else "DESC"
        with self.db.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT q.id, q.subject, q.expected_answer, COALESCE(qs.mastery, 0) AS mastery
                FROM questions q
                LEFT JOIN question_stats qs ON q.id = qs.question_id
                WHERE q.bank_id = ?
                ORDER BY mastery {order}, q.position
                """,
                (bank_id,),
            ).fetchall()
        return [Question(id=r["id"], subject=r["subject"], expected_answer=r["expected_answer"]) for r in rows]

    # ========================================================================
    # Aggregated mastery (flatten, then average)
    # ========================================================================

    def _masteries_by_bank(self, where: str, params: tuple[str, ...]) -> list[list[int]]:
        with self.db.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT q.bank_id AS bank_id, COALESCE(qs.mastery, 0) AS mastery
                FROM questions q
                JOIN banks b ON q.bank_id = b.id
                LEFT JOIN categories c ON b.category_id = c.id
                LEFT JOIN question_stats qs ON q.id = qs.question_id
                WHERE {where}
                """,
                params,
            ).fetchall()

        groups: dict[str, list[int]] = defaultdict(list)
        for r in rows:
            groups[r["bank_id"]].append(r["mastery"])
        return list(groups.values())

    def get_bank_mastery(self, bank_id: str) -> int:
        return average_mastery(s.mastery for s in self.get_question_stats_by_bank(bank_id))

    def get_category_mastery(self, category_id: str) -> int:
        return flatten_mastery(self._masteries_by_bank("b.category_id = ?", (category_id,)))

    def get_folder_mastery(self, folder_id: str) -> int:
        return flatten_mastery(self._masteries_by_bank("c.folder_id = ?", (folder_id,)))
