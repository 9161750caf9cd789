"""SQLite implementation of AnswerRepository."""
from __future__ import annotations
import json
from typing import List, Optional

from qbank.domain.practice.models import AnswerItem, StudentAnswer
from qbank.persistence.db import Database
from qbank.persistence.interfaces.answer_repository import AnswerRepository


def _row_to_answer(row) -> StudentAnswer:
    return StudentAnswer(
        id=row["id"],
        student_id=row["student_id"],
        mode=row["mode"],
        question_id=row["question_id"],
        selected_answer=row["selected_answer"],
        is_correct=None if row["is_correct"] is None else bool(row["is_correct"]),
        answers=[AnswerItem(**a) for a in json.loads(row["answers"] or "[]")],
        total_questions=row["total_questions"],
        correct_answers=row["correct_answers"],
        incorrect_answers=row["incorrect_answers"],
        score=row["score"],
        percentage=row["percentage"],
        created_at=row["created_at"],
    )


class SqliteAnswerRepository(AnswerRepository):

    def __init__(self, db: Database):
        self._db = db

    def add(self, answer: StudentAnswer) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO student_answers (
                    id, student_id, mode, question_id, selected_answer, is_correct, answers,
                    total_questions, correct_answers, incorrect_answers, score, percentage, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    answer.id,
                    answer.student_id,
                    answer.mode,
                    answer.question_id,
                    answer.selected_answer,
                    None if answer.is_correct is None else int(answer.is_correct),
                    json.dumps([vars(a) for a in answer.answers]),
                    answer.total_questions,
                    answer.correct_answers,
                    answer.incorrect_answers,
                    answer.score,
                    answer.percentage,
                    answer.created_at,
                ),
            )

    def list_for_student(self, student_id: str, mode: Optional[str] = None) -> List[StudentAnswer]:
        sql = "SELECT * FROM student_answers WHERE student_id = ?"
        params: list = [student_id]
        if mode:
            sql += " AND mode = ?"
            params.append(mode)
        with self._db.transaction() as conn:
            rows = conn.execute(sql + " ORDER BY created_at DESC", params).fetchall()
        return [_row_to_answer(r) for r in rows]

    def get_for_student(self, student_id: str, answer_id: str) -> Optional[StudentAnswer]:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM student_answers WHERE id = ? AND student_id = ?", (answer_id, student_id)
            ).fetchone()
        return _row_to_answer(row) if row else None
