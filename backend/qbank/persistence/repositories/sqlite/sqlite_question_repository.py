"""SQLite implementation of QuestionRepository."""
from __future__ import annotations
import json
import sqlite3
from typing import List, Optional, Tuple

from qbank.domain.question.models import Comment, HistoryEntry, Question
from qbank.persistence.db import Database
from qbank.persistence.interfaces.question_repository import QuestionFilter, QuestionRepository

# Columns written on every save, in a fixed order
_COLUMNS = (
    "id", "question_text", "question_type", "options", "correct_answer", "difficulty",
    "exam", "subject", "topic", "subtopic", "explanation", "notes", "status",
    "is_variant", "variant_number", "original_question_id", "rejection_reason",
    "is_flagged", "flag_type", "flag_reason", "flag_status", "flag_rejection_reason",
    "flagged_by", "pre_flag_status", "correction_role", "is_visible", "created_by",
    "assigned_processor_id", "assigned_creator_id", "assigned_explainer_id",
    "approved_by", "rejected_by", "last_modified_by", "version", "created_at", "updated_at",
)
_BOOL_COLUMNS = {"is_variant", "is_flagged", "is_visible"}


def _question_params(q: Question) -> dict:
    params = {c: getattr(q, c) for c in _COLUMNS}
    params["options"] = json.dumps(q.options)
    for c in _BOOL_COLUMNS:
        params[c] = int(getattr(q, c))
    return params


def _row_to_question(row, history: Optional[List[HistoryEntry]] = None) -> Question:
    data = {c: row[c] for c in _COLUMNS}
    data["options"] = json.loads(row["options"] or "{}")
    for c in _BOOL_COLUMNS:
        data[c] = bool(row[c])
    return Question(**data, history=history or [])


def _row_to_history(row) -> HistoryEntry:
    return HistoryEntry(
        id=row["id"],
        action=row["action"],
        role=row["role"],
        performed_by=row["performed_by"],
        timestamp=row["timestamp"],
        notes=row["notes"],
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row["id"],
        question_id=row["question_id"],
        author_id=row["author_id"],
        author_name=row["author_name"],
        body=row["body"],
        created_at=row["created_at"],
    )


def _where(filters: QuestionFilter) -> Tuple[str, list]:
    clauses: List[str] = []
    params: list = []
    if filters.statuses:
        clauses.append(f"status IN ({', '.join('?' for _ in filters.statuses)})")
        params.extend(filters.statuses)
    for column in (
        "created_by", "original_question_id", "assigned_processor_id",
        "assigned_creator_id", "assigned_explainer_id", "exam", "subject", "topic",
    ):
        value = getattr(filters, column)
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)
    for column in ("is_variant", "is_visible"):
        value = getattr(filters, column)
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(int(value))
    if filters.updated_since:
        clauses.append("updated_at >= ?")
        params.append(filters.updated_since)
    if filters.created_since:
        clauses.append("created_at >= ?")
        params.append(filters.created_since)
    if filters.search and filters.search.strip():
        term = f"%{filters.search.strip()}%"
        clauses.append(
            "(question_text LIKE ? OR explanation LIKE ? OR status LIKE ? OR id IN "
            "(SELECT question_id FROM question_history WHERE notes LIKE ?))"
        )
        params.extend([term, term, term, term])
    sql = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return sql, params


class SqliteQuestionRepository(QuestionRepository):

    def __init__(self, db: Database):
        self._db = db

    @staticmethod
    def _insert_history(conn: sqlite3.Connection, question: Question) -> None:
        for entry in question.pending_history():
            cur = conn.execute(
                """
                INSERT INTO question_history (question_id, action, role, performed_by, timestamp, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (question.id, entry.action, entry.role, entry.performed_by, entry.timestamp, entry.notes),
            )
            entry.id = cur.lastrowid

    @classmethod
    def _insert(cls, conn: sqlite3.Connection, question: Question) -> None:
        conn.execute(
            f"INSERT INTO questions ({', '.join(_COLUMNS)}) VALUES ({', '.join(':' + c for c in _COLUMNS)})",
            _question_params(question),
        )
        cls._insert_history(conn, question)

    @classmethod
    def _update(cls, conn: sqlite3.Connection, question: Question) -> bool:
        params = _question_params(question)
        params["version"] = question.version + 1
        params["expected_version"] = question.version
        assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS if c not in ("id", "created_at"))
        cur = conn.execute(
            f"UPDATE questions SET {assignments} WHERE id = :id AND version = :expected_version",
            params,
        )
        if cur.rowcount == 0:
            return False
        cls._insert_history(conn, question)
        return True

    def add(self, question: Question) -> None:
        question.version = 1
        with self._db.transaction() as conn:
            self._insert(conn, question)

    def save(self, question: Question) -> bool:
        with self._db.transaction() as conn:
            if not self._update(conn, question):
                return False
        question.version += 1
        return True

    def add_variant(self, original: Question, variant: Question) -> bool:
        with self._db.transaction() as conn:
            if not self._update(conn, original):
                return False
            variant.version = 1
            self._insert(conn, variant)
        original.version += 1
        return True

    def get_by_id(self, question_id: str) -> Optional[Question]:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM questions WHERE id = ?", (question_id,)).fetchone()
            if not row:
                return None
            history_rows = conn.execute(
                "SELECT * FROM question_history WHERE question_id = ? ORDER BY timestamp ASC, id ASC",
                (question_id,),
            ).fetchall()
        return _row_to_question(row, [_row_to_history(h) for h in history_rows])

    def list(self, filters: QuestionFilter, limit: Optional[int] = None, offset: int = 0) -> List[Question]:
        where, params = _where(filters)
        sql = f"SELECT * FROM questions{where} ORDER BY created_at DESC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = params + [limit, offset]
        with self._db.transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_question(r) for r in rows]

    def count(self, filters: QuestionFilter) -> int:
        where, params = _where(filters)
        with self._db.transaction() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM questions{where}", params).fetchone()
        return row[0]

    def count_by_status(self, created_by: Optional[str] = None) -> List[Tuple[str, int]]:
        where, params = _where(QuestionFilter(created_by=created_by))
        with self._db.transaction() as conn:
            rows = conn.execute(
                f"SELECT status, COUNT(*) AS n FROM questions{where} GROUP BY status", params
            ).fetchall()
        return [(r["status"], r["n"]) for r in rows]

    def count_variants(self, original_question_id: str) -> int:
        return self.count(QuestionFilter(original_question_id=original_question_id, is_variant=True))

    def get_history(self, question_id: str) -> List[HistoryEntry]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM question_history WHERE question_id = ? ORDER BY timestamp ASC, id ASC",
                (question_id,),
            ).fetchall()
        return [_row_to_history(r) for r in rows]

    def add_comment(self, comment: Comment) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO question_comments (id, question_id, author_id, author_name, body, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (comment.id, comment.question_id, comment.author_id, comment.author_name, comment.body, comment.created_at),
            )

    def get_comments(self, question_id: str) -> List[Comment]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM question_comments WHERE question_id = ? ORDER BY created_at ASC",
                (question_id,),
            ).fetchall()
        return [_row_to_comment(r) for r in rows]
