"""SQLite implementation of UserRepository."""
from __future__ import annotations
from typing import List, Optional

from qbank.domain.user.models import User
from qbank.persistence.db import Database
from qbank.persistence.interfaces.user_repository import UserRepository


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=row["role"],
        admin_role=row["admin_role"],
        display_name=row["display_name"],
        email=row["email"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqliteUserRepository(UserRepository):

    def __init__(self, db: Database):
        self._db = db

    def add(self, user: User) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (id, username, password_hash, role, admin_role, display_name, email, status, created_at, updated_at)
                VALUES (:id, :username, :password_hash, :role, :admin_role, :display_name, :email, :status, :created_at, :updated_at)
                """,
                vars(user),
            )

    def save(self, user: User) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE users SET
                    password_hash = :password_hash,
                    admin_role    = :admin_role,
                    display_name  = :display_name,
                    email         = :email,
                    status        = :status,
                    updated_at    = :updated_at
                WHERE id = :id
                """,
                vars(user),
            )

    def get_by_id(self, user_id: str) -> Optional[User]:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return _row_to_user(row) if row else None

    def list(self, role: Optional[str] = None, admin_role: Optional[str] = None) -> List[User]:
        sql = "SELECT * FROM users WHERE 1 = 1"
        params: list = []
        if role:
            sql += " AND role = ?"
            params.append(role)
        if admin_role:
            sql += " AND admin_role = ?"
            params.append(admin_role)
        with self._db.transaction() as conn:
            rows = conn.execute(sql + " ORDER BY created_at DESC", params).fetchall()
        return [_row_to_user(r) for r in rows]

    def count(self) -> int:
        with self._db.transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
