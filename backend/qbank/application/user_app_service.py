"""Application service — accounts, staff management and the bootstrap superadmin."""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from qbank.core.security import hash_password, verify_password
from qbank.domain.common.result import Result
from qbank.domain.user.models import (
    ADMIN_ROLES,
    ROLE_ADMIN,
    ROLE_STUDENT,
    ROLE_SUPERADMIN,
    STATUS_ACTIVE,
    VALID_ROLES,
    VALID_USER_STATUSES,
    User,
)
from qbank.persistence.interfaces.user_repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserAppService:
    def __init__(self, repo: UserRepository):
        self._repo = repo

    def _new_user(self, data: dict, role: str, admin_role: Optional[str] = None) -> Result[User]:
        username = (data.get("username") or "").strip()
        if not username:
            return Result.fail("'username' is required and cannot be empty.")
        password = data.get("password") or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            return Result.fail(f"'password' must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self._repo.get_by_username(username):
            return Result.conflict(f"Username '{username}' is already taken.")

        now = _now_iso()
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=hash_password(password),
            role=role,
            admin_role=admin_role,
            display_name=data.get("display_name"),
            email=data.get("email"),
            status=STATUS_ACTIVE,
            created_at=now,
            updated_at=now,
        )
        self._repo.add(user)
        logger.info("User %s created with role %s%s", username, role, f"/{admin_role}" if admin_role else "")
        return Result.ok(user)

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------
    def register_student(self, data: dict) -> Result[User]:
        return self._new_user(data, ROLE_STUDENT)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        user = self._repo.get_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._repo.get_by_id(user_id)

    def update_profile(self, user_id: str, display_name: Optional[str], email: Optional[str]) -> Result[User]:
        user = self._repo.get_by_id(user_id)
        if not user:
            return Result.not_found("User not found.")
        if display_name is not None:
            user.display_name = display_name
        if email is not None:
            user.email = email
        user.updated_at = _now_iso()
        self._repo.save(user)
        return Result.ok(user)

    # ------------------------------------------------------------------
    # Superadmin management
    # ------------------------------------------------------------------
    def create_user(self, data: dict) -> Result[User]:
        role = data.get("role") or ROLE_ADMIN
        if role not in VALID_ROLES:
            return Result.fail(f"'{role}' is not a valid role. Must be one of {sorted(VALID_ROLES)}.")
        admin_role = data.get("admin_role")
        if role == ROLE_ADMIN and admin_role not in ADMIN_ROLES:
            return Result.fail(f"Admins need an 'admin_role', one of {sorted(ADMIN_ROLES)}.")
        if role != ROLE_ADMIN:
            admin_role = None
        return self._new_user(data, role, admin_role)

    def list_users(self, role: Optional[str] = None, admin_role: Optional[str] = None) -> List[User]:
        return self._repo.list(role=role, admin_role=admin_role)

    def set_status(self, user_id: str, status: str, actor_id: str) -> Result[User]:
        if status not in VALID_USER_STATUSES:
            return Result.fail(f"'{status}' is not a valid status. Must be one of {sorted(VALID_USER_STATUSES)}.")
        user = self._repo.get_by_id(user_id)
        if not user:
            return Result.not_found(f"User '{user_id}' not found.")
        if user.id == actor_id:
            return Result.forbidden("You cannot change your own account status.")
        user.status = status
        user.updated_at = _now_iso()
        self._repo.save(user)
        logger.info("User %s status set to %s by %s", user.username, status, actor_id)
        return Result.ok(user)

    def ensure_superadmin(self, username: str, password: str) -> None:
        """Create the first superadmin account when no users exist yet."""
        if self._repo.count() > 0:
            return
        result = self._new_user({"username": username, "password": password}, ROLE_SUPERADMIN)
        if not result.is_success:
            raise RuntimeError(f"Could not seed superadmin: {result.error}")
