"""User domain model and role constants."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"
VALID_ROLES = {ROLE_STUDENT, ROLE_ADMIN, ROLE_SUPERADMIN}

ADMIN_ROLES = {"gatherer", "processor", "creator", "explainer"}

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
VALID_USER_STATUSES = {STATUS_ACTIVE, STATUS_SUSPENDED}


@dataclass
class User:
    id: str
    username: str
    password_hash: str
    role: str
    created_at: str
    updated_at: str
    admin_role: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    status: str = STATUS_ACTIVE

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN

    @property
    def is_suspended(self) -> bool:
        return self.status == STATUS_SUSPENDED
