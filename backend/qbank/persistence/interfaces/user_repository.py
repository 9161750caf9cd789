"""Abstract repository interface for users."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from qbank.domain.user.models import User


class UserRepository(ABC):

    @abstractmethod
    def add(self, user: User) -> None:
        ...

    @abstractmethod
    def save(self, user: User) -> None:
        ...

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def list(self, role: Optional[str] = None, admin_role: Optional[str] = None) -> List[User]:
        ...

    @abstractmethod
    def count(self) -> int:
        ...
