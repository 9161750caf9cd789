"""Abstract repository interface for student practice answers."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from qbank.domain.practice.models import StudentAnswer


class AnswerRepository(ABC):

    @abstractmethod
    def add(self, answer: StudentAnswer) -> None:
        ...

    @abstractmethod
    def list_for_student(self, student_id: str, mode: Optional[str] = None) -> List[StudentAnswer]:
        """Newest first."""
        ...

    @abstractmethod
    def get_for_student(self, student_id: str, answer_id: str) -> Optional[StudentAnswer]:
        ...
