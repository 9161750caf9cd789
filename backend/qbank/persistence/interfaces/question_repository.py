"""Abstract repository interface for the Question aggregate."""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from qbank.domain.question.models import Comment, HistoryEntry, Question


@dataclass
class QuestionFilter:
    statuses: Optional[List[str]] = None
    created_by: Optional[str] = None
    is_variant: Optional[bool] = None
    is_visible: Optional[bool] = None
    original_question_id: Optional[str] = None
    assigned_processor_id: Optional[str] = None
    assigned_creator_id: Optional[str] = None
    assigned_explainer_id: Optional[str] = None
    exam: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    search: Optional[str] = None
    updated_since: Optional[str] = None
    created_since: Optional[str] = None


class QuestionRepository(ABC):

    @abstractmethod
    def add(self, question: Question) -> None:
        """Insert a new question row together with its history entries."""
        ...

    @abstractmethod
    def save(self, question: Question) -> bool:
        """
        Update the question row and append its unsaved history entries in one
        transaction, guarded by ``question.version``. Returns False when another
        writer saved first.
        """
        ...

    @abstractmethod
    def add_variant(self, original: Question, variant: Question) -> bool:
        """Save the original and insert its new variant atomically. False when the original is stale."""
        ...

    @abstractmethod
    def get_by_id(self, question_id: str) -> Optional[Question]:
        """Return the Question with its history populated, or None."""
        ...

    @abstractmethod
    def list(self, filters: QuestionFilter, limit: Optional[int] = None, offset: int = 0) -> List[Question]:
        """Return matching questions, newest first. History is not populated."""
        ...

    @abstractmethod
    def count(self, filters: QuestionFilter) -> int:
        ...

    @abstractmethod
    def count_by_status(self, created_by: Optional[str] = None) -> List[Tuple[str, int]]:
        ...

    @abstractmethod
    def count_variants(self, original_question_id: str) -> int:
        ...

    @abstractmethod
    def get_history(self, question_id: str) -> List[HistoryEntry]:
        """Return history ordered by timestamp, then insertion order."""
        ...

    @abstractmethod
    def add_comment(self, comment: Comment) -> None:
        ...

    @abstractmethod
    def get_comments(self, question_id: str) -> List[Comment]:
        ...
