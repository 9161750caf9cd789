"""Application service — orchestrates load → domain op → persist for questions."""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from qbank.domain.common.result import Result
from qbank.domain.question.models import (
    PENDING_STATUSES,
    ROLE_STUDENT,
    STATUS_COMPLETED,
    STATUS_PENDING_PROCESSOR,
    STATUS_REJECTED,
    VALID_STATUSES,
    Comment,
    HistoryEntry,
    Question,
)
from qbank.domain.question.rules import ROLE_QUEUE_STATUS, in_role_queue, is_visibly_flagged
from qbank.domain.question.service import QuestionDomainService
from qbank.domain.user.models import User
from qbank.persistence.interfaces.question_repository import QuestionFilter, QuestionRepository

logger = logging.getLogger(__name__)

# Admin question bank tabs
TAB_ALL = "all"
TAB_PENDING = "pending"
TAB_COMPLETED = "completed"
TAB_REJECTED = "rejected"
TAB_FLAGGED = "flagged"
TAB_VARIANTS = "variants"
VALID_TABS = {TAB_ALL, TAB_PENDING, TAB_COMPLETED, TAB_REJECTED, TAB_FLAGGED, TAB_VARIANTS}

_STALE_WRITE = "Question was modified by another request. Reload it and try again."


class QuestionAppService:
    def __init__(self, repo: QuestionRepository, explanation_requires_review: bool = False):
        self._repo = repo
        self._domain = QuestionDomainService(explanation_requires_review=explanation_requires_review)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load(self, question_id: str) -> Result[Question]:
        question = self._repo.get_by_id(question_id)
        if not question:
            return Result.not_found(f"Question '{question_id}' not found.")
        return Result.ok(question)

    def _persist(self, result: Result[Question], previous_status: Optional[str] = None) -> Result[Question]:
        if not result.is_success:
            return result
        question = result.value
        if not self._repo.save(question):
            return Result.conflict(_STALE_WRITE)
        if previous_status is not None and previous_status != question.status:
            logger.info("Question %s moved %s -> %s", question.id, previous_status, question.status)
        return Result.ok(question)

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    def create_question(self, gatherer_id: str, data: dict) -> Result[Question]:
        result = self._domain.create_question(gatherer_id, data)
        if not result.is_success:
            return result
        self._repo.add(result.value)
        logger.info("Question %s submitted by gatherer %s", result.value.id, gatherer_id)
        return result

    def create_variant(self, original_id: str, creator_id: str, data: dict) -> Result[Question]:
        loaded = self._load(original_id)
        if not loaded.is_success:
            return loaded
        original = loaded.value
        variant_number = self._repo.count_variants(original.id) + 1

        result = self._domain.create_variant(original, creator_id, data, variant_number)
        if not result.is_success:
            return Result.propagate(result)
        variant, original = result.value
        if not self._repo.add_variant(original, variant):
            return Result.conflict(_STALE_WRITE)
        logger.info("Variant %s (#%d) created from question %s", variant.id, variant_number, original.id)
        return Result.ok(variant)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def get_question(self, question_id: str) -> Result[Question]:
        return self._load(question_id)

    def get_history(self, question_id: str) -> Result[List[HistoryEntry]]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return Result.propagate(loaded)
        return Result.ok(loaded.value.history)

    def list_gatherer_questions(
        self,
        gatherer_id: str,
        status: Optional[str] = None,
        flagged: Optional[bool] = None,
    ) -> Result[List[Question]]:
        if status is not None and status not in VALID_STATUSES:
            return Result.fail(f"'{status}' is not a valid status. Must be one of {sorted(VALID_STATUSES)}.")
        questions = self._repo.list(QuestionFilter(
            created_by=gatherer_id,
            statuses=[status] if status else None,
        ))
        if flagged is not None:
            questions = [q for q in questions if is_visibly_flagged(q) == flagged]
        return Result.ok(questions)

    def list_queue(self, role: str, flagged: Optional[bool] = None) -> List[Question]:
        """Questions actionable by (or awaiting correction from) a workflow role."""
        statuses = {STATUS_PENDING_PROCESSOR, STATUS_REJECTED}
        if role in ROLE_QUEUE_STATUS:
            statuses.add(ROLE_QUEUE_STATUS[role])
        questions = self._repo.list(QuestionFilter(statuses=sorted(statuses)))
        questions = [q for q in questions if in_role_queue(q, role)]
        if flagged is not None:
            questions = [q for q in questions if is_visibly_flagged(q) == flagged]
        return questions

    def list_completed(
        self,
        exam: Optional[str] = None,
        subject: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> List[Question]:
        return self._repo.list(QuestionFilter(
            statuses=[STATUS_COMPLETED], is_visible=True, exam=exam, subject=subject, topic=topic,
        ))

    # ------------------------------------------------------------------
    # Processor
    # ------------------------------------------------------------------
    def accept(
        self,
        question_id: str,
        processor_id: str,
        destination: Optional[str] = None,
        assignee_id: Optional[str] = None,
    ) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status
        return self._persist(self._domain.accept(question, processor_id, destination, assignee_id), before)

    def reject(self, question_id: str, processor_id: str, reason: Optional[str]) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status
        return self._persist(self._domain.reject(question, processor_id, reason), before)

    def review_flag(
        self,
        question_id: str,
        processor_id: str,
        decision: str,
        rejection_reason: Optional[str] = None,
    ) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status

        result = self._domain.review_flag(question, processor_id, decision, rejection_reason)
        if not result.is_success:
            return Result.propagate(result)
        question, changed = result.value
        if not changed:
            return Result.ok(question)
        logger.info("Flag on question %s reviewed: %s", question.id, decision)
        return self._persist(Result.ok(question), before)

    # ------------------------------------------------------------------
    # Superadmin
    # ------------------------------------------------------------------
    def set_visibility(self, question_id: str, admin_id: str, is_visible: bool) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        result = self._domain.set_visibility(loaded.value, admin_id, is_visible)
        if not result.is_success:
            return Result.propagate(result)
        question, changed = result.value
        if not changed:
            return Result.ok(question)
        logger.info("Question %s %s by %s", question.id, "shown" if is_visible else "hidden", admin_id)
        return self._persist(Result.ok(question))

    # ------------------------------------------------------------------
    # Creator / explainer
    # ------------------------------------------------------------------
    def submit_creator_update(self, question_id: str, creator_id: str, data: dict) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status
        return self._persist(self._domain.submit_creator_update(question, creator_id, data), before)

    def submit_explanation(self, question_id: str, explainer_id: str, explanation: Optional[str]) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status
        return self._persist(self._domain.submit_explanation(question, explainer_id, explanation), before)

    # ------------------------------------------------------------------
    # Corrections and flags
    # ------------------------------------------------------------------
    def resubmit(self, question_id: str, actor_id: str, actor_role: str, data: dict) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        before = question.status
        return self._persist(self._domain.resubmit(question, actor_id, actor_role, data), before)

    def raise_flag(self, question_id: str, user_id: str, actor_role: str, reason: Optional[str]) -> Result[Question]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return loaded
        question = loaded.value
        if actor_role == ROLE_STUDENT and not question.is_visible:
            return Result.not_found(f"Question '{question_id}' not found.")
        before = question.status
        result = self._persist(self._domain.raise_flag(question, user_id, actor_role, reason), before)
        if result.is_success:
            logger.info("Question %s flagged by %s %s", question.id, actor_role, user_id)
        return result

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    def get_comments(self, question_id: str) -> Result[List[Comment]]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return Result.propagate(loaded)
        return Result.ok(self._repo.get_comments(question_id))

    def add_comment(self, question_id: str, author: User, body: Optional[str]) -> Result[Comment]:
        loaded = self._load(question_id)
        if not loaded.is_success:
            return Result.propagate(loaded)
        text = (body or "").strip()
        if not text:
            return Result.fail("Comment 'body' is required and cannot be empty.")
        comment = Comment(
            id=str(uuid.uuid4()),
            question_id=question_id,
            author_id=author.id,
            author_name=author.display_name or author.username,
            body=text,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._repo.add_comment(comment)
        return Result.ok(comment)

    # ------------------------------------------------------------------
    # Admin question bank
    # ------------------------------------------------------------------
    def admin_list(
        self,
        tab: str = TAB_ALL,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Result[Tuple[List[Question], int]]:
        if tab not in VALID_TABS:
            return Result.fail(f"'{tab}' is not a valid tab. Must be one of {sorted(VALID_TABS)}.")
        if status is not None and status not in VALID_STATUSES:
            return Result.fail(f"'{status}' is not a valid status. Must be one of {sorted(VALID_STATUSES)}.")
        if page < 1 or page_size < 1:
            return Result.fail("'page' and 'page_size' must be positive.")

        filters = QuestionFilter(search=search)
        if status:
            filters.statuses = [status]
        elif tab == TAB_PENDING:
            filters.statuses = sorted(PENDING_STATUSES)
        elif tab == TAB_COMPLETED:
            filters.statuses = [STATUS_COMPLETED]
        elif tab == TAB_REJECTED:
            filters.statuses = [STATUS_REJECTED]
        if tab == TAB_VARIANTS:
            filters.is_variant = True

        offset = (page - 1) * page_size
        if tab == TAB_FLAGGED:
            flagged = [q for q in self._repo.list(filters) if is_visibly_flagged(q)]
            return Result.ok((flagged[offset:offset + page_size], len(flagged)))
        total = self._repo.count(filters)
        return Result.ok((self._repo.list(filters, limit=page_size, offset=offset), total))

    def stats(self) -> dict:
        by_status = dict(self._repo.count_by_status())
        flagged = [q for q in self._repo.list(QuestionFilter(statuses=[STATUS_PENDING_PROCESSOR])) if is_visibly_flagged(q)]
        return {
            "total": sum(by_status.values()),
            "by_status": {s: by_status.get(s, 0) for s in sorted(VALID_STATUSES)},
            "pending": sum(by_status.get(s, 0) for s in PENDING_STATUSES),
            "flagged": len(flagged),
            "variants": self._repo.count(QuestionFilter(is_variant=True)),
        }


