"""Per-role workflow dashboards over the last 30 days."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import List

from qbank.domain.question.models import (
    HistoryEntry,
    STATUS_COMPLETED,
    STATUS_PENDING_CREATOR,
    STATUS_PENDING_EXPLAINER,
    STATUS_PENDING_PROCESSOR,
    STATUS_REJECTED,
    Question,
)
from qbank.persistence.interfaces.question_repository import QuestionFilter, QuestionRepository

DAYS_RANGE = 30

_FORWARDED = {STATUS_PENDING_CREATOR, STATUS_PENDING_EXPLAINER, STATUS_COMPLETED}


def _rate(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _count(questions: List[Question], *statuses: str) -> int:
    return sum(1 for q in questions if q.status in statuses)


def _returned_after_rejection(history: List[HistoryEntry], processor_id: str, since: str) -> bool:
    """A rejection by this processor in the window that was later resubmitted."""
    rejected = False
    for entry in history:
        if entry.timestamp < since:
            continue
        if entry.action == "rejected" and entry.performed_by == processor_id:
            rejected = True
        elif entry.action == "resubmitted" and rejected:
            return True
    return False


class DashboardAppService:
    def __init__(self, repo: QuestionRepository):
        self._repo = repo

    @staticmethod
    def _since() -> str:
        return (datetime.now(timezone.utc) - timedelta(days=DAYS_RANGE)).isoformat()

    def gatherer(self, user_id: str) -> dict:
        created = self._repo.list(QuestionFilter(created_by=user_id, created_since=self._since()))
        # In the processor's hands after an earlier acceptance counts as accepted
        accepted = sum(
            1 for q in created
            if q.status in _FORWARDED or (q.status == STATUS_PENDING_PROCESSOR and q.approved_by)
        )
        return {
            "performance": {
                "acceptance_rate": _rate(accepted, len(created)),
                "rejection_rate": _rate(_count(created, STATUS_REJECTED), len(created)),
                "days_range": DAYS_RANGE,
            },
            "pending_tasks": self._repo.count(QuestionFilter(
                created_by=user_id, statuses=[STATUS_PENDING_PROCESSOR],
            )),
        }

    def processor(self, user_id: str) -> dict:
        since = self._since()
        handled = self._repo.list(QuestionFilter(assigned_processor_id=user_id, updated_since=since))
        approved = _count(handled, *_FORWARDED)
        returned = sum(
            1 for q in handled
            if _returned_after_rejection(self._repo.get_history(q.id), user_id, since)
        )
        return {
            "performance": {
                "approval_rate": _rate(approved, len(handled)),
                "feedback_accuracy": _rate(_count(handled, STATUS_COMPLETED), approved),
                "returned_cases": returned,
                "days_range": DAYS_RANGE,
            },
            "pending_tasks": self._repo.count(QuestionFilter(statuses=[STATUS_PENDING_PROCESSOR])),
        }

    def creator(self, user_id: str) -> dict:
        variants = self._repo.list(QuestionFilter(
            created_by=user_id, is_variant=True, created_since=self._since(),
        ))
        sent_back = _count(variants, STATUS_REJECTED) + sum(1 for q in variants if q.is_flagged)
        return {
            "performance": {
                "variant_completion_rate": _rate(_count(variants, STATUS_COMPLETED), len(variants)),
                "sent_back_rate": _rate(sent_back, len(variants)),
                "approved_variants": _count(variants, STATUS_PENDING_EXPLAINER, STATUS_COMPLETED),
                "days_range": DAYS_RANGE,
            },
            "pending_tasks": self._repo.count(QuestionFilter(statuses=[STATUS_PENDING_CREATOR])),
        }

    def explainer(self, user_id: str) -> dict:
        assigned = self._repo.list(QuestionFilter(assigned_explainer_id=user_id, updated_since=self._since()))
        explained = sum(
            1 for q in assigned
            if q.status not in (STATUS_PENDING_EXPLAINER, STATUS_REJECTED) and q.explanation.strip()
        )
        drafts = sum(1 for q in assigned if q.status == STATUS_PENDING_EXPLAINER and q.explanation.strip())
        return {
            "performance": {
                "explanation_completion_rate": _rate(explained, len(assigned)),
                "quality_score": _rate(_count(assigned, STATUS_COMPLETED, STATUS_PENDING_PROCESSOR), len(assigned)),
                "drafts": drafts,
                "days_range": DAYS_RANGE,
            },
            "pending_tasks": self._repo.count(QuestionFilter(statuses=[STATUS_PENDING_EXPLAINER])),
        }
