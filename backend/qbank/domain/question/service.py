"""Domain service — pure business logic for the question review workflow."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional

from qbank.domain.common.result import Result
from qbank.domain.question.models import (
    ROLE_CREATOR,
    ROLE_EXPLAINER,
    ROLE_GATHERER,
    ROLE_PROCESSOR,
    STATUS_PENDING_CREATOR,
    STATUS_PENDING_EXPLAINER,
    HistoryEntry,
    Question,
)
from qbank.domain.question.rules import (
    ACTION_ACCEPT,
    ACTION_APPROVE_FLAG,
    ACTION_RAISE_FLAG,
    ACTION_REJECT,
    ACTION_REJECT_FLAG,
    ACTION_RESUBMIT,
    ACTION_SUBMIT,
    ACTION_SUBMIT_EXPLANATION,
    ACTION_SUBMIT_UPDATE,
    DESTINATION_COMPLETED,
    DESTINATION_PROCESSOR,
    default_accept_destination,
    last_submitter_role,
    normalize_options,
    transition,
    validate_question_content,
)
from qbank.domain.user.models import ROLE_SUPERADMIN

CONTENT_FIELDS = (
    "question_text", "question_type", "options", "correct_answer", "difficulty",
    "exam", "subject", "topic", "subtopic", "explanation", "notes",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _required_text(value: Optional[str], name: str) -> Result[str]:
    text = (value or "").strip()
    if not text:
        return Result.fail(f"'{name}' is required and cannot be empty.")
    return Result.ok(text)


class QuestionDomainService:
    """
    Pure domain operations — no I/O. All methods return Result[T].
    Each successful operation appends one history entry to the question.
    The application layer persists the question and its new entries together.
    """

    def __init__(self, explanation_requires_review: bool = False):
        self._explanation_requires_review = explanation_requires_review

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _record(question: Question, action: str, role: str, user_id: str, notes: str, now: str) -> None:
        question.history.append(HistoryEntry(
            action=action,
            role=role,
            performed_by=user_id,
            timestamp=now,
            notes=notes,
        ))

    @staticmethod
    def _merge_content(question: Question, data: dict) -> Result[dict]:
        merged = {f: getattr(question, f) for f in CONTENT_FIELDS}
        merged.update({k: v for k, v in data.items() if k in CONTENT_FIELDS and v is not None})
        validation = validate_question_content(merged)
        if not validation.is_success:
            return Result.propagate(validation)
        return Result.ok(merged)

    @staticmethod
    def _apply_content(question: Question, content: dict) -> None:
        for f in CONTENT_FIELDS:
            setattr(question, f, content.get(f))
        question.question_text = question.question_text.strip()
        question.explanation = question.explanation or ""
        question.options = normalize_options(question.question_type, content.get("options"))

    # ------------------------------------------------------------------
    # Gatherer
    # ------------------------------------------------------------------
    def create_question(self, gatherer_id: str, data: dict) -> Result[Question]:
        """Create a brand-new question waiting for the processor."""
        validation = validate_question_content(data)
        if not validation.is_success:
            return Result.propagate(validation)
        for name in ("subject", "topic"):
            required = _required_text(data.get(name), name)
            if not required.is_success:
                return Result.propagate(required)

        moved = transition(None, ROLE_GATHERER, ACTION_SUBMIT)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        question = Question(
            id=_new_id(),
            question_text=data["question_text"],
            question_type=data["question_type"],
            created_by=gatherer_id,
            created_at=now,
            updated_at=now,
        )
        self._apply_content(question, data)
        question.apply_state(moved.value.state)
        question.last_modified_by = gatherer_id
        self._record(question, "created", ROLE_GATHERER, gatherer_id, "Question created by gatherer", now)
        return Result.ok(question)

    def resubmit(self, question: Question, actor_id: str, actor_role: str, data: dict) -> Result[Question]:
        """Send a rejected or flag-approved question back to the processor after correction."""
        if actor_role == ROLE_GATHERER and question.created_by != actor_id:
            return Result.forbidden("Gatherers can only resubmit their own questions.")

        content = self._merge_content(question, data)
        if not content.is_success:
            return Result.propagate(content)

        moved = transition(question.workflow_state, actor_role, ACTION_RESUBMIT)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        self._apply_content(question, content.value)
        question.apply_state(moved.value.state)
        question.rejection_reason = None
        question.rejected_by = None
        question.flag_reason = None
        question.flag_rejection_reason = None
        question.flagged_by = None
        question.last_modified_by = actor_id
        question.updated_at = now
        self._record(question, "resubmitted", actor_role, actor_id, f"Question corrected and resubmitted by {actor_role}", now)
        return Result.ok(question)

    # ------------------------------------------------------------------
    # Processor
    # ------------------------------------------------------------------
    def accept(
        self,
        question: Question,
        processor_id: str,
        destination: Optional[str] = None,
        assignee_id: Optional[str] = None,
    ) -> Result[Question]:
        destination = destination or default_accept_destination(question)
        moved = transition(question.workflow_state, ROLE_PROCESSOR, ACTION_ACCEPT, destination=destination)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        question.apply_state(moved.value.state)
        question.approved_by = processor_id
        question.assigned_processor_id = processor_id
        question.rejected_by = None
        question.rejection_reason = None
        question.flag_reason = None
        question.flag_rejection_reason = None
        question.flagged_by = None
        if question.status == STATUS_PENDING_CREATOR:
            question.assigned_creator_id = assignee_id
        elif question.status == STATUS_PENDING_EXPLAINER:
            question.assigned_explainer_id = assignee_id
        question.updated_at = now
        self._record(question, "approved", ROLE_PROCESSOR, processor_id, f"Question approved, moved to {question.status}", now)
        return Result.ok(question)

    def reject(self, question: Question, processor_id: str, reason: Optional[str]) -> Result[Question]:
        text = _required_text(reason, "rejection_reason")
        if not text.is_success:
            return Result.propagate(text)

        moved = transition(
            question.workflow_state,
            ROLE_PROCESSOR,
            ACTION_REJECT,
            submitter_role=last_submitter_role(question.history),
        )
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        question.apply_state(moved.value.state)
        question.rejection_reason = text.value
        question.rejected_by = processor_id
        question.assigned_processor_id = processor_id
        question.flag_reason = None
        question.flag_rejection_reason = None
        question.flagged_by = None
        question.updated_at = now
        self._record(question, "rejected", ROLE_PROCESSOR, processor_id, f"Question rejected: {text.value}", now)
        return Result.ok(question)

    def review_flag(
        self,
        question: Question,
        processor_id: str,
        decision: str,
        rejection_reason: Optional[str] = None,
    ) -> Result[tuple[Question, bool]]:
        """Approve or reject a pending flag. Returns (question, changed)."""
        if decision == "approve":
            moved = transition(
                question.workflow_state, ROLE_PROCESSOR, ACTION_APPROVE_FLAG, is_variant=question.is_variant
            )
            if not moved.is_success:
                return Result.propagate(moved)
            if not moved.value.changed:
                return Result.ok((question, False))
            now = _now_iso()
            question.apply_state(moved.value.state)
            question.assigned_processor_id = processor_id
            question.updated_at = now
            self._record(
                question, "flag_approved", ROLE_PROCESSOR, processor_id,
                f"{question.flag_type} flag approved, sent to {question.correction_role} for correction", now,
            )
            return Result.ok((question, True))

        if decision == "reject":
            text = _required_text(rejection_reason, "rejection_reason")
            if not text.is_success:
                return Result.fail("Rejection reason is required when rejecting a flag.")
            moved = transition(question.workflow_state, ROLE_PROCESSOR, ACTION_REJECT_FLAG)
            if not moved.is_success:
                return Result.propagate(moved)
            now = _now_iso()
            question.apply_state(moved.value.state)
            question.flag_rejection_reason = text.value
            question.assigned_processor_id = processor_id
            question.updated_at = now
            self._record(
                question, "flag_rejected", ROLE_PROCESSOR, processor_id,
                f"{question.flag_type} flag rejected: {text.value}", now,
            )
            return Result.ok((question, True))

        return Result.fail('Decision must be either "approve" or "reject".')

    # ------------------------------------------------------------------
    # Creator
    # ------------------------------------------------------------------
    def create_variant(
        self,
        original: Question,
        creator_id: str,
        data: dict,
        variant_number: int,
    ) -> Result[tuple[Question, Question]]:
        """Build a variant row from a question under creator review. Returns (variant, original)."""
        if original.status != STATUS_PENDING_CREATOR:
            return Result.conflict(f"Variants can only be created from '{STATUS_PENDING_CREATOR}' questions.")

        content = self._merge_content(original, data)
        if not content.is_success:
            return Result.propagate(content)

        moved = transition(None, ROLE_CREATOR, ACTION_SUBMIT)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        variant = Question(
            id=_new_id(),
            question_text=content.value["question_text"],
            question_type=content.value["question_type"],
            created_by=creator_id,
            created_at=now,
            updated_at=now,
            is_variant=True,
            variant_number=variant_number,
            original_question_id=original.id,
        )
        self._apply_content(variant, content.value)
        variant.apply_state(moved.value.state)
        variant.last_modified_by = creator_id
        self._record(variant, "variant_created", ROLE_CREATOR, creator_id, f"Variant created from question {original.id}", now)

        original.updated_at = now
        self._record(original, "variant_created", ROLE_CREATOR, creator_id, f"Variant question {variant.id} created from this question", now)
        return Result.ok((variant, original))

    def submit_creator_update(self, question: Question, creator_id: str, data: dict) -> Result[Question]:
        content = self._merge_content(question, data)
        if not content.is_success:
            return Result.propagate(content)

        moved = transition(question.workflow_state, ROLE_CREATOR, ACTION_SUBMIT_UPDATE)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        self._apply_content(question, content.value)
        question.apply_state(moved.value.state)
        question.assigned_creator_id = question.assigned_creator_id or creator_id
        question.last_modified_by = creator_id
        question.updated_at = now
        self._record(question, "updated", ROLE_CREATOR, creator_id, "Question updated by creator", now)
        return Result.ok(question)

    # ------------------------------------------------------------------
    # Explainer
    # ------------------------------------------------------------------
    def submit_explanation(self, question: Question, explainer_id: str, explanation: Optional[str]) -> Result[Question]:
        text = _required_text(explanation, "explanation")
        if not text.is_success:
            return Result.propagate(text)

        destination = DESTINATION_PROCESSOR if self._explanation_requires_review else DESTINATION_COMPLETED
        moved = transition(
            question.workflow_state, ROLE_EXPLAINER, ACTION_SUBMIT_EXPLANATION, destination=destination
        )
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        question.apply_state(moved.value.state)
        question.explanation = text.value
        question.assigned_explainer_id = question.assigned_explainer_id or explainer_id
        question.last_modified_by = explainer_id
        question.updated_at = now
        self._record(question, "explained", ROLE_EXPLAINER, explainer_id, f"Explanation added by explainer, moved to {question.status}", now)
        return Result.ok(question)

    # ------------------------------------------------------------------
    # Flags (student, creator, explainer)
    # ------------------------------------------------------------------
    def raise_flag(self, question: Question, user_id: str, actor_role: str, reason: Optional[str]) -> Result[Question]:
        text = _required_text(reason, "flag_reason")
        if not text.is_success:
            return Result.propagate(text)

        moved = transition(question.workflow_state, actor_role, ACTION_RAISE_FLAG)
        if not moved.is_success:
            return Result.propagate(moved)

        now = _now_iso()
        question.apply_state(moved.value.state)
        question.flag_reason = text.value
        question.flag_rejection_reason = None
        question.flagged_by = user_id
        question.updated_at = now
        self._record(question, "flagged", actor_role, user_id, f"Flagged by {actor_role}: {text.value}", now)
        return Result.ok(question)

    # ------------------------------------------------------------------
    # Superadmin
    # ------------------------------------------------------------------
    def set_visibility(self, question: Question, admin_id: str, is_visible: bool) -> Result[tuple[Question, bool]]:
        """Show or hide a question in student practice. Returns (question, changed)."""
        if question.is_visible == is_visible:
            return Result.ok((question, False))
        now = _now_iso()
        question.is_visible = is_visible
        question.last_modified_by = admin_id
        question.updated_at = now
        self._record(
            question, "visibility_changed", ROLE_SUPERADMIN, admin_id,
            "Question shown to students" if is_visible else "Question hidden from students", now,
        )
        return Result.ok((question, True))
