"""Business rules for the Question domain — the workflow state machine lives here.

Every status or flag change goes through ``transition``. Callers never assign
``status`` directly.
"""
from __future__ import annotations
from dataclasses import replace
from typing import List, Optional

from qbank.domain.common.result import Result
from qbank.domain.question.models import (
    FLAG_APPROVED,
    FLAG_PENDING,
    FLAG_REJECTED,
    MCQ_KEYS,
    ROLE_CREATOR,
    ROLE_EXPLAINER,
    ROLE_GATHERER,
    ROLE_PROCESSOR,
    ROLE_STUDENT,
    STATUS_COMPLETED,
    STATUS_PENDING_CREATOR,
    STATUS_PENDING_EXPLAINER,
    STATUS_PENDING_PROCESSOR,
    STATUS_REJECTED,
    TRUE_FALSE_KEYS,
    TYPE_MCQ,
    TYPE_TRUE_FALSE,
    VALID_DIFFICULTIES,
    VALID_TYPES,
    HistoryEntry,
    Question,
    Transition,
    WorkflowState,
)

# Actions
ACTION_SUBMIT = "submit"
ACTION_ACCEPT = "accept"
ACTION_REJECT = "reject"
ACTION_RESUBMIT = "resubmit"
ACTION_SUBMIT_UPDATE = "submit_update"
ACTION_SUBMIT_EXPLANATION = "submit_explanation"
ACTION_RAISE_FLAG = "raise_flag"
ACTION_APPROVE_FLAG = "approve_flag"
ACTION_REJECT_FLAG = "reject_flag"

# Which roles may perform which actions
ACTION_ROLES: dict[str, set[str]] = {
    ACTION_SUBMIT: {ROLE_GATHERER, ROLE_CREATOR},  # creators submit new variant rows
    ACTION_ACCEPT: {ROLE_PROCESSOR},
    ACTION_REJECT: {ROLE_PROCESSOR},
    ACTION_RESUBMIT: {ROLE_GATHERER, ROLE_CREATOR, ROLE_EXPLAINER},
    ACTION_SUBMIT_UPDATE: {ROLE_CREATOR},
    ACTION_SUBMIT_EXPLANATION: {ROLE_EXPLAINER},
    ACTION_RAISE_FLAG: {ROLE_STUDENT, ROLE_CREATOR, ROLE_EXPLAINER},
    ACTION_APPROVE_FLAG: {ROLE_PROCESSOR},
    ACTION_REJECT_FLAG: {ROLE_PROCESSOR},
}

# Processor "accept" destinations
DESTINATION_CREATOR = "creator"
DESTINATION_EXPLAINER = "explainer"
DESTINATION_COMPLETED = "completed"
DESTINATION_PROCESSOR = "processor"

ACCEPT_DESTINATIONS: dict[str, str] = {
    DESTINATION_CREATOR: STATUS_PENDING_CREATOR,
    DESTINATION_EXPLAINER: STATUS_PENDING_EXPLAINER,
    DESTINATION_COMPLETED: STATUS_COMPLETED,
}

EXPLANATION_DESTINATIONS: dict[str, str] = {
    DESTINATION_COMPLETED: STATUS_COMPLETED,
    DESTINATION_PROCESSOR: STATUS_PENDING_PROCESSOR,
}

# Status a role must find a question in before it can raise a flag
FLAG_SOURCE_STATUS: dict[str, str] = {
    ROLE_STUDENT: STATUS_COMPLETED,
    ROLE_CREATOR: STATUS_PENDING_CREATOR,
    ROLE_EXPLAINER: STATUS_PENDING_EXPLAINER,
}

# The queue status each workflow role works from
ROLE_QUEUE_STATUS: dict[str, str] = {
    ROLE_PROCESSOR: STATUS_PENDING_PROCESSOR,
    ROLE_CREATOR: STATUS_PENDING_CREATOR,
    ROLE_EXPLAINER: STATUS_PENDING_EXPLAINER,
    ROLE_STUDENT: STATUS_COMPLETED,
}

# History actions written when a role hands a question to the processor
SUBMISSION_ACTIONS = {"created", "variant_created", "updated", "explained", "resubmitted"}

_CLEAR_FLAG = dict(
    is_flagged=False,
    flag_type=None,
    flag_status=None,
    pre_flag_status=None,
    correction_role=None,
)


def transition(
    state: Optional[WorkflowState],
    actor_role: str,
    action: str,
    *,
    destination: Optional[str] = None,
    is_variant: bool = False,
    submitter_role: Optional[str] = None,
) -> Result[Transition]:
    """
    Compute the next workflow state. ``state`` is None only for ``submit``.
    Returns Result.ok(Transition) or a tagged failure:
    FORBIDDEN for the wrong role, CONFLICT for the wrong status, VALIDATION otherwise.
    """
    allowed_roles = ACTION_ROLES.get(action)
    if allowed_roles is None:
        return Result.fail(f"Unknown workflow action '{action}'.")
    if actor_role not in allowed_roles:
        return Result.forbidden(
            f"Role '{actor_role}' cannot perform '{action}'. Required roles: {sorted(allowed_roles)}."
        )

    if action == ACTION_SUBMIT:
        if state is not None:
            return Result.conflict("Question has already been submitted.")
        return Result.ok(Transition(WorkflowState(status=STATUS_PENDING_PROCESSOR)))

    if state is None:
        return Result.fail(f"Action '{action}' needs an existing question.")

    if action == ACTION_ACCEPT:
        if state.status != STATUS_PENDING_PROCESSOR:
            return _wrong_status(state, action)
        if state.has_open_flag:
            return Result.conflict("Question has an open flag. Review the flag before accepting.")
        new_status = ACCEPT_DESTINATIONS.get(destination or "")
        if new_status is None:
            return Result.fail(
                f"Invalid destination '{destination}'. Must be one of {sorted(ACCEPT_DESTINATIONS)}."
            )
        return Result.ok(Transition(WorkflowState(status=new_status)))

    if action == ACTION_REJECT:
        if state.status != STATUS_PENDING_PROCESSOR:
            return _wrong_status(state, action)
        if state.is_flagged and state.flag_status == FLAG_PENDING:
            return Result.conflict("Question has a pending flag. Review the flag before rejecting.")
        return Result.ok(Transition(WorkflowState(
            status=STATUS_REJECTED,
            correction_role=submitter_role or ROLE_GATHERER,
        )))

    if action == ACTION_RESUBMIT:
        awaiting_fix = state.status == STATUS_REJECTED or (
            state.is_flagged and state.flag_status == FLAG_APPROVED
        )
        if not awaiting_fix:
            return Result.conflict(
                f"Only rejected or flagged questions can be resubmitted (status '{state.status}')."
            )
        if state.correction_role != actor_role:
            return Result.forbidden(
                f"Question is awaiting correction by '{state.correction_role}', not '{actor_role}'."
            )
        return Result.ok(Transition(replace(state, status=STATUS_PENDING_PROCESSOR, **_CLEAR_FLAG)))

    if action == ACTION_SUBMIT_UPDATE:
        if state.status != STATUS_PENDING_CREATOR:
            return _wrong_status(state, action)
        return Result.ok(Transition(replace(state, status=STATUS_PENDING_PROCESSOR)))

    if action == ACTION_SUBMIT_EXPLANATION:
        if state.status != STATUS_PENDING_EXPLAINER:
            return _wrong_status(state, action)
        new_status = EXPLANATION_DESTINATIONS.get(destination or DESTINATION_COMPLETED)
        if new_status is None:
            return Result.fail(
                f"Invalid destination '{destination}'. Must be one of {sorted(EXPLANATION_DESTINATIONS)}."
            )
        return Result.ok(Transition(replace(state, status=new_status)))

    if action == ACTION_RAISE_FLAG:
        if state.has_open_flag:
            return Result.conflict("Question is already flagged.")
        required = FLAG_SOURCE_STATUS[actor_role]
        if state.status != required:
            return Result.conflict(
                f"A {actor_role} can only flag questions in '{required}' (status '{state.status}')."
            )
        return Result.ok(Transition(WorkflowState(
            status=STATUS_PENDING_PROCESSOR,
            is_flagged=True,
            flag_type=actor_role,
            flag_status=FLAG_PENDING,
            pre_flag_status=state.status,
        )))

    if action == ACTION_APPROVE_FLAG:
        if state.is_flagged and state.flag_status == FLAG_APPROVED:
            return Result.ok(Transition(state, changed=False))
        if state.status != STATUS_PENDING_PROCESSOR or not (
            state.is_flagged and state.flag_status == FLAG_PENDING
        ):
            return Result.conflict("Question is not flagged or the flag has already been reviewed.")
        return Result.ok(Transition(replace(
            state,
            flag_status=FLAG_APPROVED,
            correction_role=ROLE_CREATOR if is_variant else ROLE_GATHERER,
        )))

    if action == ACTION_REJECT_FLAG:
        if state.status != STATUS_PENDING_PROCESSOR or not (
            state.is_flagged and state.flag_status == FLAG_PENDING
        ):
            return Result.conflict("Question is not flagged or the flag has already been reviewed.")
        return Result.ok(Transition(replace(
            state,
            status=state.pre_flag_status or STATUS_PENDING_PROCESSOR,
            is_flagged=False,
            flag_status=FLAG_REJECTED,
            pre_flag_status=None,
        )))

    return Result.fail(f"Unhandled workflow action '{action}'.")


def _wrong_status(state: WorkflowState, action: str) -> Result[Transition]:
    return Result.conflict(f"Cannot '{action}' a question in status '{state.status}'.")


# ------------------------------------------------------------------
# Routing helpers
# ------------------------------------------------------------------
def last_submitter_role(history: List[HistoryEntry]) -> Optional[str]:
    """Role of the most recent entry that handed the question to the processor."""
    for entry in reversed(history):
        if entry.action in SUBMISSION_ACTIONS and entry.role != ROLE_PROCESSOR:
            return entry.role
    return None


def default_accept_destination(question: Question) -> str:
    """Gatherer → creator → explainer → completed, following the last submitter."""
    role = last_submitter_role(question.history)
    if role == ROLE_EXPLAINER:
        return DESTINATION_COMPLETED
    if role == ROLE_CREATOR or question.is_variant:
        return DESTINATION_EXPLAINER
    return DESTINATION_CREATOR


# ------------------------------------------------------------------
# Visibility
# ------------------------------------------------------------------
def is_visibly_flagged(question: Question) -> bool:
    return question.is_flagged and question.flag_status == FLAG_APPROVED


def in_role_queue(question: Question, role: str) -> bool:
    """Whether a question is actionable (or still tracked) in a role's queue."""
    queue_status = ROLE_QUEUE_STATUS.get(role)
    if queue_status and question.status == queue_status:
        return True
    if question.is_flagged and question.flag_status == FLAG_PENDING:
        return question.pre_flag_status == queue_status
    if question.correction_role == role:
        return question.status == STATUS_REJECTED or is_visibly_flagged(question)
    return False


# ------------------------------------------------------------------
# Content validation
# ------------------------------------------------------------------
def validate_question_content(data: dict) -> Result[dict]:
    """Validates text, type, options and answer for a question payload."""
    text = (data.get("question_text") or "").strip()
    if not text:
        return Result.fail("Question 'question_text' is required and cannot be empty.")

    qtype = data.get("question_type")
    if qtype not in VALID_TYPES:
        return Result.fail(f"'{qtype}' is not a valid question type. Must be one of {sorted(VALID_TYPES)}.")

    difficulty = data.get("difficulty")
    if difficulty is not None and difficulty not in VALID_DIFFICULTIES:
        return Result.fail(f"'{difficulty}' is not a valid difficulty. Must be one of {sorted(VALID_DIFFICULTIES)}.")

    options = data.get("options") or {}
    answer = data.get("correct_answer")
    if qtype == TYPE_MCQ:
        if any(not (options.get(k) or "").strip() for k in MCQ_KEYS):
            return Result.fail("All four options (A, B, C, D) are required for MCQ questions.")
        if answer not in MCQ_KEYS:
            return Result.fail("Correct answer must be A, B, C, or D for MCQ questions.")
    elif qtype == TYPE_TRUE_FALSE:
        if answer not in TRUE_FALSE_KEYS:
            return Result.fail("Correct answer must be True or False for True/False questions.")

    return Result.ok(data)


def normalize_options(question_type: str, options: Optional[dict]) -> dict:
    if question_type == TYPE_MCQ:
        return {k: options[k].strip() for k in MCQ_KEYS}
    if question_type == TYPE_TRUE_FALSE:
        return {k: k for k in TRUE_FALSE_KEYS}
    return {}
