"""Question domain models — pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Workflow statuses
STATUS_PENDING_PROCESSOR = "pending_processor"
STATUS_PENDING_CREATOR = "pending_creator"
STATUS_PENDING_EXPLAINER = "pending_explainer"
STATUS_APPROVED = "approved"  # legacy value, never produced by a transition
STATUS_COMPLETED = "completed"
STATUS_REJECTED = "rejected"

VALID_STATUSES = {
    STATUS_PENDING_PROCESSOR,
    STATUS_PENDING_CREATOR,
    STATUS_PENDING_EXPLAINER,
    STATUS_APPROVED,
    STATUS_COMPLETED,
    STATUS_REJECTED,
}
PENDING_STATUSES = {STATUS_PENDING_PROCESSOR, STATUS_PENDING_CREATOR, STATUS_PENDING_EXPLAINER}

# Actor roles
ROLE_GATHERER = "gatherer"
ROLE_PROCESSOR = "processor"
ROLE_CREATOR = "creator"
ROLE_EXPLAINER = "explainer"
ROLE_STUDENT = "student"

WORKFLOW_ROLES = {ROLE_GATHERER, ROLE_PROCESSOR, ROLE_CREATOR, ROLE_EXPLAINER}

# Flag states
FLAG_PENDING = "pending"
FLAG_APPROVED = "approved"
FLAG_REJECTED = "rejected"

# Question types
TYPE_MCQ = "MCQ"
TYPE_TRUE_FALSE = "True/False"
TYPE_SHORT_ANSWER = "Short Answer"
TYPE_ESSAY = "Essay"
VALID_TYPES = {TYPE_MCQ, TYPE_TRUE_FALSE, TYPE_SHORT_ANSWER, TYPE_ESSAY}

MCQ_KEYS = ("A", "B", "C", "D")
TRUE_FALSE_KEYS = ("True", "False")
VALID_DIFFICULTIES = {"easy", "medium", "hard"}


@dataclass(frozen=True)
class WorkflowState:
    """The part of a question that the transition function reads and writes."""
    status: str
    is_flagged: bool = False
    flag_type: Optional[str] = None
    flag_status: Optional[str] = None
    pre_flag_status: Optional[str] = None
    correction_role: Optional[str] = None

    @property
    def has_open_flag(self) -> bool:
        return self.is_flagged and self.flag_status in (FLAG_PENDING, FLAG_APPROVED)


@dataclass(frozen=True)
class Transition:
    state: WorkflowState
    changed: bool = True


@dataclass
class HistoryEntry:
    action: str
    role: str
    performed_by: str
    timestamp: str
    notes: Optional[str] = None
    id: Optional[int] = None  # None until persisted


@dataclass
class Comment:
    id: str
    question_id: str
    author_id: str
    author_name: Optional[str]
    body: str
    created_at: str


@dataclass
class Question:
    id: str
    question_text: str
    question_type: str
    created_by: str
    created_at: str
    updated_at: str
    status: str = STATUS_PENDING_PROCESSOR
    options: Dict[str, str] = field(default_factory=dict)
    correct_answer: Optional[str] = None
    difficulty: Optional[str] = None
    exam: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    explanation: str = ""
    notes: Optional[str] = None

    is_variant: bool = False
    variant_number: Optional[int] = None
    original_question_id: Optional[str] = None
    rejection_reason: Optional[str] = None

    is_flagged: bool = False
    flag_type: Optional[str] = None
    flag_reason: Optional[str] = None
    flag_status: Optional[str] = None
    flag_rejection_reason: Optional[str] = None
    flagged_by: Optional[str] = None
    pre_flag_status: Optional[str] = None
    correction_role: Optional[str] = None
    is_visible: bool = True

    assigned_processor_id: Optional[str] = None
    assigned_creator_id: Optional[str] = None
    assigned_explainer_id: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    last_modified_by: Optional[str] = None

    version: int = 0
    history: List[HistoryEntry] = field(default_factory=list)

    @property
    def workflow_state(self) -> WorkflowState:
        return WorkflowState(
            status=self.status,
            is_flagged=self.is_flagged,
            flag_type=self.flag_type,
            flag_status=self.flag_status,
            pre_flag_status=self.pre_flag_status,
            correction_role=self.correction_role,
        )

    def apply_state(self, state: WorkflowState) -> None:
        self.status = state.status
        self.is_flagged = state.is_flagged
        self.flag_type = state.flag_type
        self.flag_status = state.flag_status
        self.pre_flag_status = state.pre_flag_status
        self.correction_role = state.correction_role

    def pending_history(self) -> List[HistoryEntry]:
        """Entries appended since the question was loaded."""
        return [h for h in self.history if h.id is None]
