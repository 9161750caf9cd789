"""Student practice records."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

MODE_STUDY = "study"
MODE_TEST = "test"


@dataclass
class AnswerItem:
    question_id: str
    selected_answer: Optional[str]
    is_correct: bool


@dataclass
class StudentAnswer:
    id: str
    student_id: str
    mode: str
    created_at: str
    question_id: Optional[str] = None
    selected_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    answers: List[AnswerItem] = field(default_factory=list)
    total_questions: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    score: int = 0
    percentage: int = 0
