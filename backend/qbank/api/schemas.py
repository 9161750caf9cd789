"""Request bodies and response serializers shared by the question routers."""
from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel

from qbank.domain.practice.models import StudentAnswer
from qbank.domain.question.models import Comment, HistoryEntry, Question
from qbank.domain.question.rules import is_visibly_flagged


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class QuestionContentBody(BaseModel):
    question_text: Optional[str] = None
    question_type: Optional[str] = None
    options: Optional[Dict[str, str]] = None
    correct_answer: Optional[str] = None
    difficulty: Optional[str] = None
    exam: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    explanation: Optional[str] = None
    notes: Optional[str] = None


class FlagBody(BaseModel):
    flag_reason: str


class CommentBody(BaseModel):
    body: str


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def serialize_history(h: HistoryEntry) -> dict:
    return {
        "action": h.action,
        "role": h.role,
        "performed_by": h.performed_by,
        "timestamp": h.timestamp,
        "notes": h.notes,
    }


def serialize_comment(c: Comment) -> dict:
    return {
        "id": c.id,
        "question_id": c.question_id,
        "author_id": c.author_id,
        "author_name": c.author_name,
        "body": c.body,
        "created_at": c.created_at,
    }


def serialize_question(q: Question, include_history: bool = False) -> dict:
    data = {
        "id": q.id,
        "question_text": q.question_text,
        "question_type": q.question_type,
        "options": q.options,
        "correct_answer": q.correct_answer,
        "difficulty": q.difficulty,
        "exam": q.exam,
        "subject": q.subject,
        "topic": q.topic,
        "subtopic": q.subtopic,
        "explanation": q.explanation,
        "notes": q.notes,
        "status": q.status,
        "is_variant": q.is_variant,
        "variant_number": q.variant_number,
        "original_question_id": q.original_question_id,
        "rejection_reason": q.rejection_reason,
        "is_flagged": q.is_flagged,
        "is_visibly_flagged": is_visibly_flagged(q),
        "flag_type": q.flag_type if q.is_flagged else None,
        "flag_status": q.flag_status if q.is_flagged else None,
        "flag_reason": q.flag_reason if q.is_flagged else None,
        "flag_rejection_reason": q.flag_rejection_reason,
        "correction_role": q.correction_role,
        "is_visible": q.is_visible,
        "created_by": q.created_by,
        "assigned_processor_id": q.assigned_processor_id,
        "assigned_creator_id": q.assigned_creator_id,
        "assigned_explainer_id": q.assigned_explainer_id,
        "approved_by": q.approved_by,
        "rejected_by": q.rejected_by,
        "last_modified_by": q.last_modified_by,
        "version": q.version,
        "created_at": q.created_at,
        "updated_at": q.updated_at,
    }
    if include_history:
        data["history"] = [serialize_history(h) for h in q.history]
    return data


def serialize_student_question(q: Question) -> dict:
    """Practice view; the correct answer stays hidden until the student answers."""
    return {
        "id": q.id,
        "question_text": q.question_text,
        "question_type": q.question_type,
        "options": q.options,
        "difficulty": q.difficulty,
        "exam": q.exam,
        "subject": q.subject,
        "topic": q.topic,
        "subtopic": q.subtopic,
    }


def serialize_answer(a: StudentAnswer) -> dict:
    return {
        "id": a.id,
        "mode": a.mode,
        "question_id": a.question_id,
        "selected_answer": a.selected_answer,
        "is_correct": a.is_correct,
        "answers": [
            {"question_id": i.question_id, "selected_answer": i.selected_answer, "is_correct": i.is_correct}
            for i in a.answers
        ],
        "total_questions": a.total_questions,
        "correct_answers": a.correct_answers,
        "incorrect_answers": a.incorrect_answers,
        "score": a.score,
        "percentage": a.percentage,
        "created_at": a.created_at,
    }


def serialize_test_result(test: StudentAnswer, questions: Dict[str, Question]) -> dict:
    """Submitted test with each question's answer and explanation revealed."""
    results = []
    for item in test.answers:
        q = questions.get(item.question_id)
        results.append({
            "question_id": item.question_id,
            "question_text": q.question_text if q else None,
            "question_type": q.question_type if q else None,
            "options": q.options if q else {},
            "correct_answer": q.correct_answer if q else None,
            "selected_answer": item.selected_answer,
            "is_correct": item.is_correct,
            "explanation": q.explanation if q else None,
        })
    return {
        "id": test.id,
        "summary": {
            "total_questions": test.total_questions,
            "correct_answers": test.correct_answers,
            "incorrect_answers": test.incorrect_answers,
            "score": test.score,
            "percentage": test.percentage,
        },
        "results": results,
        "submitted_at": test.created_at,
    }


def serialize_questions(questions: List[Question]) -> List[dict]:
    return [serialize_question(q) for q in questions]
