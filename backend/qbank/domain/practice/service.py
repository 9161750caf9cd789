"""Domain service — grading for study and test practice."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from qbank.domain.common.result import Result
from qbank.domain.practice.models import MODE_STUDY, MODE_TEST, AnswerItem, StudentAnswer
from qbank.domain.question.models import STATUS_COMPLETED, Question


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PracticeDomainService:

    def grade_study_answer(self, student_id: str, question: Question, selected_answer: str) -> Result[StudentAnswer]:
        if question.status != STATUS_COMPLETED:
            return Result.not_found("Question not found or not available.")
        if not (selected_answer or "").strip():
            return Result.fail("'selected_answer' is required.")
        is_correct = question.correct_answer == selected_answer
        return Result.ok(StudentAnswer(
            id=str(uuid.uuid4()),
            student_id=student_id,
            mode=MODE_STUDY,
            question_id=question.id,
            selected_answer=selected_answer,
            is_correct=is_correct,
            total_questions=1,
            correct_answers=int(is_correct),
            incorrect_answers=int(not is_correct),
            score=int(is_correct),
            percentage=100 if is_correct else 0,
            created_at=_now_iso(),
        ))

    def grade_test(
        self,
        student_id: str,
        answers: List[dict],
        questions: Dict[str, Question],
    ) -> Result[StudentAnswer]:
        """Score a full test. Every answered question must be available for practice."""
        if not answers:
            return Result.fail("Answers are required.")

        items: List[AnswerItem] = []
        seen = set()
        for answer in answers:
            question_id = answer.get("question_id")
            if question_id in seen:
                return Result.fail(f"Question {question_id} is answered more than once.")
            seen.add(question_id)
            question = questions.get(question_id)
            if question is None or question.status != STATUS_COMPLETED or not question.is_visible:
                return Result.not_found(f"Question {question_id} not found or not available.")
            selected = answer.get("selected_answer")
            items.append(AnswerItem(
                question_id=question_id,
                selected_answer=selected,
                is_correct=question.correct_answer == selected,
            ))

        total = len(items)
        correct = sum(1 for i in items if i.is_correct)
        return Result.ok(StudentAnswer(
            id=str(uuid.uuid4()),
            student_id=student_id,
            mode=MODE_TEST,
            answers=items,
            total_questions=total,
            correct_answers=correct,
            incorrect_answers=total - correct,
            score=correct,
            percentage=round(correct / total * 100),
            created_at=_now_iso(),
        ))
