"""Application service — student study and test practice."""
from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from qbank.domain.common.result import Result
from qbank.domain.practice.models import MODE_TEST, StudentAnswer
from qbank.domain.practice.service import PracticeDomainService
from qbank.domain.question.models import STATUS_COMPLETED, Question
from qbank.persistence.interfaces.answer_repository import AnswerRepository
from qbank.persistence.interfaces.question_repository import QuestionFilter, QuestionRepository


class PracticeAppService:
    def __init__(self, answers: AnswerRepository, questions: QuestionRepository):
        self._answers = answers
        self._questions = questions
        self._domain = PracticeDomainService()

    def get_practice_question(self, question_id: str) -> Result[Question]:
        question = self._questions.get_by_id(question_id)
        if not question or question.status != STATUS_COMPLETED or not question.is_visible:
            return Result.not_found("Question not found or not available.")
        return Result.ok(question)

    def start_test(
        self,
        exam: Optional[str],
        subject: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> Result[List[Question]]:
        """Questions for a new test; answers are graded on submission."""
        if not exam or not exam.strip():
            return Result.fail("'exam' is required to start a test.")
        questions = self._questions.list(QuestionFilter(
            statuses=[STATUS_COMPLETED], is_visible=True, exam=exam, subject=subject, topic=topic,
        ))
        if not questions:
            return Result.not_found("No questions available for the selected filters.")
        return Result.ok(questions)

    def answer(self, student_id: str, question_id: str, selected_answer: str) -> Result[StudentAnswer]:
        loaded = self.get_practice_question(question_id)
        if not loaded.is_success:
            return Result.propagate(loaded)
        result = self._domain.grade_study_answer(student_id, loaded.value, selected_answer)
        if not result.is_success:
            return result
        self._answers.add(result.value)
        return result

    def submit_test(self, student_id: str, answers: List[dict]) -> Result[StudentAnswer]:
        questions = {}
        for answer in answers:
            question_id = answer.get("question_id")
            question = self._questions.get_by_id(question_id) if question_id else None
            if question:
                questions[question_id] = question
        result = self._domain.grade_test(student_id, answers, questions)
        if not result.is_success:
            return result
        self._answers.add(result.value)
        return result

    def history(self, student_id: str, mode: Optional[str] = None) -> List[StudentAnswer]:
        return self._answers.list_for_student(student_id, mode)

    def get_test_result(self, student_id: str, test_id: str) -> Result[Tuple[StudentAnswer, Dict[str, Question]]]:
        """A submitted test with the questions it covered, keyed by id."""
        test = self._answers.get_for_student(student_id, test_id)
        if not test or test.mode != MODE_TEST:
            return Result.not_found(f"Test result '{test_id}' not found.")
        questions = {}
        for item in test.answers:
            question = self._questions.get_by_id(item.question_id)
            if question:
                questions[item.question_id] = question
        return Result.ok((test, questions))
