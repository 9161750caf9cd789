"""Student API — practice on completed questions and report problems."""
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from qbank.api.auth import require_student
from qbank.api.errors import unwrap
from qbank.api.schemas import FlagBody, serialize_answer, serialize_student_question, serialize_test_result
from qbank.api.subscriptions import require_active_subscription
from qbank.application.practice_app_service import PracticeAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_practice_app_service, get_question_app_service
from qbank.domain.practice.models import MODE_STUDY, MODE_TEST
from qbank.domain.question.models import ROLE_STUDENT
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/student", tags=["student"])


class AnswerBody(BaseModel):
    selected_answer: str


class TestAnswer(BaseModel):
    question_id: str
    selected_answer: Optional[str] = None


class TestBody(BaseModel):
    answers: List[TestAnswer]


@router.get("/questions")
def list_questions(
    exam: Optional[str] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(require_active_subscription),
):
    return [serialize_student_question(q) for q in svc.list_completed(exam, subject, topic)]


@router.get("/questions/{question_id}")
def get_question(
    question_id: str,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_active_subscription),
):
    return serialize_student_question(unwrap(svc.get_practice_question(question_id)))


@router.post("/questions/{question_id}/answer")
def answer_question(
    question_id: str,
    body: AnswerBody,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_active_subscription),
):
    answer = unwrap(svc.answer(current_user.id, question_id, body.selected_answer))
    question = unwrap(svc.get_practice_question(question_id))
    return {
        **serialize_answer(answer),
        "correct_answer": question.correct_answer,
        "explanation": question.explanation,
    }


@router.post("/questions/{question_id}/flag")
def flag_question(
    question_id: str,
    body: FlagBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(require_student),
):
    unwrap(svc.raise_flag(question_id, current_user.id, ROLE_STUDENT, body.flag_reason))
    return {"detail": "Question flagged for review"}


@router.get("/tests/start")
def start_test(
    exam: Optional[str] = None,
    subject: Optional[str] = None,
    topic: Optional[str] = None,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_active_subscription),
):
    questions = unwrap(svc.start_test(exam, subject, topic))
    return {"questions": [serialize_student_question(q) for q in questions], "count": len(questions)}


@router.post("/tests", status_code=status.HTTP_201_CREATED)
def submit_test(
    body: TestBody,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_active_subscription),
):
    answers = [a.model_dump() for a in body.answers]
    return serialize_answer(unwrap(svc.submit_test(current_user.id, answers)))


@router.get("/history")
def practice_history(
    mode: Optional[str] = None,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_student),
):
    if mode is not None and mode not in (MODE_STUDY, MODE_TEST):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="mode must be 'study' or 'test'")
    return [serialize_answer(a) for a in svc.history(current_user.id, mode)]


@router.get("/tests/{test_id}")
def get_test_result(
    test_id: str,
    svc: PracticeAppService = Depends(get_practice_app_service),
    current_user: User = Depends(require_student),
):
    test, questions = unwrap(svc.get_test_result(current_user.id, test_id))
    return serialize_test_result(test, questions)
