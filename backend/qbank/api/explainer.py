"""Explainer API — write explanations, flag problems, resubmit corrections."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from qbank.api.auth import require_admin_role
from qbank.api.errors import unwrap
from qbank.api.schemas import FlagBody, QuestionContentBody, serialize_question, serialize_questions
from qbank.application.dashboard_app_service import DashboardAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_dashboard_app_service, get_question_app_service
from qbank.domain.question.models import ROLE_EXPLAINER
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/explainer", tags=["explainer"])

_explainer = require_admin_role(ROLE_EXPLAINER)


class ExplanationBody(BaseModel):
    explanation: str


@router.get("/questions")
def list_queue(
    flagged: Optional[bool] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_explainer),
):
    return serialize_questions(svc.list_queue(ROLE_EXPLAINER, flagged))


@router.put("/questions/{question_id}/explanation")
def submit_explanation(
    question_id: str,
    body: ExplanationBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_explainer),
):
    question = unwrap(svc.submit_explanation(question_id, current_user.id, body.explanation))
    return serialize_question(question, include_history=True)


@router.post("/questions/{question_id}/flag")
def flag_question(
    question_id: str,
    body: FlagBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_explainer),
):
    question = unwrap(svc.raise_flag(question_id, current_user.id, ROLE_EXPLAINER, body.flag_reason))
    return serialize_question(question)


@router.put("/questions/{question_id}/resubmit")
def resubmit_question(
    question_id: str,
    body: QuestionContentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_explainer),
):
    question = unwrap(svc.resubmit(question_id, current_user.id, ROLE_EXPLAINER, body.model_dump(exclude_none=True)))
    return serialize_question(question, include_history=True)


@router.get("/dashboard")
def dashboard(
    svc: DashboardAppService = Depends(get_dashboard_app_service),
    current_user: User = Depends(_explainer),
):
    return svc.explainer(current_user.id)
