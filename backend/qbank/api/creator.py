"""Creator API: variants, updates, flags and corrections."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, status

from qbank.api.auth import require_admin_role
from qbank.api.errors import unwrap
from qbank.api.schemas import FlagBody, QuestionContentBody, serialize_question, serialize_questions
from qbank.application.dashboard_app_service import DashboardAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_dashboard_app_service, get_question_app_service
from qbank.domain.question.models import ROLE_CREATOR
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/creator", tags=["creator"])

_creator = require_admin_role(ROLE_CREATOR)


@router.get("/questions")
def list_queue(
    flagged: Optional[bool] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_creator),
):
    return serialize_questions(svc.list_queue(ROLE_CREATOR, flagged))


@router.post("/questions/{question_id}/variants", status_code=status.HTTP_201_CREATED)
def create_variant(
    question_id: str,
    body: QuestionContentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_creator),
):
    variant = unwrap(svc.create_variant(question_id, current_user.id, body.model_dump(exclude_none=True)))
    return serialize_question(variant, include_history=True)


@router.put("/questions/{question_id}/submit")
def submit_question(
    question_id: str,
    body: Optional[QuestionContentBody] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_creator),
):
    data = body.model_dump(exclude_none=True) if body else {}
    question = unwrap(svc.submit_creator_update(question_id, current_user.id, data))
    return serialize_question(question, include_history=True)


@router.post("/questions/{question_id}/flag")
def flag_question(
    question_id: str,
    body: FlagBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_creator),
):
    question = unwrap(svc.raise_flag(question_id, current_user.id, ROLE_CREATOR, body.flag_reason))
    return serialize_question(question)


@router.put("/questions/{question_id}/resubmit")
def resubmit_question(
    question_id: str,
    body: QuestionContentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_creator),
):
    question = unwrap(svc.resubmit(question_id, current_user.id, ROLE_CREATOR, body.model_dump(exclude_none=True)))
    return serialize_question(question, include_history=True)


@router.get("/dashboard")
def dashboard(
    svc: DashboardAppService = Depends(get_dashboard_app_service),
    current_user: User = Depends(_creator),
):
    return svc.creator(current_user.id)
