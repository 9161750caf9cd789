"""Gatherer API — submit questions, track them, resubmit after corrections."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, status

from qbank.api.auth import require_admin_role
from qbank.api.errors import unwrap
from qbank.api.schemas import QuestionContentBody, serialize_question, serialize_questions
from qbank.application.dashboard_app_service import DashboardAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_dashboard_app_service, get_question_app_service
from qbank.domain.question.models import ROLE_GATHERER
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/gatherer", tags=["gatherer"])

_gatherer = require_admin_role(ROLE_GATHERER)


@router.post("/questions", status_code=status.HTTP_201_CREATED)
def create_question(
    body: QuestionContentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_gatherer),
):
    question = unwrap(svc.create_question(current_user.id, body.model_dump(exclude_none=True)))
    return serialize_question(question, include_history=True)


@router.get("/questions")
def list_questions(
    status: Optional[str] = None,
    flagged: Optional[bool] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_gatherer),
):
    return serialize_questions(unwrap(svc.list_gatherer_questions(current_user.id, status, flagged)))


@router.put("/questions/{question_id}/resubmit")
def resubmit_question(
    question_id: str,
    body: QuestionContentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_gatherer),
):
    question = unwrap(svc.resubmit(question_id, current_user.id, ROLE_GATHERER, body.model_dump(exclude_none=True)))
    return serialize_question(question, include_history=True)


@router.get("/dashboard")
def dashboard(
    svc: DashboardAppService = Depends(get_dashboard_app_service),
    current_user: User = Depends(_gatherer),
):
    return svc.gatherer(current_user.id)
