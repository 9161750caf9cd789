"""Processor API — review queue, accept/reject, and flag decisions."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from qbank.api.auth import require_admin_role
from qbank.api.errors import unwrap
from qbank.api.schemas import serialize_question, serialize_questions
from qbank.application.dashboard_app_service import DashboardAppService
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_dashboard_app_service, get_question_app_service
from qbank.domain.question.models import ROLE_PROCESSOR
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/processor", tags=["processor"])

_processor = require_admin_role(ROLE_PROCESSOR)


class AcceptBody(BaseModel):
    destination: Optional[str] = None
    assignee_id: Optional[str] = None


class RejectBody(BaseModel):
    reason: Optional[str] = None


class FlagReviewBody(BaseModel):
    decision: str
    rejection_reason: Optional[str] = None


@router.get("/questions")
def list_queue(
    flagged: Optional[bool] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_processor),
):
    return serialize_questions(svc.list_queue(ROLE_PROCESSOR, flagged))


@router.post("/questions/{question_id}/accept")
def accept_question(
    question_id: str,
    body: Optional[AcceptBody] = None,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_processor),
):
    body = body or AcceptBody()
    question = unwrap(svc.accept(question_id, current_user.id, body.destination, body.assignee_id))
    return serialize_question(question, include_history=True)


@router.post("/questions/{question_id}/reject")
def reject_question(
    question_id: str,
    body: RejectBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_processor),
):
    question = unwrap(svc.reject(question_id, current_user.id, body.reason))
    return serialize_question(question, include_history=True)


@router.post("/questions/{question_id}/flag/review")
def review_flag(
    question_id: str,
    body: FlagReviewBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_processor),
):
    question = unwrap(svc.review_flag(question_id, current_user.id, body.decision, body.rejection_reason))
    return serialize_question(question, include_history=True)


@router.get("/dashboard")
def dashboard(
    svc: DashboardAppService = Depends(get_dashboard_app_service),
    current_user: User = Depends(_processor),
):
    return svc.processor(current_user.id)
