"""Staff question API — detail, history and comments for any workflow role."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from qbank.api.auth import require_admin_role
from qbank.api.errors import unwrap
from qbank.api.schemas import CommentBody, serialize_comment, serialize_history, serialize_question
from qbank.application.question_app_service import QuestionAppService
from qbank.container import get_question_app_service
from qbank.domain.question.models import WORKFLOW_ROLES
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/questions", tags=["questions"])

_staff = require_admin_role(*WORKFLOW_ROLES)


@router.get("/{question_id}")
def get_question(
    question_id: str,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_staff),
):
    return serialize_question(unwrap(svc.get_question(question_id)), include_history=True)


@router.get("/{question_id}/history")
def get_history(
    question_id: str,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_staff),
):
    return [serialize_history(h) for h in unwrap(svc.get_history(question_id))]


# ------------------------------------------------------------------
# Comments
# ------------------------------------------------------------------
@router.get("/{question_id}/comments")
def get_comments(
    question_id: str,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_staff),
):
    return [serialize_comment(c) for c in unwrap(svc.get_comments(question_id))]


@router.post("/{question_id}/comments", status_code=status.HTTP_201_CREATED)
def post_comment(
    question_id: str,
    body: CommentBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(_staff),
):
    return serialize_comment(unwrap(svc.add_comment(question_id, current_user, body.body)))
