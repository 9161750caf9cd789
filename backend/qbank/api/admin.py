"""Superadmin API for users, plans and the question bank overview."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from qbank.api.auth import require_superadmin, serialize_user
from qbank.api.errors import unwrap
from qbank.api.schemas import serialize_question, serialize_questions
from qbank.api.subscriptions import serialize_plan
from qbank.application.question_app_service import TAB_ALL, QuestionAppService
from qbank.application.subscription_app_service import SubscriptionAppService
from qbank.application.user_app_service import UserAppService
from qbank.container import get_question_app_service, get_subscription_app_service, get_user_app_service
from qbank.domain.user.models import User

router = APIRouter(prefix="/api/admin", tags=["admin"])


class CreateUserBody(BaseModel):
    username: str
    password: str
    role: Optional[str] = None
    admin_role: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None


class UserStatusBody(BaseModel):
    status: str


class PlanBody(BaseModel):
    name: str
    price: float
    duration: str
    description: Optional[str] = None
    status: Optional[str] = None


class PlanUpdateBody(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class VisibilityBody(BaseModel):
    is_visible: bool


# ------------------------------------------------------------------
# Users
# ------------------------------------------------------------------
@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserBody,
    svc: UserAppService = Depends(get_user_app_service),
    current_user: User = Depends(require_superadmin),
):
    return serialize_user(unwrap(svc.create_user(body.model_dump())))


@router.get("/users")
def list_users(
    role: Optional[str] = None,
    admin_role: Optional[str] = None,
    svc: UserAppService = Depends(get_user_app_service),
    current_user: User = Depends(require_superadmin),
):
    return [serialize_user(u) for u in svc.list_users(role, admin_role)]


@router.patch("/users/{user_id}/status")
def set_user_status(
    user_id: str,
    body: UserStatusBody,
    svc: UserAppService = Depends(get_user_app_service),
    current_user: User = Depends(require_superadmin),
):
    return serialize_user(unwrap(svc.set_status(user_id, body.status, current_user.id)))


# ------------------------------------------------------------------
# Plans
# ------------------------------------------------------------------
@router.post("/plans", status_code=status.HTTP_201_CREATED)
def create_plan(
    body: PlanBody,
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_superadmin),
):
    return serialize_plan(unwrap(svc.create_plan(body.model_dump())))


@router.get("/plans")
def list_plans(
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_superadmin),
):
    return [serialize_plan(p) for p in svc.list_plans(active_only=False)]


@router.put("/plans/{plan_id}")
def update_plan(
    plan_id: str,
    body: PlanUpdateBody,
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_superadmin),
):
    return serialize_plan(unwrap(svc.update_plan(plan_id, body.model_dump(exclude_none=True))))


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: str,
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_superadmin),
):
    unwrap(svc.delete_plan(plan_id))


# ------------------------------------------------------------------
# Question bank
# ------------------------------------------------------------------
@router.get("/questions")
def list_questions(
    tab: str = TAB_ALL,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(require_superadmin),
):
    questions, total = unwrap(svc.admin_list(tab, status, search, page, page_size))
    return {
        "items": serialize_questions(questions),
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/questions/stats")
def question_stats(
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(require_superadmin),
):
    return svc.stats()


@router.patch("/questions/{question_id}/visibility")
def set_question_visibility(
    question_id: str,
    body: VisibilityBody,
    svc: QuestionAppService = Depends(get_question_app_service),
    current_user: User = Depends(require_superadmin),
):
    return serialize_question(unwrap(svc.set_visibility(question_id, current_user.id, body.is_visible)))
