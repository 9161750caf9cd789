"""Subscription, payment webhook and cron API endpoints."""
from __future__ import annotations
import hashlib
import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from qbank.core import config
from qbank.api.auth import require_student
from qbank.api.errors import unwrap
from qbank.application.subscription_app_service import SubscriptionAppService
from qbank.container import get_payment_gateway, get_subscription_app_service
from qbank.domain.subscription.models import Plan, Subscription
from qbank.domain.user.models import User
from qbank.integrations.payment_gateway import PaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["subscription"])
payment_router = APIRouter(prefix="/api/payment", tags=["payment"])
cron_router = APIRouter(prefix="/api/cron", tags=["cron"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class SubscribeBody(BaseModel):
    plan_id: str


class ConfirmPaymentBody(BaseModel):
    subscription_id: str
    transaction_id: str


# ------------------------------------------------------------------
# Serializers
# ------------------------------------------------------------------
def serialize_plan(p: Plan) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "price": p.price,
        "duration": p.duration,
        "description": p.description,
        "status": p.status,
        "created_at": p.created_at,
    }


def serialize_subscription(s: Subscription) -> dict:
    return {
        "id": s.id,
        "user_id": s.user_id,
        "plan_id": s.plan_id,
        "user_name": s.user_name,
        "plan_name": s.plan_name,
        "start_date": s.start_date,
        "expiry_date": s.expiry_date,
        "payment_status": s.payment_status,
        "is_active": s.is_active,
        "transaction_id": s.transaction_id,
        "created_at": s.created_at,
        "updated_at": s.updated_at,
    }


# ------------------------------------------------------------------
# Dependency: student with an active subscription
# ------------------------------------------------------------------
def require_active_subscription(
    current_user: User = Depends(require_student),
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
) -> User:
    if not config.REQUIRE_SUBSCRIPTION or current_user.is_superadmin:
        return current_user
    if not svc.has_access(current_user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="An active subscription is required")
    return current_user


# ------------------------------------------------------------------
# Subscription endpoints
# ------------------------------------------------------------------
@router.get("/plans")
def list_plans(svc: SubscriptionAppService = Depends(get_subscription_app_service)):
    return [serialize_plan(p) for p in svc.list_plans()]


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
def subscribe(
    body: SubscribeBody,
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_student),
):
    return serialize_subscription(unwrap(svc.subscribe(current_user, body.plan_id)))


@router.post("/confirm-payment")
def confirm_payment(
    body: ConfirmPaymentBody,
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_student),
):
    return serialize_subscription(unwrap(svc.confirm_payment(current_user, body.subscription_id, body.transaction_id)))


@router.get("/me")
def my_subscription(
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    current_user: User = Depends(require_student),
):
    subscription = svc.current(current_user.id)
    return {
        "subscription": serialize_subscription(subscription) if subscription else None,
        "has_access": svc.has_access(current_user.id),
    }


# ------------------------------------------------------------------
# Payment webhook
# ------------------------------------------------------------------
async def _raw_body(request: Request) -> bytes:
    return await request.body()


def _verify_signature(raw: bytes, signature: Optional[str]) -> None:
    secret = config.PAYMENT_WEBHOOK_SECRET
    if not secret:
        return
    expected = hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()
    if not signature or not hmac.compare_digest(expected.encode("utf-8"), signature.strip().lower().encode("utf-8")):
        logger.warning("Rejected payment webhook with a missing or invalid signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")


@payment_router.post("/webhook")
def payment_webhook(
    raw: bytes = Depends(_raw_body),
    x_payment_signature: Optional[str] = Header(None),
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    _verify_signature(raw, x_payment_signature)
    try:
        payload = json.loads(raw or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook body must be JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook body must be a JSON object")

    try:
        outcome = unwrap(svc.handle_payment_webhook(payload, gateway))
    except PaymentGatewayError as e:
        logger.error("Payment webhook verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {"success": True, **outcome}


# ------------------------------------------------------------------
# Cron
# ------------------------------------------------------------------
@cron_router.get("/subscription-expiry")
def subscription_expiry(
    authorization: Optional[str] = Header(None),
    svc: SubscriptionAppService = Depends(get_subscription_app_service),
):
    secret = config.CRON_SECRET
    if not secret or not hmac.compare_digest((authorization or "").encode("utf-8"), f"Bearer {secret}".encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    updated = svc.expire_subscriptions()
    return {
        "success": True,
        "message": f"Deactivated {updated} expired subscription(s)",
        "updated_count": updated,
    }
