"""Subscription rules: plan durations, expiry, and payment payload parsing."""
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Optional

from qbank.domain.subscription.models import (
    DEFAULT_DURATION_DAYS,
    DURATION_DAYS,
    PAYMENT_PAID,
    Subscription,
)

PAID_STATUSES = {"paid", "captured"}
FAILED_STATUSES = {"failed"}


def duration_in_days(duration: str) -> int:
    return DURATION_DAYS.get(duration, DEFAULT_DURATION_DAYS)


def expiry_from(start: datetime, duration: str) -> datetime:
    return start + timedelta(days=duration_in_days(duration))


def is_expired(subscription: Subscription, now: datetime) -> bool:
    return datetime.fromisoformat(subscription.expiry_date) < now


def grants_access(subscription: Optional[Subscription], now: datetime) -> bool:
    return bool(
        subscription
        and subscription.is_active
        and subscription.payment_status == PAYMENT_PAID
        and not is_expired(subscription, now)
    )


def _dig(payload: dict, *path: str) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_payment_id(payload: dict) -> Optional[str]:
    """Gateways send payment or invoice objects in a few different envelopes."""
    for path in (("id",), ("payment", "id"), ("invoice", "id"), ("invoice_id",), ("data", "id"), ("object", "id")):
        value = _dig(payload, *path)
        if value:
            return str(value)
    return None


def extract_subscription_id(payload: dict) -> Optional[str]:
    for envelope in ((), ("payment",), ("invoice",), ("data",)):
        for key in ("subscription_id", "subscriptionId"):
            value = _dig(payload, *envelope, "metadata", key)
            if value:
                return str(value)
    return None


def payment_outcome(payment: dict) -> str:
    """Collapse a gateway payment/invoice object into 'paid', 'failed' or its raw status."""
    status = str(payment.get("status") or _dig(payment, "invoice", "status") or "unknown").lower()
    nested = payment.get("payments")
    if isinstance(nested, list) and any(str(p.get("status", "")).lower() in PAID_STATUSES for p in nested):
        return "paid"
    if status in PAID_STATUSES:
        return "paid"
    if status in FAILED_STATUSES:
        return "failed"
    return status
