"""Plan and subscription domain models."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_CANCELLED = "Cancelled"

PLAN_ACTIVE = "active"
PLAN_INACTIVE = "inactive"

# Plan duration label -> days
DURATION_DAYS: dict[str, int] = {
    "Monthly": 30,
    "Quarterly": 90,
    "Semi-Annual": 180,
    "Annual": 365,
}
DEFAULT_DURATION_DAYS = 30


@dataclass
class Plan:
    id: str
    name: str
    price: float
    duration: str
    created_at: str
    description: Optional[str] = None
    status: str = PLAN_ACTIVE


@dataclass
class Subscription:
    id: str
    user_id: str
    plan_id: str
    user_name: str
    plan_name: str
    start_date: str
    expiry_date: str
    created_at: str
    updated_at: str
    payment_status: str = PAYMENT_PENDING
    is_active: bool = False
    transaction_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    gateway_status: Optional[str] = None
