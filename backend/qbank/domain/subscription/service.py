"""Domain service — subscription lifecycle, no I/O."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional

from qbank.domain.common.result import Result
from qbank.domain.subscription.models import (
    DURATION_DAYS,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    PLAN_ACTIVE,
    PLAN_INACTIVE,
    Plan,
    Subscription,
)
from qbank.domain.subscription.rules import expiry_from, payment_outcome
from qbank.domain.user.models import User


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionDomainService:

    @staticmethod
    def _validate_plan(name: str, price, duration: str, status: str) -> Result[None]:
        if not name:
            return Result.fail("Plan 'name' is required and cannot be empty.")
        if price is None or price < 0:
            return Result.fail("Plan 'price' must be zero or positive.")
        if duration not in DURATION_DAYS:
            return Result.fail(f"'{duration}' is not a valid duration. Must be one of {sorted(DURATION_DAYS)}.")
        if status not in (PLAN_ACTIVE, PLAN_INACTIVE):
            return Result.fail(f"'{status}' is not a valid plan status.")
        return Result.ok(None)

    def create_plan(self, data: dict) -> Result[Plan]:
        name = (data.get("name") or "").strip()
        status = data.get("status") or PLAN_ACTIVE
        valid = self._validate_plan(name, data.get("price"), data.get("duration"), status)
        if not valid.is_success:
            return Result.propagate(valid)
        return Result.ok(Plan(
            id=str(uuid.uuid4()),
            name=name,
            price=float(data["price"]),
            duration=data["duration"],
            description=data.get("description"),
            status=status,
            created_at=_now().isoformat(),
        ))

    def update_plan(self, plan: Plan, data: dict) -> Result[Plan]:
        """Apply the fields present in ``data``; the rest keep their current values."""
        name = (data["name"] if data.get("name") is not None else plan.name).strip()
        price = data["price"] if data.get("price") is not None else plan.price
        duration = data.get("duration") or plan.duration
        status = data.get("status") or plan.status
        valid = self._validate_plan(name, price, duration, status)
        if not valid.is_success:
            return Result.propagate(valid)
        plan.name = name
        plan.price = float(price)
        plan.duration = duration
        plan.status = status
        if data.get("description") is not None:
            plan.description = data["description"]
        return Result.ok(plan)

    def subscribe(self, user: User, plan: Plan, now: Optional[datetime] = None) -> Result[Subscription]:
        """Open a pending subscription; it becomes active once payment is confirmed."""
        if plan.status != PLAN_ACTIVE:
            return Result.conflict("This plan is not available for subscription.")
        start = now or _now()
        return Result.ok(Subscription(
            id=str(uuid.uuid4()),
            user_id=user.id,
            plan_id=plan.id,
            user_name=user.display_name or user.username,
            plan_name=plan.name,
            start_date=start.isoformat(),
            expiry_date=expiry_from(start, plan.duration).isoformat(),
            payment_status=PAYMENT_PENDING,
            is_active=False,
            created_at=start.isoformat(),
            updated_at=start.isoformat(),
        ))

    def confirm_payment(self, subscription: Subscription, transaction_id: str) -> Result[Subscription]:
        if not (transaction_id or "").strip():
            return Result.fail("'transaction_id' is required.")
        if subscription.payment_status == PAYMENT_PAID:
            return Result.conflict("Subscription is already paid.")
        subscription.payment_status = PAYMENT_PAID
        subscription.is_active = True
        subscription.transaction_id = transaction_id.strip()
        subscription.updated_at = _now().isoformat()
        return Result.ok(subscription)

    def apply_gateway_payment(
        self,
        subscription: Subscription,
        payment_id: str,
        payment: dict,
    ) -> Result[tuple[Subscription, bool]]:
        """
        Apply a verified gateway payment. Returns (subscription, changed).
        A repeat delivery for an already-paid subscription is a no-op.
        """
        if subscription.payment_status == PAYMENT_PAID and subscription.gateway_payment_id == payment_id:
            return Result.ok((subscription, False))

        outcome = payment_outcome(payment)
        subscription.gateway_payment_id = payment_id
        subscription.gateway_status = outcome
        subscription.updated_at = _now().isoformat()
        if outcome == "paid":
            subscription.payment_status = PAYMENT_PAID
            subscription.is_active = True
            subscription.transaction_id = payment_id
        return Result.ok((subscription, True))
