"""Application service — plans, subscriptions, payment confirmation and expiry."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import List, Optional

from qbank.domain.common.result import Result
from qbank.domain.subscription.models import PLAN_ACTIVE, Plan, Subscription
from qbank.domain.subscription.rules import (
    extract_payment_id,
    extract_subscription_id,
    grants_access,
)
from qbank.domain.subscription.service import SubscriptionDomainService
from qbank.domain.user.models import User
from qbank.integrations.payment_gateway import PaymentGateway
from qbank.persistence.interfaces.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionAppService:
    def __init__(self, repo: SubscriptionRepository):
        self._repo = repo
        self._domain = SubscriptionDomainService()

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------
    def create_plan(self, data: dict) -> Result[Plan]:
        result = self._domain.create_plan(data)
        if not result.is_success:
            return result
        self._repo.add_plan(result.value)
        return result

    def list_plans(self, active_only: bool = True) -> List[Plan]:
        return self._repo.list_plans(PLAN_ACTIVE if active_only else None)

    def update_plan(self, plan_id: str, data: dict) -> Result[Plan]:
        plan = self._repo.get_plan(plan_id)
        if not plan:
            return Result.not_found(f"Plan '{plan_id}' not found.")
        result = self._domain.update_plan(plan, data)
        if not result.is_success:
            return result
        self._repo.update_plan(result.value)
        logger.info("Plan %s updated", plan_id)
        return result

    def delete_plan(self, plan_id: str) -> Result[None]:
        if not self._repo.get_plan(plan_id):
            return Result.not_found(f"Plan '{plan_id}' not found.")
        in_use = self._repo.count_for_plan(plan_id)
        if in_use:
            return Result.conflict(
                f"Plan has {in_use} subscription(s); set its status to 'inactive' instead of deleting it."
            )
        self._repo.delete_plan(plan_id)
        logger.info("Plan %s deleted", plan_id)
        return Result.ok(None)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def current(self, user_id: str) -> Optional[Subscription]:
        """Latest subscription for a user, after lapsing it if it has expired."""
        self._repo.deactivate_expired(_now().isoformat(), user_id=user_id)
        return self._repo.latest_for_user(user_id)

    def has_access(self, user_id: str) -> bool:
        return grants_access(self.current(user_id), _now())

    def subscribe(self, user: User, plan_id: str) -> Result[Subscription]:
        plan = self._repo.get_plan(plan_id)
        if not plan:
            return Result.not_found(f"Plan '{plan_id}' not found.")
        if self.has_access(user.id):
            return Result.conflict("You already have an active subscription.")
        result = self._domain.subscribe(user, plan)
        if not result.is_success:
            return result
        self._repo.save(result.value)
        logger.info("Subscription %s opened for user %s on plan %s", result.value.id, user.id, plan.name)
        return result

    def confirm_payment(self, user: User, subscription_id: str, transaction_id: str) -> Result[Subscription]:
        subscription = self._repo.get_by_id(subscription_id)
        if not subscription:
            return Result.not_found(f"Subscription '{subscription_id}' not found.")
        if subscription.user_id != user.id and not user.is_superadmin:
            return Result.forbidden("This subscription belongs to another user.")
        result = self._domain.confirm_payment(subscription, transaction_id)
        if not result.is_success:
            return result
        self._repo.save(result.value)
        logger.info("Subscription %s confirmed with transaction %s", subscription.id, transaction_id)
        return result

    # ------------------------------------------------------------------
    # Payment webhook
    # ------------------------------------------------------------------
    def handle_payment_webhook(self, payload: dict, gateway: PaymentGateway) -> Result[dict]:
        """
        Verify a webhook delivery against the gateway and apply it.
        Raises PaymentGatewayError when the gateway cannot be reached.
        """
        payment_id = extract_payment_id(payload)
        if not payment_id:
            return Result.fail("Payment id not found in webhook payload.")

        payment = gateway.fetch_payment(payment_id)
        # The verified payment's metadata wins over the delivery body
        subscription_id = extract_subscription_id(payment) or extract_subscription_id(payload)
        attached = self._repo.find_by_payment_id(payment_id)
        subscription = self._repo.get_by_id(subscription_id) if subscription_id else None
        if subscription is None:
            subscription = attached
        if subscription is None:
            return Result.not_found(f"No subscription found for payment '{payment_id}'.")
        if attached is not None and attached.id != subscription.id:
            logger.warning(
                "Payment %s is already attached to subscription %s, refusing it for %s",
                payment_id, attached.id, subscription.id,
            )
            return Result.conflict(f"Payment '{payment_id}' is already attached to another subscription.")

        result = self._domain.apply_gateway_payment(subscription, payment_id, payment)
        if not result.is_success:
            return Result.propagate(result)
        subscription, changed = result.value
        if changed:
            self._repo.save(subscription)
        logger.info(
            "Payment webhook %s for subscription %s: %s%s",
            payment_id, subscription.id, subscription.gateway_status, "" if changed else " (already applied)",
        )
        return Result.ok({
            "subscription_id": subscription.id,
            "payment_status": subscription.payment_status,
            "gateway_status": subscription.gateway_status,
            "changed": changed,
        })

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------
    def expire_subscriptions(self) -> int:
        updated = self._repo.deactivate_expired(_now().isoformat())
        logger.info("Subscription expiry sweep deactivated %d subscription(s)", updated)
        return updated
