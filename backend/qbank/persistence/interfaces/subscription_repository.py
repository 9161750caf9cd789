"""Abstract repository interface for plans and subscriptions."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from qbank.domain.subscription.models import Plan, Subscription


class SubscriptionRepository(ABC):

    @abstractmethod
    def add_plan(self, plan: Plan) -> None:
        ...

    @abstractmethod
    def get_plan(self, plan_id: str) -> Optional[Plan]:
        ...

    @abstractmethod
    def list_plans(self, status: Optional[str] = None) -> List[Plan]:
        ...

    @abstractmethod
    def update_plan(self, plan: Plan) -> None:
        ...

    @abstractmethod
    def delete_plan(self, plan_id: str) -> None:
        ...

    @abstractmethod
    def count_for_plan(self, plan_id: str) -> int:
        """Number of subscriptions, in any state, opened on a plan."""
        ...

    @abstractmethod
    def save(self, subscription: Subscription) -> None:
        """Insert or update a subscription."""
        ...

    @abstractmethod
    def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def find_by_payment_id(self, payment_id: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def latest_for_user(self, user_id: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def deactivate_expired(self, now_iso: str, user_id: Optional[str] = None) -> int:
        """Flip is_active off for active subscriptions past expiry. Returns rows changed."""
        ...

    @abstractmethod
    def count_expired(self, now_iso: str) -> int:
        ...
