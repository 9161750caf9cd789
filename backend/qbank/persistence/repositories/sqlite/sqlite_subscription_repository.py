"""SQLite implementation of SubscriptionRepository."""
from __future__ import annotations
from typing import List, Optional

from qbank.domain.subscription.models import Plan, Subscription
from qbank.persistence.db import Database
from qbank.persistence.interfaces.subscription_repository import SubscriptionRepository


def _row_to_plan(row) -> Plan:
    return Plan(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        duration=row["duration"],
        description=row["description"],
        status=row["status"],
        created_at=row["created_at"],
    )


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row["id"],
        user_id=row["user_id"],
        plan_id=row["plan_id"],
        user_name=row["user_name"],
        plan_name=row["plan_name"],
        start_date=row["start_date"],
        expiry_date=row["expiry_date"],
        payment_status=row["payment_status"],
        is_active=bool(row["is_active"]),
        transaction_id=row["transaction_id"],
        gateway_payment_id=row["gateway_payment_id"],
        gateway_status=row["gateway_status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqliteSubscriptionRepository(SubscriptionRepository):

    def __init__(self, db: Database):
        self._db = db

    def add_plan(self, plan: Plan) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO plans (id, name, price, duration, description, status, created_at)
                VALUES (:id, :name, :price, :duration, :description, :status, :created_at)
                """,
                vars(plan),
            )

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM plans WHERE id = ?", (plan_id,)).fetchone()
        return _row_to_plan(row) if row else None

    def list_plans(self, status: Optional[str] = None) -> List[Plan]:
        with self._db.transaction() as conn:
            if status:
                rows = conn.execute("SELECT * FROM plans WHERE status = ? ORDER BY price ASC", (status,)).fetchall()
            else:
                rows = conn.execute("SELECT * FROM plans ORDER BY price ASC").fetchall()
        return [_row_to_plan(r) for r in rows]

    def update_plan(self, plan: Plan) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE plans SET name = :name, price = :price, duration = :duration,
                    description = :description, status = :status
                WHERE id = :id
                """,
                vars(plan),
            )

    def delete_plan(self, plan_id: str) -> None:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))

    def count_for_plan(self, plan_id: str) -> int:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT COUNT(*) FROM subscriptions WHERE plan_id = ?", (plan_id,)).fetchone()
        return row[0]

    def save(self, subscription: Subscription) -> None:
        params = dict(vars(subscription), is_active=int(subscription.is_active))
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO subscriptions (
                    id, user_id, plan_id, user_name, plan_name, start_date, expiry_date,
                    payment_status, is_active, transaction_id, gateway_payment_id, gateway_status,
                    created_at, updated_at
                ) VALUES (
                    :id, :user_id, :plan_id, :user_name, :plan_name, :start_date, :expiry_date,
                    :payment_status, :is_active, :transaction_id, :gateway_payment_id, :gateway_status,
                    :created_at, :updated_at
                )
                ON CONFLICT(id) DO UPDATE SET
                    payment_status     = excluded.payment_status,
                    is_active          = excluded.is_active,
                    transaction_id     = excluded.transaction_id,
                    gateway_payment_id = excluded.gateway_payment_id,
                    gateway_status     = excluded.gateway_status,
                    updated_at         = excluded.updated_at
                """,
                params,
            )

    def get_by_id(self, subscription_id: str) -> Optional[Subscription]:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
        return _row_to_subscription(row) if row else None

    def find_by_payment_id(self, payment_id: str) -> Optional[Subscription]:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE gateway_payment_id = ? OR transaction_id = ? LIMIT 1",
                (payment_id, payment_id),
            ).fetchone()
        return _row_to_subscription(row) if row else None

    def latest_for_user(self, user_id: str) -> Optional[Subscription]:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY created_at DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        return _row_to_subscription(row) if row else None

    def deactivate_expired(self, now_iso: str, user_id: Optional[str] = None) -> int:
        sql = "UPDATE subscriptions SET is_active = 0, updated_at = ? WHERE is_active = 1 AND expiry_date < ?"
        params: list = [now_iso, now_iso]
        if user_id:
            sql += " AND user_id = ?"
            params.append(user_id)
        with self._db.transaction() as conn:
            cur = conn.execute(sql, params)
        return cur.rowcount

    def count_expired(self, now_iso: str) -> int:
        with self._db.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM subscriptions WHERE is_active = 1 AND expiry_date < ?",
                (now_iso,),
            ).fetchone()[0]
