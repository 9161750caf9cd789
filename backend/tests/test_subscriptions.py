"""Plans, subscriptions, payment webhook and expiry sweep."""
import hashlib
import hmac
import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from conftest import MCQ_QUESTION, PASSWORD
from qbank import container
from qbank.domain.subscription.models import Subscription
from qbank.integrations.payment_gateway import PaymentGatewayError
from qbank.jobs.subscription_expiry import SubscriptionExpiryJob

WEBHOOK_SECRET = "whsec-test"


class FakeGateway:
    def __init__(self, payments=None, error=None):
        self.payments = payments or {}
        self.error = error
        self.calls = []

    def fetch_payment(self, payment_id):
        self.calls.append(payment_id)
        if self.error:
            raise self.error
        return self.payments[payment_id]


def _sign(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture()
def plan(client, admin_headers):
    resp = client.post(
        "/api/admin/plans",
        json={"name": "Monthly Access", "price": 49.0, "duration": "Monthly"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture()
def pending_subscription(client, plan, student_headers):
    resp = client.post("/api/subscription/subscribe", json={"plan_id": plan["id"]}, headers=student_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ------------------------------------------------------------------
# Plans and manual confirmation
# ------------------------------------------------------------------
def test_plan_validation(client, admin_headers):
    resp = client.post(
        "/api/admin/plans",
        json={"name": "Weird", "price": 10, "duration": "Fortnightly"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_update_plan(client, admin_headers, plan):
    resp = client.put(
        f"/api/admin/plans/{plan['id']}",
        json={"price": 59.0, "status": "inactive"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["price"] == 59.0
    assert resp.json()["name"] == "Monthly Access"
    assert client.get("/api/subscription/plans").json() == []

    resp = client.put(f"/api/admin/plans/{plan['id']}", json={"duration": "Weekly"}, headers=admin_headers)
    assert resp.status_code == 400
    assert client.put("/api/admin/plans/missing", json={"price": 1}, headers=admin_headers).status_code == 404


def test_delete_plan(client, admin_headers, plan):
    resp = client.delete(f"/api/admin/plans/{plan['id']}", headers=admin_headers)
    assert resp.status_code == 204
    assert client.get("/api/admin/plans", headers=admin_headers).json() == []
    assert client.delete(f"/api/admin/plans/{plan['id']}", headers=admin_headers).status_code == 404


def test_plan_with_subscriptions_cannot_be_deleted(client, admin_headers, plan, pending_subscription):
    resp = client.delete(f"/api/admin/plans/{plan['id']}", headers=admin_headers)
    assert resp.status_code == 409


def test_subscribe_sets_expiry_from_duration(client, plan, pending_subscription):
    assert pending_subscription["payment_status"] == "Pending"
    assert pending_subscription["is_active"] is False
    start = datetime.fromisoformat(pending_subscription["start_date"])
    expiry = datetime.fromisoformat(pending_subscription["expiry_date"])
    assert expiry - start == timedelta(days=30)
    assert [p["id"] for p in client.get("/api/subscription/plans").json()] == [plan["id"]]


def test_practice_requires_active_subscription(client, app_config, monkeypatch, staff, student_headers, pending_subscription):
    monkeypatch.setattr(app_config, "REQUIRE_SUBSCRIPTION", True)
    assert client.get("/api/student/questions", headers=student_headers).status_code == 403

    resp = client.post(
        "/api/subscription/confirm-payment",
        json={"subscription_id": pending_subscription["id"], "transaction_id": "txn_1"},
        headers=student_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "Paid"
    assert resp.json()["is_active"] is True

    assert client.get("/api/student/questions", headers=student_headers).status_code == 200
    assert client.get("/api/subscription/me", headers=student_headers).json()["has_access"] is True

    # Paying twice is a conflict
    resp = client.post(
        "/api/subscription/confirm-payment",
        json={"subscription_id": pending_subscription["id"], "transaction_id": "txn_2"},
        headers=student_headers,
    )
    assert resp.status_code == 409


def test_cannot_subscribe_while_active(client, plan, student_headers, pending_subscription):
    client.post(
        "/api/subscription/confirm-payment",
        json={"subscription_id": pending_subscription["id"], "transaction_id": "txn_1"},
        headers=student_headers,
    )
    resp = client.post("/api/subscription/subscribe", json={"plan_id": plan["id"]}, headers=student_headers)
    assert resp.status_code == 409


# ------------------------------------------------------------------
# Payment webhook
# ------------------------------------------------------------------
def test_webhook_signature_required(client, app_config, monkeypatch, pending_subscription):
    monkeypatch.setattr(app_config, "PAYMENT_WEBHOOK_SECRET", WEBHOOK_SECRET)
    gateway = FakeGateway()
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway
    body = json.dumps({"id": "pay_1"}).encode()

    assert client.post("/api/payment/webhook", content=body).status_code == 401
    resp = client.post("/api/payment/webhook", content=body, headers={"x-payment-signature": "deadbeef"})
    assert resp.status_code == 401
    assert gateway.calls == []


def test_webhook_marks_subscription_paid_once(client, app_config, monkeypatch, pending_subscription, student_headers):
    monkeypatch.setattr(app_config, "PAYMENT_WEBHOOK_SECRET", WEBHOOK_SECRET)
    sub_id = pending_subscription["id"]
    gateway = FakeGateway({"pay_1": {"id": "pay_1", "status": "paid", "metadata": {"subscription_id": sub_id}}})
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway
    body = json.dumps({"type": "payment_paid", "data": {"id": "pay_1", "metadata": {"subscription_id": sub_id}}}).encode()
    headers = {"x-payment-signature": _sign(body), "content-type": "application/json"}

    resp = client.post("/api/payment/webhook", content=body, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["payment_status"] == "Paid"
    assert resp.json()["changed"] is True

    resp = client.post("/api/payment/webhook", content=body, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["changed"] is False

    me = client.get("/api/subscription/me", headers=student_headers).json()
    assert me["subscription"]["is_active"] is True
    assert me["subscription"]["transaction_id"] == "pay_1"


def _second_pending_subscription(client, plan):
    resp = client.post("/api/auth/register", json={"username": "student2", "password": PASSWORD})
    headers = {"Authorization": f"Bearer {resp.json()['token']}"}
    resp = client.post("/api/subscription/subscribe", json={"plan_id": plan["id"]}, headers=headers)
    return resp.json(), headers


def test_webhook_paid_payment_cannot_activate_another_subscription(client, plan, pending_subscription):
    gateway = FakeGateway({"pay_1": {"id": "pay_1", "status": "paid"}})
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway
    other, other_headers = _second_pending_subscription(client, plan)

    resp = client.post("/api/payment/webhook", json={"id": "pay_1", "metadata": {"subscription_id": pending_subscription["id"]}})
    assert resp.status_code == 200
    assert resp.json()["subscription_id"] == pending_subscription["id"]

    resp = client.post("/api/payment/webhook", json={"id": "pay_1", "metadata": {"subscription_id": other["id"]}})
    assert resp.status_code == 409
    assert client.get("/api/subscription/me", headers=other_headers).json()["has_access"] is False


def test_webhook_prefers_gateway_metadata_over_payload(client, plan, pending_subscription, student_headers):
    sub_id = pending_subscription["id"]
    gateway = FakeGateway({"pay_5": {"id": "pay_5", "status": "paid", "metadata": {"subscription_id": sub_id}}})
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway
    other, other_headers = _second_pending_subscription(client, plan)

    resp = client.post("/api/payment/webhook", json={"id": "pay_5", "metadata": {"subscription_id": other["id"]}})
    assert resp.status_code == 200
    assert resp.json()["subscription_id"] == sub_id
    assert client.get("/api/subscription/me", headers=student_headers).json()["has_access"] is True
    assert client.get("/api/subscription/me", headers=other_headers).json()["has_access"] is False


def test_webhook_failed_payment_leaves_subscription_pending(client, pending_subscription, student_headers):
    sub_id = pending_subscription["id"]
    gateway = FakeGateway({"pay_2": {"id": "pay_2", "status": "failed", "metadata": {"subscription_id": sub_id}}})
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway

    resp = client.post("/api/payment/webhook", json={"id": "pay_2"})
    assert resp.status_code == 200
    assert resp.json()["gateway_status"] == "failed"
    assert resp.json()["payment_status"] == "Pending"
    assert client.get("/api/subscription/me", headers=student_headers).json()["has_access"] is False


def test_webhook_gateway_error_is_502(client, pending_subscription):
    gateway = FakeGateway(error=PaymentGatewayError("timeout"))
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: gateway
    assert client.post("/api/payment/webhook", json={"id": "pay_3"}).status_code == 502


def test_webhook_without_payment_id_is_400(client):
    client.app.dependency_overrides[container.get_payment_gateway] = lambda: FakeGateway()
    assert client.post("/api/payment/webhook", json={"event": "ping"}).status_code == 400


# ------------------------------------------------------------------
# Expiry
# ------------------------------------------------------------------
def _expired_subscription(user_id, plan_id):
    past = datetime.now(timezone.utc) - timedelta(days=40)
    return Subscription(
        id="sub-expired",
        user_id=user_id,
        plan_id=plan_id,
        user_name="student1",
        plan_name="Monthly Access",
        start_date=past.isoformat(),
        expiry_date=(past + timedelta(days=30)).isoformat(),
        created_at=past.isoformat(),
        updated_at=past.isoformat(),
        payment_status="Paid",
        is_active=True,
    )


def test_cron_requires_secret(client, app_config, monkeypatch):
    assert client.get("/api/cron/subscription-expiry").status_code == 401
    monkeypatch.setattr(app_config, "CRON_SECRET", "cron-secret")
    resp = client.get("/api/cron/subscription-expiry", headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401


def test_cron_deactivates_expired(client, app_config, monkeypatch, plan, student_headers):
    monkeypatch.setattr(app_config, "CRON_SECRET", "cron-secret")
    student_id = client.get("/api/auth/profile", headers=student_headers).json()["id"]
    container.get_subscription_repo().save(_expired_subscription(student_id, plan["id"]))

    resp = client.get("/api/cron/subscription-expiry", headers={"Authorization": "Bearer cron-secret"})
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Deactivated 1 expired subscription(s)",
        "updated_count": 1,
    }
    assert container.get_subscription_repo().get_by_id("sub-expired").is_active is False


def test_expired_subscription_blocks_practice(client, app_config, monkeypatch, plan, student_headers):
    monkeypatch.setattr(app_config, "REQUIRE_SUBSCRIPTION", True)
    student_id = client.get("/api/auth/profile", headers=student_headers).json()["id"]
    container.get_subscription_repo().save(_expired_subscription(student_id, plan["id"]))
    assert client.get("/api/student/questions", headers=student_headers).status_code == 403


def test_expiry_job_runs_sweep_in_background():
    swept = threading.Event()

    def sweep():
        swept.set()
        return 0

    job = SubscriptionExpiryJob(sweep, interval_seconds=60)
    job.start()
    try:
        assert swept.wait(timeout=5)
        assert job.is_running
    finally:
        job.stop()
    assert not job.is_running


def test_student_flag_skips_subscription_check(client, app_config, monkeypatch, staff, student_headers):
    resp = client.post("/api/gatherer/questions", json=MCQ_QUESTION, headers=staff["gatherer"])
    qid = resp.json()["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "completed"}, headers=staff["processor"])
    monkeypatch.setattr(app_config, "REQUIRE_SUBSCRIPTION", True)

    resp = client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Typo"}, headers=student_headers)
    assert resp.status_code == 200
