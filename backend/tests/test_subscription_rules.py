"""Unit tests for plan durations and payment payload parsing."""
from datetime import datetime, timezone

import pytest

from qbank.domain.subscription.rules import (
    duration_in_days,
    expiry_from,
    extract_payment_id,
    extract_subscription_id,
    payment_outcome,
)


@pytest.mark.parametrize("duration,days", [
    ("Monthly", 30),
    ("Quarterly", 90),
    ("Semi-Annual", 180),
    ("Annual", 365),
    ("Lifetime", 30),
])
def test_duration_in_days(duration, days):
    assert duration_in_days(duration) == days


def test_expiry_from_start():
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert expiry_from(start, "Quarterly") == datetime(2026, 4, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("payload", [
    {"id": "pay_1"},
    {"payment": {"id": "pay_1"}},
    {"invoice": {"id": "pay_1"}},
    {"invoice_id": "pay_1"},
    {"data": {"id": "pay_1"}},
])
def test_extract_payment_id_shapes(payload):
    assert extract_payment_id(payload) == "pay_1"


def test_extract_payment_id_missing():
    assert extract_payment_id({"type": "ping"}) is None


def test_extract_subscription_id_from_nested_metadata():
    assert extract_subscription_id({"data": {"metadata": {"subscriptionId": "sub_9"}}}) == "sub_9"
    assert extract_subscription_id({"metadata": {"subscription_id": "sub_1"}}) == "sub_1"
    assert extract_subscription_id({}) is None


def test_payment_outcome():
    assert payment_outcome({"status": "paid"}) == "paid"
    assert payment_outcome({"status": "CAPTURED"}) == "paid"
    assert payment_outcome({"status": "failed"}) == "failed"
    assert payment_outcome({"status": "initiated", "payments": [{"status": "paid"}]}) == "paid"
    assert payment_outcome({"status": "initiated"}) == "initiated"
