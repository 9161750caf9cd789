"""Shared fixtures: an app bound to a throwaway SQLite file, plus login helpers."""
import pytest
from fastapi.testclient import TestClient

SUPERADMIN = {"username": "root", "password": "root-pass"}
PASSWORD = "secret-pass"

MCQ_QUESTION = {
    "question_text": "What is 2 + 2?",
    "question_type": "MCQ",
    "options": {"A": "3", "B": "4", "C": "5", "D": "22"},
    "correct_answer": "B",
    "difficulty": "easy",
    "exam": "Math Entrance",
    "subject": "Arithmetic",
    "topic": "Addition",
}


@pytest.fixture()
def app_config(tmp_path, monkeypatch):
    """Point config at a temp database and reset the container singletons."""
    from qbank import container
    from qbank.core import config

    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "qbank-test.db"))
    monkeypatch.setattr(config, "DB_RETRY_DELAY_SECONDS", 0.0)
    monkeypatch.setattr(config, "SUPERADMIN_USERNAME", SUPERADMIN["username"])
    monkeypatch.setattr(config, "SUPERADMIN_PASSWORD", SUPERADMIN["password"])
    monkeypatch.setattr(config, "REQUIRE_SUBSCRIPTION", False)
    monkeypatch.setattr(config, "EXPLANATION_REQUIRES_REVIEW", False)
    monkeypatch.setattr(config, "SUBSCRIPTION_SWEEP_ENABLED", False)
    monkeypatch.setattr(config, "PAYMENT_WEBHOOK_SECRET", "")
    monkeypatch.setattr(config, "CRON_SECRET", "")
    container.reset()
    yield config
    container.reset()


@pytest.fixture()
def client(app_config):
    from qbank.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(client, username, password=PASSWORD):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture()
def admin_headers(client):
    return auth_headers(client, SUPERADMIN["username"], SUPERADMIN["password"])


@pytest.fixture()
def staff(client, admin_headers):
    """One account per workflow role; returns {role: headers}."""
    headers = {}
    for role in ("gatherer", "processor", "creator", "explainer"):
        resp = client.post(
            "/api/admin/users",
            json={"username": f"{role}1", "password": PASSWORD, "role": "admin", "admin_role": role},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        headers[role] = auth_headers(client, f"{role}1")
    return headers


@pytest.fixture()
def student_headers(client):
    resp = client.post("/api/auth/register", json={"username": "student1", "password": PASSWORD})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
