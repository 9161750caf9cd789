"""API tests using FastAPI TestClient."""
from conftest import MCQ_QUESTION, PASSWORD, auth_headers


def _submit(client, staff, **overrides):
    resp = client.post("/api/gatherer/questions", json={**MCQ_QUESTION, **overrides}, headers=staff["gatherer"])
    assert resp.status_code == 201, resp.text
    return resp.json()


def _actions(client, staff, question_id):
    resp = client.get(f"/api/questions/{question_id}/history", headers=staff["processor"])
    assert resp.status_code == 200
    return [h["action"] for h in resp.json()]


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------
def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": True}


# ------------------------------------------------------------------
# Auth
# ------------------------------------------------------------------
def test_login_success(client):
    resp = client.post("/api/auth/login", json={"username": "root", "password": "root-pass"})
    assert resp.status_code == 200
    data = resp.json()
    assert "token" in data
    assert data["user"]["username"] == "root"
    assert data["user"]["role"] == "superadmin"


def test_login_bad_password(client):
    resp = client.post("/api/auth/login", json={"username": "root", "password": "wrongpassword"})
    assert resp.status_code == 401


def test_register_and_profile(client, student_headers):
    resp = client.get("/api/auth/profile", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["username"] == "student1"
    assert resp.json()["role"] == "student"

    resp = client.put("/api/auth/profile", json={"display_name": "Student One"}, headers=student_headers)
    assert resp.json()["display_name"] == "Student One"


def test_register_duplicate_username_conflicts(client, student_headers):
    resp = client.post("/api/auth/register", json={"username": "student1", "password": PASSWORD})
    assert resp.status_code == 409


def test_missing_token_is_401(client):
    assert client.get("/api/processor/questions").status_code == 401


def test_garbage_token_is_401(client):
    resp = client.get("/api/processor/questions", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_wrong_role_is_403(client, staff):
    resp = client.get("/api/processor/questions", headers=staff["gatherer"])
    assert resp.status_code == 403


def test_superadmin_passes_role_checks(client, admin_headers):
    assert client.get("/api/processor/questions", headers=admin_headers).status_code == 200


def test_validation_error_shape(client, staff):
    resp = client.post("/api/processor/questions/x/flag/review", json={}, headers=staff["processor"])
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Validation failed"
    assert body["errors"][0]["field"] == "decision"


# ------------------------------------------------------------------
# Admin
# ------------------------------------------------------------------
def test_suspended_user_is_locked_out(client, admin_headers, staff):
    users = client.get("/api/admin/users", params={"admin_role": "creator"}, headers=admin_headers).json()
    creator_id = users[0]["id"]

    resp = client.patch(f"/api/admin/users/{creator_id}/status", json={"status": "suspended"}, headers=admin_headers)
    assert resp.status_code == 200
    assert client.get("/api/creator/questions", headers=staff["creator"]).status_code == 403
    resp = client.post("/api/auth/login", json={"username": "creator1", "password": PASSWORD})
    assert resp.status_code == 403


def test_admin_endpoints_require_superadmin(client, staff):
    assert client.get("/api/admin/users", headers=staff["processor"]).status_code == 403


def test_admin_user_needs_admin_role(client, admin_headers):
    resp = client.post(
        "/api/admin/users",
        json={"username": "nobody", "password": PASSWORD, "role": "admin"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


# ------------------------------------------------------------------
# Workflow
# ------------------------------------------------------------------
def test_create_question(client, staff):
    q = _submit(client, staff)
    assert q["status"] == "pending_processor"
    assert q["version"] == 1
    assert [h["action"] for h in q["history"]] == ["created"]


def test_create_question_validation(client, staff):
    resp = client.post(
        "/api/gatherer/questions",
        json={**MCQ_QUESTION, "correct_answer": "E"},
        headers=staff["gatherer"],
    )
    assert resp.status_code == 400
    assert "A, B, C, or D" in resp.json()["detail"]


def test_example_scenario(client, staff):
    """submit → reject → resubmit → accept to explainer → explain → completed."""
    q = _submit(client, staff)
    qid = q["id"]

    resp = client.post(f"/api/processor/questions/{qid}/reject", json={"reason": "Typo in option C"}, headers=staff["processor"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["rejection_reason"] == "Typo in option C"

    rejected = client.get("/api/gatherer/questions", params={"status": "rejected"}, headers=staff["gatherer"]).json()
    assert [r["id"] for r in rejected] == [qid]

    resp = client.put(
        f"/api/gatherer/questions/{qid}/resubmit",
        json={"options": {"A": "3", "B": "4", "C": "6", "D": "22"}},
        headers=staff["gatherer"],
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_processor"
    assert resp.json()["rejection_reason"] is None

    resp = client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "explainer"}, headers=staff["processor"])
    assert resp.json()["status"] == "pending_explainer"

    queue = client.get("/api/explainer/questions", headers=staff["explainer"]).json()
    assert qid in [x["id"] for x in queue]

    resp = client.put(
        f"/api/explainer/questions/{qid}/explanation",
        json={"explanation": "Two plus two is four."},
        headers=staff["explainer"],
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    assert _actions(client, staff, qid) == ["created", "rejected", "resubmitted", "approved", "explained"]


def test_reject_requires_reason(client, staff):
    qid = _submit(client, staff)["id"]
    resp = client.post(f"/api/processor/questions/{qid}/reject", json={"reason": "  "}, headers=staff["processor"])
    assert resp.status_code == 400


def test_accept_wrong_status_is_conflict(client, staff):
    qid = _submit(client, staff)["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "completed"}, headers=staff["processor"])
    resp = client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "creator"}, headers=staff["processor"])
    assert resp.status_code == 409


def test_unknown_question_is_404(client, staff):
    resp = client.post("/api/processor/questions/missing/accept", json={}, headers=staff["processor"])
    assert resp.status_code == 404


def test_default_accept_follows_pipeline(client, staff):
    qid = _submit(client, staff)["id"]
    resp = client.post(f"/api/processor/questions/{qid}/accept", headers=staff["processor"])
    assert resp.json()["status"] == "pending_creator"

    resp = client.put(f"/api/creator/questions/{qid}/submit", json={"notes": "Checked"}, headers=staff["creator"])
    assert resp.json()["status"] == "pending_processor"

    resp = client.post(f"/api/processor/questions/{qid}/accept", json={}, headers=staff["processor"])
    assert resp.json()["status"] == "pending_explainer"


def test_creator_variant(client, staff):
    qid = _submit(client, staff)["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "creator"}, headers=staff["processor"])

    resp = client.post(
        f"/api/creator/questions/{qid}/variants",
        json={"question_text": "What is 3 + 3?", "options": {"A": "5", "B": "6", "C": "7", "D": "33"}},
        headers=staff["creator"],
    )
    assert resp.status_code == 201
    variant = resp.json()
    assert variant["is_variant"] is True
    assert variant["variant_number"] == 1
    assert variant["original_question_id"] == qid
    assert variant["status"] == "pending_processor"
    assert "variant_created" in _actions(client, staff, qid)

    resp = client.post(f"/api/processor/questions/{variant['id']}/accept", headers=staff["processor"])
    assert resp.json()["status"] == "pending_explainer"


def test_comments(client, staff):
    qid = _submit(client, staff)["id"]
    resp = client.post(f"/api/questions/{qid}/comments", json={"body": "Looks good"}, headers=staff["processor"])
    assert resp.status_code == 201
    comments = client.get(f"/api/questions/{qid}/comments", headers=staff["gatherer"]).json()
    assert [c["body"] for c in comments] == ["Looks good"]
    assert comments[0]["author_name"] == "processor1"


def test_dashboards(client, staff):
    qid = _submit(client, staff)["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "creator"}, headers=staff["processor"])

    gatherer = client.get("/api/gatherer/dashboard", headers=staff["gatherer"]).json()
    assert gatherer["performance"]["acceptance_rate"] == 100
    assert gatherer["performance"]["days_range"] == 30

    processor = client.get("/api/processor/dashboard", headers=staff["processor"]).json()
    assert processor["performance"]["approval_rate"] == 100

    creator = client.get("/api/creator/dashboard", headers=staff["creator"]).json()
    assert creator["pending_tasks"] == 1

    explainer = client.get("/api/explainer/dashboard", headers=staff["explainer"]).json()
    assert explainer["performance"]["quality_score"] == 0


def test_processor_dashboard_counts_returned_cases(client, staff):
    qid = _submit(client, staff)["id"]
    client.post(f"/api/processor/questions/{qid}/reject", json={"reason": "ambiguous wording"}, headers=staff["processor"])
    dashboard = client.get("/api/processor/dashboard", headers=staff["processor"]).json()
    assert dashboard["performance"]["returned_cases"] == 0

    client.put(f"/api/gatherer/questions/{qid}/resubmit", json={"question_text": "What is 2 + 2 ?"}, headers=staff["gatherer"])
    dashboard = client.get("/api/processor/dashboard", headers=staff["processor"]).json()
    assert dashboard["performance"]["returned_cases"] == 1
    assert dashboard["pending_tasks"] == 1


def test_admin_question_bank(client, staff, admin_headers):
    first = _submit(client, staff)["id"]
    _submit(client, staff, question_text="What is 5 + 5?")
    client.post(f"/api/processor/questions/{first}/accept", json={"destination": "completed"}, headers=staff["processor"])

    resp = client.get("/api/admin/questions", params={"tab": "pending"}, headers=admin_headers)
    assert resp.json()["total"] == 1

    resp = client.get("/api/admin/questions", params={"search": "5 + 5"}, headers=admin_headers)
    assert resp.json()["total"] == 1

    resp = client.get("/api/admin/questions", params={"page_size": 1}, headers=admin_headers)
    assert resp.json()["total"] == 2
    assert len(resp.json()["items"]) == 1

    stats = client.get("/api/admin/questions/stats", headers=admin_headers).json()
    assert stats["total"] == 2
    assert stats["by_status"]["completed"] == 1
    assert stats["pending"] == 1


def test_server_entry_point_runs_app(monkeypatch):
    from qbank import run

    calls = []
    monkeypatch.setattr(run.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    run.main()
    assert calls[0][0] == "qbank.main:app"
    assert calls[0][1]["port"] == run.config.PORT
