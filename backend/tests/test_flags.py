"""Flag lifecycle and student practice through the API."""
from conftest import MCQ_QUESTION, PASSWORD


def _completed_question(client, staff, **overrides):
    resp = client.post("/api/gatherer/questions", json={**MCQ_QUESTION, **overrides}, headers=staff["gatherer"])
    qid = resp.json()["id"]
    resp = client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "completed"}, headers=staff["processor"])
    assert resp.json()["status"] == "completed"
    return qid


def _question(client, staff, qid):
    return client.get(f"/api/questions/{qid}", headers=staff["processor"]).json()


# ------------------------------------------------------------------
# Student flags
# ------------------------------------------------------------------
def test_student_flag_approve_and_resubmit(client, staff, student_headers):
    qid = _completed_question(client, staff)

    resp = client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Answer is wrong"}, headers=student_headers)
    assert resp.status_code == 200
    q = _question(client, staff, qid)
    assert q["status"] == "pending_processor"
    assert q["flag_status"] == "pending"
    # Pending flags are not shown as flagged
    assert q["is_flagged"] is True
    assert q["is_visibly_flagged"] is False
    assert client.get("/api/gatherer/questions", params={"flagged": True}, headers=staff["gatherer"]).json() == []
    assert qid not in [x["id"] for x in client.get("/api/student/questions", headers=student_headers).json()]

    resp = client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "completed"}, headers=staff["processor"])
    assert resp.status_code == 409

    resp = client.post(f"/api/processor/questions/{qid}/flag/review", json={"decision": "approve"}, headers=staff["processor"])
    assert resp.status_code == 200
    q = resp.json()
    assert q["is_visibly_flagged"] is True
    assert q["status"] == "pending_processor"
    assert q["correction_role"] == "gatherer"

    # Approving again changes nothing
    resp = client.post(f"/api/processor/questions/{qid}/flag/review", json={"decision": "approve"}, headers=staff["processor"])
    assert resp.status_code == 200
    history = client.get(f"/api/questions/{qid}/history", headers=staff["processor"]).json()
    assert [h["action"] for h in history].count("flag_approved") == 1

    flagged = client.get("/api/gatherer/questions", params={"flagged": True}, headers=staff["gatherer"]).json()
    assert [f["id"] for f in flagged] == [qid]
    assert flagged[0]["flag_reason"] == "Answer is wrong"

    resp = client.put(f"/api/gatherer/questions/{qid}/resubmit", json={"correct_answer": "B"}, headers=staff["gatherer"])
    assert resp.status_code == 200
    q = resp.json()
    assert q["status"] == "pending_processor"
    assert q["is_flagged"] is False
    assert q["flag_reason"] is None


def test_reject_flag_needs_reason(client, staff, student_headers):
    qid = _completed_question(client, staff)
    client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Unclear"}, headers=student_headers)

    resp = client.post(f"/api/processor/questions/{qid}/flag/review", json={"decision": "reject"}, headers=staff["processor"])
    assert resp.status_code == 400

    resp = client.post(
        f"/api/processor/questions/{qid}/flag/review",
        json={"decision": "reject", "rejection_reason": "Question is fine"},
        headers=staff["processor"],
    )
    assert resp.status_code == 200
    q = resp.json()
    assert q["status"] == "completed"
    assert q["is_flagged"] is False
    assert q["flag_reason"] is None
    assert q["flag_rejection_reason"] == "Question is fine"


def test_bad_flag_decision(client, staff, student_headers):
    qid = _completed_question(client, staff)
    client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Unclear"}, headers=student_headers)
    resp = client.post(f"/api/processor/questions/{qid}/flag/review", json={"decision": "maybe"}, headers=staff["processor"])
    assert resp.status_code == 400


def test_explainer_flag_stays_in_explainer_queue(client, staff):
    resp = client.post("/api/gatherer/questions", json=MCQ_QUESTION, headers=staff["gatherer"])
    qid = resp.json()["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "explainer"}, headers=staff["processor"])

    resp = client.post(f"/api/explainer/questions/{qid}/flag", json={"flag_reason": "Options overlap"}, headers=staff["explainer"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_processor"
    assert qid in [x["id"] for x in client.get("/api/explainer/questions", headers=staff["explainer"]).json()]

    resp = client.post(
        f"/api/processor/questions/{qid}/flag/review",
        json={"decision": "reject", "rejection_reason": "Options are distinct"},
        headers=staff["processor"],
    )
    assert resp.json()["status"] == "pending_explainer"


def test_student_cannot_flag_twice(client, staff, student_headers):
    qid = _completed_question(client, staff)
    client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Wrong"}, headers=student_headers)
    resp = client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Still wrong"}, headers=student_headers)
    assert resp.status_code == 409


# ------------------------------------------------------------------
# Practice
# ------------------------------------------------------------------
def test_study_answer_hides_answer_until_submitted(client, staff, student_headers):
    qid = _completed_question(client, staff)

    listed = client.get("/api/student/questions", headers=student_headers).json()
    assert [q["id"] for q in listed] == [qid]
    assert "correct_answer" not in listed[0]

    resp = client.post(f"/api/student/questions/{qid}/answer", json={"selected_answer": "B"}, headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["is_correct"] is True
    assert resp.json()["correct_answer"] == "B"


def test_pending_question_is_not_practicable(client, staff, student_headers):
    resp = client.post("/api/gatherer/questions", json=MCQ_QUESTION, headers=staff["gatherer"])
    qid = resp.json()["id"]
    assert client.get(f"/api/student/questions/{qid}", headers=student_headers).status_code == 404


def test_submit_test_and_history(client, staff, student_headers):
    first = _completed_question(client, staff)
    second = _completed_question(client, staff, question_text="Is the sky blue?", question_type="True/False", correct_answer="True")

    resp = client.post(
        "/api/student/tests",
        json={"answers": [
            {"question_id": first, "selected_answer": "B"},
            {"question_id": second, "selected_answer": "False"},
        ]},
        headers=student_headers,
    )
    assert resp.status_code == 201
    result = resp.json()
    assert result["total_questions"] == 2
    assert result["correct_answers"] == 1
    assert result["percentage"] == 50

    history = client.get("/api/student/history", params={"mode": "test"}, headers=student_headers).json()
    assert len(history) == 1
    assert client.get("/api/student/history", params={"mode": "exam"}, headers=student_headers).status_code == 400


def test_staff_cannot_use_student_routes(client, staff):
    assert client.get("/api/student/questions", headers=staff["gatherer"]).status_code == 403


def _assert_no_hidden_flag_reasons(questions):
    for q in questions:
        if not q["is_flagged"]:
            assert q["flag_reason"] is None
            assert q["flag_status"] is None


def test_list_views_hide_reason_of_unflagged_questions(client, staff, admin_headers, student_headers):
    qid = _completed_question(client, staff)
    client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Answer is wrong"}, headers=student_headers)

    queue = client.get("/api/processor/questions", headers=staff["processor"]).json()
    flagged = [q for q in queue if q["id"] == qid][0]
    assert flagged["is_flagged"] is True
    assert flagged["flag_reason"] == "Answer is wrong"
    _assert_no_hidden_flag_reasons(queue)

    client.post(
        f"/api/processor/questions/{qid}/flag/review",
        json={"decision": "reject", "rejection_reason": "Answer is right"},
        headers=staff["processor"],
    )
    _assert_no_hidden_flag_reasons(client.get("/api/gatherer/questions", headers=staff["gatherer"]).json())
    _assert_no_hidden_flag_reasons(client.get("/api/admin/questions", headers=admin_headers).json()["items"])
    q = _question(client, staff, qid)
    assert q["is_flagged"] is False
    assert q["flag_reason"] is None


# ------------------------------------------------------------------
# Creator flags
# ------------------------------------------------------------------
def _creator_question(client, staff):
    resp = client.post("/api/gatherer/questions", json=MCQ_QUESTION, headers=staff["gatherer"])
    qid = resp.json()["id"]
    client.post(f"/api/processor/questions/{qid}/accept", json={"destination": "creator"}, headers=staff["processor"])
    return qid


def test_creator_flag_approved_goes_to_gatherer(client, staff):
    qid = _creator_question(client, staff)

    resp = client.post(f"/api/creator/questions/{qid}/flag", json={"flag_reason": "Two correct options"}, headers=staff["creator"])
    assert resp.status_code == 200
    assert resp.json()["flag_type"] == "creator"
    assert resp.json()["status"] == "pending_processor"

    resp = client.post(f"/api/processor/questions/{qid}/flag/review", json={"decision": "approve"}, headers=staff["processor"])
    assert resp.json()["correction_role"] == "gatherer"

    # Only the role asked to correct it may resubmit
    resp = client.put(f"/api/creator/questions/{qid}/resubmit", json={}, headers=staff["creator"])
    assert resp.status_code == 403
    resp = client.put(f"/api/explainer/questions/{qid}/resubmit", json={}, headers=staff["explainer"])
    assert resp.status_code == 403

    resp = client.put(f"/api/gatherer/questions/{qid}/resubmit", json={"correct_answer": "B"}, headers=staff["gatherer"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_processor"


def test_creator_flag_rejected_returns_to_creator(client, staff):
    qid = _creator_question(client, staff)
    client.post(f"/api/creator/questions/{qid}/flag", json={"flag_reason": "Unclear"}, headers=staff["creator"])

    resp = client.post(
        f"/api/processor/questions/{qid}/flag/review",
        json={"decision": "reject", "rejection_reason": "Wording is clear"},
        headers=staff["processor"],
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending_creator"
    assert qid in [x["id"] for x in client.get("/api/creator/questions", headers=staff["creator"]).json()]


def test_flagged_variant_is_corrected_by_creator(client, staff):
    qid = _creator_question(client, staff)
    resp = client.post(
        f"/api/creator/questions/{qid}/variants",
        json={"question_text": "What is 3 + 3?", "options": {"A": "5", "B": "6", "C": "7", "D": "33"}},
        headers=staff["creator"],
    )
    variant_id = resp.json()["id"]
    client.post(f"/api/processor/questions/{variant_id}/accept", json={"destination": "creator"}, headers=staff["processor"])

    resp = client.post(f"/api/creator/questions/{variant_id}/flag", json={"flag_reason": "Option D is odd"}, headers=staff["creator"])
    assert resp.status_code == 200
    resp = client.post(f"/api/processor/questions/{variant_id}/flag/review", json={"decision": "approve"}, headers=staff["processor"])
    assert resp.json()["correction_role"] == "creator"

    resp = client.put(f"/api/gatherer/questions/{variant_id}/resubmit", json={}, headers=staff["gatherer"])
    assert resp.status_code == 403

    resp = client.put(
        f"/api/creator/questions/{variant_id}/resubmit",
        json={"options": {"A": "5", "B": "6", "C": "7", "D": "8"}},
        headers=staff["creator"],
    )
    assert resp.status_code == 200
    q = resp.json()
    assert q["status"] == "pending_processor"
    assert q["is_flagged"] is False
    assert q["history"][-1]["action"] == "resubmitted"


# ------------------------------------------------------------------
# Tests and visibility
# ------------------------------------------------------------------
def test_start_test_and_read_result(client, staff, student_headers):
    qid = _completed_question(client, staff)

    assert client.get("/api/student/tests/start", headers=student_headers).status_code == 400
    resp = client.get("/api/student/tests/start", params={"exam": "Other Exam"}, headers=student_headers)
    assert resp.status_code == 404

    resp = client.get("/api/student/tests/start", params={"exam": "Math Entrance"}, headers=student_headers)
    assert resp.status_code == 200
    started = resp.json()
    assert started["count"] == 1
    assert "correct_answer" not in started["questions"][0]

    resp = client.post(
        "/api/student/tests",
        json={"answers": [{"question_id": qid, "selected_answer": "C"}]},
        headers=student_headers,
    )
    test_id = resp.json()["id"]

    result = client.get(f"/api/student/tests/{test_id}", headers=student_headers).json()
    assert result["summary"]["correct_answers"] == 0
    assert result["results"][0]["correct_answer"] == "B"
    assert result["results"][0]["selected_answer"] == "C"

    other = client.post("/api/auth/register", json={"username": "student2", "password": PASSWORD}).json()
    other_headers = {"Authorization": f"Bearer {other['token']}"}
    assert client.get(f"/api/student/tests/{test_id}", headers=other_headers).status_code == 404


def test_hidden_question_leaves_student_practice(client, staff, admin_headers, student_headers):
    qid = _completed_question(client, staff)

    resp = client.patch(f"/api/admin/questions/{qid}/visibility", json={"is_visible": False}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["is_visible"] is False

    assert client.get("/api/student/questions", headers=student_headers).json() == []
    assert client.get(f"/api/student/questions/{qid}", headers=student_headers).status_code == 404
    resp = client.post(f"/api/student/questions/{qid}/answer", json={"selected_answer": "B"}, headers=student_headers)
    assert resp.status_code == 404
    resp = client.post(f"/api/student/questions/{qid}/flag", json={"flag_reason": "Typo"}, headers=student_headers)
    assert resp.status_code == 404
    resp = client.post(
        "/api/student/tests",
        json={"answers": [{"question_id": qid, "selected_answer": "B"}]},
        headers=student_headers,
    )
    assert resp.status_code == 404

    # Setting the same value again records nothing new
    client.patch(f"/api/admin/questions/{qid}/visibility", json={"is_visible": False}, headers=admin_headers)
    client.patch(f"/api/admin/questions/{qid}/visibility", json={"is_visible": True}, headers=admin_headers)
    history = client.get(f"/api/questions/{qid}/history", headers=staff["processor"]).json()
    assert [h["action"] for h in history].count("visibility_changed") == 2
    assert [q["id"] for q in client.get("/api/student/questions", headers=student_headers).json()] == [qid]


def test_visibility_toggle_is_superadmin_only(client, staff):
    qid = _completed_question(client, staff)
    resp = client.patch(f"/api/admin/questions/{qid}/visibility", json={"is_visible": False}, headers=staff["processor"])
    assert resp.status_code == 403
