from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from examhall.core.constants import EXAM_SUBMITTED_EVENT
from examhall.crud.result import result as crud_result
from examhall.models.student_exam import StudentExam
from examhall.services.exam_session import exam_session_service
from examhall.utils.events import event_bus


def test_exam_session_flow(client: TestClient, db_session: Session, student, auth_headers, exam_factory, question_ids):
    """Start, answer, check status and submit through the HTTP surface."""
    print("\n[TEST] Exam session flow")
    headers = auth_headers(student)
    exam = exam_factory(correct_answers=("A", "B", "C", "D"))
    qids = question_ids(exam)

    print("[1] Starting exam")
    r_start = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id})
    assert r_start.status_code == 201, r_start.text
    body = r_start.json()
    assert body["message"] == "Exam session started successfully"
    session_id = body["data"]["session"]["id"]
    assert body["data"]["outcome"] == "created"
    assert len(body["data"]["questions"]) == 4
    assert all("correct_answer" not in q for q in body["data"]["questions"])

    print("[2] Starting again resumes")
    r_again = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id})
    assert r_again.status_code == 200
    assert r_again.json()["data"]["session"]["id"] == session_id
    assert r_again.json()["data"]["outcome"] == "resumed"

    print("[3] Saving answers")
    r_answer = client.post(
        f"/exam-session/{session_id}/answers",
        headers=headers,
        json={"question_id": qids[0], "chosen_answer": "a", "is_autosave": True},
    )
    assert r_answer.status_code == 200, r_answer.text
    assert r_answer.json()["message"] == "Answer auto-saved"
    assert r_answer.json()["data"]["chosen_answer"] == "A"

    r_batch = client.post(
        f"/exam-session/{session_id}/answers/batch",
        headers=headers,
        json={"answers": [{"question_id": qids[1], "chosen_answer": "B"}, {"question_id": qids[2], "chosen_answer": "D"}]},
    )
    assert r_batch.status_code == 200, r_batch.text
    assert r_batch.json()["data"]["count"] == 2

    print("[4] Checking status")
    r_status = client.get(f"/exam-session/{session_id}/status", headers=headers)
    assert r_status.status_code == 200
    assert r_status.json()["data"]["answered_count"] == 3
    assert r_status.json()["data"]["remaining_time"]["has_expired"] is False

    print("[5] Submitting")
    r_submit = client.post(f"/exam-session/{session_id}/submit", headers=headers, json={})
    assert r_submit.status_code == 200, r_submit.text
    data = r_submit.json()["data"]
    assert data["action"] == "first_submission"
    assert data["result"]["correct_answers"] == 2
    assert data["result"]["score"] == 50.0
    assert data["result"]["rank"] == 1
    assert data["passed"] is True

    print("[6] Submitting again is idempotent")
    r_resubmit = client.post(f"/exam-session/{session_id}/submit", headers=headers)
    assert r_resubmit.status_code == 200
    assert r_resubmit.json()["data"]["action"] == "already_submitted"
    assert r_resubmit.json()["data"]["result"]["id"] == data["result"]["id"]
    assert len(crud_result.get_ordered_for_exam(db_session, exam_id=exam.id)) == 1
    print("[OK] Flow complete")


def test_error_envelope_for_domain_errors(client: TestClient, student, auth_headers, exam_factory, question_ids):
    headers = auth_headers(student)
    exam = exam_factory()
    session_id = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id}).json()["data"]["session"]["id"]
    client.post(f"/exam-session/{session_id}/submit", headers=headers)

    r = client.post(
        f"/exam-session/{session_id}/answers", headers=headers, json={"question_id": question_ids(exam)[0], "chosen_answer": "A"}
    )

    assert r.status_code == 400
    body = r.json()
    assert body["error"]["code"] == "INVALID_STATE"
    assert body["error"]["details"]["reason"] == "already_submitted"
    assert body["request_id"] == r.headers["X-Request-ID"]
    assert body["path"].endswith(f"/exam-session/{session_id}/answers")


def test_not_found_and_validation_errors(client: TestClient, student, user_factory, auth_headers, exam_factory, question_ids):
    headers = auth_headers(student)
    exam = exam_factory()
    session_id = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id}).json()["data"]["session"]["id"]

    r_missing = client.post("/exam-session/start", headers=headers, json={"exam_id": 999999})
    assert r_missing.status_code == 404
    assert r_missing.json()["error"]["code"] == "NOT_FOUND"
    assert r_missing.json()["error"]["details"]["reason"] == "exam_unavailable"

    other_headers = auth_headers(user_factory())
    r_foreign = client.get(f"/exam-session/{session_id}/status", headers=other_headers)
    assert r_foreign.status_code == 404
    assert r_foreign.json()["error"]["details"]["reason"] == "session_not_found"

    r_letter = client.post(
        f"/exam-session/{session_id}/answers", headers=headers, json={"question_id": question_ids(exam)[0], "chosen_answer": "E"}
    )
    assert r_letter.status_code == 422
    assert r_letter.json()["error"]["code"] == "VALIDATION_ERROR"

    r_dup = client.post(
        f"/exam-session/{session_id}/answers/batch",
        headers=headers,
        json={"answers": [{"question_id": question_ids(exam)[0], "chosen_answer": "A"}, {"question_id": question_ids(exam)[0], "chosen_answer": "B"}]},
    )
    assert r_dup.status_code == 400
    assert r_dup.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r_dup.json()["error"]["details"]["reason"] == "duplicate_question"

    r_empty = client.post(f"/exam-session/{session_id}/answers/batch", headers=headers, json={"answers": []})
    assert r_empty.status_code == 422


def test_active_details_and_cancel(client: TestClient, db_session: Session, student, auth_headers, exam_factory, question_ids):
    headers = auth_headers(student)
    exam = exam_factory()

    r_none = client.get("/exam-session/active", headers=headers)
    assert r_none.status_code == 404
    assert r_none.json()["error"]["details"]["reason"] == "no_active_session"

    session_id = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id}).json()["data"]["session"]["id"]
    client.post(f"/exam-session/{session_id}/answers", headers=headers, json={"question_id": question_ids(exam)[0], "chosen_answer": "C"})

    r_active = client.get("/exam-session/active", headers=headers)
    assert r_active.status_code == 200
    assert r_active.json()["data"]["session"]["id"] == session_id

    r_details = client.get(f"/exam-session/{session_id}", headers=headers)
    assert r_details.status_code == 200
    assert r_details.json()["data"]["saved_answers"] == [{"question_id": question_ids(exam)[0], "chosen_answer": "C"}]

    r_resume = client.get(f"/exam-session/{session_id}/resume", headers=headers)
    assert r_resume.status_code == 200
    assert len(r_resume.json()["data"]["questions"]) == 4

    r_cancel = client.delete(f"/exam-session/{session_id}", headers=headers)
    assert r_cancel.status_code == 200
    assert r_cancel.json()["message"] == "Exam session cancelled successfully"
    assert db_session.query(StudentExam).count() == 0


def test_session_routes_require_student(client: TestClient, admin, auth_headers, exam_factory):
    exam = exam_factory()

    r_anon = client.post("/exam-session/start", json={"exam_id": exam.id})
    assert r_anon.status_code in (401, 403)

    r_admin = client.post("/exam-session/start", headers=auth_headers(admin), json={"exam_id": exam.id})
    assert r_admin.status_code == 403
    assert r_admin.json()["error"]["code"] == "FORBIDDEN"

    r_bad_token = client.post("/exam-session/start", headers={"Authorization": "Bearer not-a-token"}, json={"exam_id": exam.id})
    assert r_bad_token.status_code == 401


def test_late_answer_publishes_auto_submitted_result(client: TestClient, db_session: Session, student, auth_headers,
                                                     exam_factory, question_ids, now):
    headers = auth_headers(student)
    exam = exam_factory(duration=60, opens_in=timedelta(hours=-3))
    qids = question_ids(exam)
    started = now - timedelta(minutes=61)
    session_id = exam_session_service.start(db_session, student_id=student.id, exam_id=exam.id, now=started).session.id
    exam_session_service.save_answer(
        db_session, session_id=session_id, student_id=student.id, question_id=qids[0], chosen_answer="A",
        now=started + timedelta(minutes=1)
    )

    published = []

    async def capture(data):
        published.append(data)

    event_bus.subscribe(EXAM_SUBMITTED_EVENT, capture)
    try:
        r_late = client.post(
            f"/exam-session/{session_id}/answers", headers=headers, json={"question_id": qids[1], "chosen_answer": "B"}
        )
    finally:
        event_bus.unsubscribe(EXAM_SUBMITTED_EVENT, capture)

    assert r_late.status_code == 400
    assert r_late.json()["error"]["details"]["auto_submitted"] is True
    assert crud_result.get_by_session(db_session, student_exam_id=session_id) is not None
    assert len(published) == 1
    assert published[0]["session_id"] == session_id
    assert published[0]["action"] == "auto_submitted"
    assert published[0]["score"] == 25.0
