from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from examhall.services.exam_session import exam_session_service


def _submit_via_api(client, headers, exam, answers):
    session_id = client.post("/exam-session/start", headers=headers, json={"exam_id": exam.id}).json()["data"]["session"]["id"]
    r = client.post(
        f"/exam-session/{session_id}/submit",
        headers=headers,
        json={"answers": [{"question_id": qid, "chosen_answer": letter} for qid, letter in answers]},
    )
    assert r.status_code == 200, r.text
    return r.json()["data"]


def test_student_result_review(client: TestClient, student, auth_headers, exam_factory, question_ids):
    headers = auth_headers(student)
    exam = exam_factory(correct_answers=("A", "B"))
    qids = question_ids(exam)
    _submit_via_api(client, headers, exam, [(qids[0], "A"), (qids[1], "C")])

    r = client.get(f"/results/exam/{exam.id}", headers=headers)

    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["result"]["score"] == 50.0
    review = {d["question_id"]: d for d in data["detailed_answers"]}
    assert review[qids[0]]["is_correct"] is True
    assert review[qids[1]]["is_correct"] is False
    assert review[qids[1]]["question"]["correct_answer"] == "B"
    assert review[qids[1]]["question"]["explanation"] == "The answer is B"


def test_missing_result_is_not_found(client: TestClient, student, auth_headers, exam_factory):
    r = client.get(f"/results/exam/{exam_factory().id}", headers=auth_headers(student))
    assert r.status_code == 404
    assert r.json()["error"]["details"]["reason"] == "result_not_found"


def test_rankings_and_history(client: TestClient, user_factory, auth_headers, exam_factory, question_ids):
    exam = exam_factory(correct_answers=("A", "B"))
    qids = question_ids(exam)
    first = user_factory(full_name="First")
    second = user_factory(full_name="Second")
    _submit_via_api(client, auth_headers(second), exam, [(qids[0], "A")])
    _submit_via_api(client, auth_headers(first), exam, [(qids[0], "A"), (qids[1], "B")])

    r_rankings = client.get(f"/results/exam/{exam.id}/rankings?limit=5", headers=auth_headers(second))
    assert r_rankings.status_code == 200
    rankings = r_rankings.json()["data"]
    assert rankings["total_participants"] == 2
    assert [(e["student_name"], e["rank"]) for e in rankings["rankings"]] == [("First", 1), ("Second", 2)]

    r_history = client.get("/results/history", headers=auth_headers(first))
    assert r_history.status_code == 200
    history = r_history.json()["data"]
    assert len(history) == 1
    assert history[0]["exam"]["id"] == exam.id
    assert history[0]["passed"] is True


def test_recalculate_requires_admin(client: TestClient, student, admin, auth_headers, exam_factory, question_ids):
    exam = exam_factory(correct_answers=("A",))
    _submit_via_api(client, auth_headers(student), exam, [(question_ids(exam)[0], "A")])

    r_student = client.post(f"/results/exam/{exam.id}/rankings/recalculate", headers=auth_headers(student))
    assert r_student.status_code == 403

    r_admin = client.post(f"/results/exam/{exam.id}/rankings/recalculate", headers=auth_headers(admin))
    assert r_admin.status_code == 200
    assert r_admin.json()["data"] == {"exam_id": exam.id, "updated": 1}

    r_missing = client.post("/results/exam/999999/rankings/recalculate", headers=auth_headers(admin))
    assert r_missing.status_code == 404


def test_auto_check_runs_sweep(client: TestClient, db_session: Session, student, admin, auth_headers, exam_factory, question_ids, now):
    exam = exam_factory(duration=1)
    state = exam_session_service.start(db_session, student_id=student.id, exam_id=exam.id, now=now - timedelta(minutes=5))
    exam_session_service.save_answer(
        db_session, session_id=state.session.id, student_id=student.id, question_id=question_ids(exam)[0],
        chosen_answer="A", now=now - timedelta(minutes=5)
    )

    r_student = client.post("/submission/auto-check", headers=auth_headers(student))
    assert r_student.status_code == 403

    r = client.post("/submission/auto-check", headers=auth_headers(admin))

    assert r.status_code == 200, r.text
    report = r.json()["data"]
    assert report["auto_submitted"] == 1
    assert report["results"][0]["reason"] == "time_expired"
    assert "notification" not in report["results"][0]
