import random

import pytest
from fastapi.testclient import TestClient

from conftest import T0, ManualScheduler, make_result
from api.app import create_app

DG = "Data Governance"
PP = "Production Pipelines"


@pytest.fixture
def app(clock):
    return create_app(
        scheduler=ManualScheduler(clock),
        clock=clock,
        rng=random.Random(1),
        start_cleanup=False,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


def _start(client, user_id="learner-1", **extra):
    resp = client.post("/api/sessions", json={"user_id": user_id, "total_questions": 15, **extra})
    assert resp.status_code == 200
    return resp.json()


def test_start_practice_session_hides_answers(client):
    session = _start(client)

    assert session["total"] == 15
    assert session["time_remaining"] == 5400
    assert session["answered_count"] == 0
    assert not session["is_completed"]
    assert "correct_answer" not in session["current_question"]
    assert "explanation" not in session["current_question"]


def test_exam_flow_feeds_history(client, clock):
    session = _start(client)
    sid = session["id"]
    current = session["current_question"]["id"]

    assert client.post(f"/api/sessions/{sid}/answer",
                       json={"question_id": "not-current", "selected_answer": 0}).status_code == 409
    assert client.post(f"/api/sessions/{sid}/answer",
                       json={"question_id": current, "selected_answer": 99}).status_code == 400

    clock.advance(40)
    answered = client.post(f"/api/sessions/{sid}/answer",
                           json={"question_id": current, "selected_answer": 0})
    assert answered.status_code == 200
    assert answered.json()["answered_count"] == 1
    assert answered.json()["current_question_index"] == 1

    assert client.post(f"/api/sessions/{sid}/pause").status_code == 200
    assert client.post(f"/api/sessions/{sid}/pause").status_code == 409
    clock.advance(600)
    resumed = client.post(f"/api/sessions/{sid}/resume")
    assert resumed.json()["time_remaining"] == 5360

    assert client.post(f"/api/sessions/{sid}/navigate", json={"index": 0}).status_code == 409
    assert client.get(f"/api/sessions/{sid}/result").status_code == 409

    clock.advance(20)
    result = client.post(f"/api/sessions/{sid}/complete").json()
    assert result["total_questions"] == 15
    assert len(result["questions"]) == 15
    assert client.post(f"/api/sessions/{sid}/complete").status_code == 409

    review = client.get(f"/api/sessions/{sid}/review").json()
    assert review["review_mode"]
    assert review["is_completed"]

    moved = client.post(f"/api/sessions/{sid}/navigate", json={"index": 0}).json()
    assert moved["question"]["id"] == current
    assert "correct_answer" in moved["question"]
    assert client.post(f"/api/sessions/{sid}/navigate", json={"index": 15}).status_code == 400

    assert client.get(f"/api/sessions/{sid}/result").json()["id"] == result["id"]
    assert client.get(f"/api/sessions/{sid}").status_code == 404

    history = client.get("/api/users/learner-1/history").json()
    assert history["total_exams_taken"] == 1

    summary = client.get(f"/api/users/learner-1/results/{result['id']}/summary").json()
    assert summary["total_questions"] == 15
    assert summary["time_spent"] == "11m"

    feedback = client.get(f"/api/users/learner-1/results/{result['id']}/feedback").json()
    assert len(feedback["question_feedback"]) == 15
    assert feedback["question_feedback"][0]["question_id"] == current

    assert client.get("/api/users/learner-1/analytics").status_code == 200
    assert client.get("/api/users/learner-1/topic-progress").status_code == 200
    assert len(client.get("/api/users/learner-1/trends").json()) == 1
    assert len(client.get("/api/users/learner-1/recommendations").json()) == 5


def test_timer_expiry_stores_result(app, client):
    session = _start(client, user_id="learner-2")

    app.state.engine.scheduler.advance(5400)

    review = client.get(f"/api/sessions/{session['id']}/review").json()
    assert review["is_completed"]
    assert review["time_remaining"] == 0
    assert not review["review_mode"]
    history = client.get("/api/users/learner-2/history").json()
    assert history["total_exams_taken"] == 1
    assert history["exam_results"][0]["correct_answers"] == 0


def test_user_sessions_and_delete(client):
    first = _start(client)
    _start(client)

    assert len(client.get("/api/users/learner-1/sessions").json()) == 2
    assert client.delete(f"/api/sessions/{first['id']}").status_code == 200
    assert client.delete(f"/api/sessions/{first['id']}").status_code == 404
    assert len(client.get("/api/users/learner-1/sessions").json()) == 1


def test_assessment_session_uses_distribution(client):
    resp = client.post("/api/sessions", json={
        "user_id": "learner-3",
        "exam_type": "assessment",
        "total_questions": 6,
        "topic_distribution": {DG: 3, PP: 3},
    })
    assert resp.status_code == 200
    assert resp.json()["total"] == 6
    assert resp.json()["exam_type"] == "assessment"

    bad = client.post("/api/sessions", json={
        "user_id": "learner-3",
        "exam_type": "assessment",
        "total_questions": 10,
        "topic_distribution": {DG: 3},
    })
    assert bad.status_code == 400


def test_unknown_session_and_user(client):
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.post("/api/sessions/missing/answer",
                       json={"question_id": "q", "selected_answer": 0}).status_code == 404
    assert client.get("/api/users/nobody/history").status_code == 404
    assert client.get("/api/users/nobody/analytics").status_code == 404
    assert client.get("/api/users/nobody/results/r1/summary").status_code == 404
    assert client.get("/api/users/nobody/trends", params={"timeframe": "decade"}).status_code == 400


def test_assessment_config_endpoints(client):
    default = client.get("/api/assessment-config").json()
    assert default["total_questions"] == 60
    assert sum(default["topic_distribution"].values()) == 60

    ok = client.post("/api/assessment-config",
                     json={"total_questions": 4, "topic_distribution": {DG: 2, PP: 2}})
    assert ok.status_code == 200
    bad = client.post("/api/assessment-config",
                      json={"total_questions": 5, "topic_distribution": {DG: 2, PP: 2}})
    assert bad.status_code == 400


def test_integrity_error_maps_to_422(app, client):
    stored = make_result({DG: 80}, T0, user_id="learner-9", per_topic=10)
    app.state.tracker.store_result(stored)

    resp = client.get(f"/api/users/learner-9/results/{stored.id}/feedback")

    assert resp.status_code == 422
    assert resp.json()["errors"] == ["Invalid exam result or questions data"]
