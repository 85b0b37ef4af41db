from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.routes import get_coordinator
from api_server import app


@pytest.fixture
def client(make_coordinator):
    coordinator = make_coordinator()
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _start(client: TestClient, role: str = "backend") -> dict:
    resp = client.post("/api/interview/start", json={"role": role, "seniority": "senior", "interactionMode": "voice"})
    assert resp.status_code == 200
    return resp.json()


def test_full_interview_over_http(client) -> None:
    started = _start(client)
    session_id = started["sessionId"]
    assert started["phase"] == "opening"
    assert started["questionCount"] == 1
    assert started["message"]

    body = None
    for _ in range(8):
        resp = client.post("/api/interview/next", json={"sessionId": session_id, "message": "I tuned slow queries."})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"]
    assert body["shouldEnd"] is True
    assert body["phase"] == "ended"
    assert body["questionCount"] == 8
    assert body["analytics"]["is_too_short"] is True

    session = client.get(f"/api/interview/session/{session_id}").json()
    assert session["phase"] == "ended"
    assert session["interaction_mode"] == "voice"

    resp = client.post("/api/feedback/generate", json={"sessionId": session_id})
    assert resp.status_code == 200
    report = resp.json()
    assert report["recommendation"] in {"STRONG_HIRE", "HIRE", "MAYBE", "NO_HIRE"}
    assert 1 <= report["overallScore"] <= 10
    assert report["degraded"] is True
    assert set(report["scores"]) == {"communication", "technicalKnowledge", "problemSolving", "confidence", "relevance"}

    assert client.get(f"/api/interview/session/{session_id}").status_code == 404


def test_respond_alias(client) -> None:
    session_id = _start(client, "retail")["sessionId"]
    resp = client.post("/api/interview/respond", json={"sessionId": session_id, "message": "I love helping customers."})
    assert resp.status_code == 200
    assert resp.json()["questionCount"] == 2


def test_end_then_answer_conflicts(client) -> None:
    session_id = _start(client)["sessionId"]
    resp = client.post("/api/interview/end", json={"sessionId": session_id})
    assert resp.status_code == 200
    assert resp.json()["phase"] == "ended"
    assert resp.json()["endTime"] is not None
    resp = client.post("/api/interview/next", json={"sessionId": session_id, "message": "Still here"})
    assert resp.status_code == 409


def test_feedback_without_answers_is_rejected(client) -> None:
    session_id = _start(client)["sessionId"]
    resp = client.post("/api/feedback/generate", json={"sessionId": session_id})
    assert resp.status_code == 400
    assert client.get(f"/api/interview/session/{session_id}").status_code == 200


def test_unknown_session_is_not_found(client) -> None:
    assert client.post("/api/interview/next", json={"sessionId": "session_x", "message": "hi"}).status_code == 404
    assert client.post("/api/interview/end", json={"sessionId": "session_x"}).status_code == 404
    assert client.delete("/api/interview/session/session_x").status_code == 404
    assert client.post("/api/feedback/generate", json={"sessionId": "session_x"}).status_code == 404


def test_invalid_payloads(client) -> None:
    assert client.post("/api/interview/start", json={"role": "astronaut"}).status_code == 422
    session_id = _start(client)["sessionId"]
    resp = client.post("/api/interview/next", json={"sessionId": session_id, "message": "   "})
    assert resp.status_code == 400


def test_abort_and_list_sessions(client) -> None:
    first = _start(client)["sessionId"]
    second = _start(client, "sales")["sessionId"]
    listing = client.get("/api/interview/sessions").json()
    assert listing["count"] == 2
    assert set(listing["sessionIds"]) == {first, second}
    assert client.delete(f"/api/interview/session/{first}").status_code == 204
    assert client.get("/api/interview/sessions").json()["sessionIds"] == [second]


def test_roles_and_health(client) -> None:
    roles = client.get("/api/feedback/roles").json()
    values = {entry["value"] for entry in roles}
    assert "product_manager" in values
    assert len(roles) == 8
    backend = next(entry for entry in roles if entry["value"] == "backend")
    assert backend["engineering"] is True
    assert client.get("/health").json() == {"status": "ok"}
