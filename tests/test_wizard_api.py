"""Tests for the wizard HTTP endpoints via FastAPI TestClient with a fake gateway."""

import pytest
from fastapi.testclient import TestClient

from authority_coach.main import app
from authority_coach.routers import wizard as wizard_router
from authority_coach.wizard import PILLARS_ERROR
from tests.fakes.fake_gateway import FakeGateway


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def client(fake_gateway):
    app.dependency_overrides[wizard_router.get_gateway] = lambda: fake_gateway
    wizard_router._sessions.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    wizard_router._sessions.clear()


def _create(client):
    resp = client.post("/wizard/sessions")
    assert resp.status_code == 200
    return resp.json()["session_id"]


def _run_to_summary(client, sid):
    client.post(f"/wizard/sessions/{sid}/topic", json={"topic": "Sustainable Gardening"})
    client.post(f"/wizard/sessions/{sid}/pillar", json={"index": 7})
    client.post(f"/wizard/sessions/{sid}/variation", json={"index": 2})
    for i in (0, 3, 9):
        client.post(f"/wizard/sessions/{sid}/questions/{i}/toggle")
    client.post(f"/wizard/sessions/{sid}/answers")
    return client.post(f"/wizard/sessions/{sid}/finish").json()["session"]


def test_info_reports_status(client):
    resp = client.get("/info")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_new_session_starts_at_input(client):
    resp = client.post("/wizard/sessions")
    body = resp.json()

    assert body["session"]["step"] == 0
    assert body["session"]["pillars"] == []
    assert body["session"]["error"] is None


def test_full_run_over_http(client):
    sid = _create(client)

    summary = _run_to_summary(client, sid)

    assert summary["step"] == 5
    assert summary["core_topic"] == "Sustainable Gardening"
    assert summary["selected_pillar"]["title"] == "Pillar 7"
    assert summary["selected_variation"]["title"] == "Variation 2"
    assert [a["question"] for a in summary["answers"]] == ["Question 0?", "Question 3?", "Question 9?"]


def test_generation_failure_is_reported_in_the_snapshot(client, fake_gateway):
    fake_gateway.fail.add("pillars")
    sid = _create(client)

    resp = client.post(f"/wizard/sessions/{sid}/topic", json={"topic": "Gardening"})

    assert resp.status_code == 200
    assert resp.json()["session"]["step"] == 0
    assert resp.json()["session"]["error"] == PILLARS_ERROR


def test_invalid_trigger_is_a_conflict(client):
    sid = _create(client)

    resp = client.post(f"/wizard/sessions/{sid}/pillar", json={"index": 0})

    assert resp.status_code == 409


def test_unknown_session_is_not_found(client):
    assert client.get("/wizard/sessions/nope").status_code == 404
    assert client.post("/wizard/sessions/nope/back").status_code == 404


def test_question_buckets(client):
    sid = _create(client)
    client.post(f"/wizard/sessions/{sid}/topic", json={"topic": "Gardening"})
    client.post(f"/wizard/sessions/{sid}/pillar", json={"index": 0})
    client.post(f"/wizard/sessions/{sid}/variation", json={"index": 0})

    body = client.get(f"/wizard/sessions/{sid}/questions/buckets").json()

    assert sorted(body["informational"] + body["actionable"]) == list(range(25))
    assert 0 in body["informational"]
    assert 1 in body["actionable"]


def test_chat_round_trip(client):
    sid = _create(client)
    _run_to_summary(client, sid)

    resp = client.post(f"/wizard/sessions/{sid}/chat", json={"message": "What should I write first?"})

    history = resp.json()["session"]["chat_history"]
    assert [m["role"] for m in history] == ["user", "model"]
    assert history[0]["content"] == "What should I write first?"


def test_export_downloads_word_document(client):
    sid = _create(client)
    _run_to_summary(client, sid)

    resp = client.get(f"/wizard/sessions/{sid}/export")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/msword")
    assert 'filename="Strategy-sustainable-gardening.doc"' in resp.headers["content-disposition"]
    assert "Topical Authority Blueprint" in resp.text


def test_export_before_summary_is_a_conflict(client):
    sid = _create(client)
    assert client.get(f"/wizard/sessions/{sid}/export").status_code == 409


def test_reset_and_delete(client):
    sid = _create(client)
    _run_to_summary(client, sid)

    reset = client.post(f"/wizard/sessions/{sid}/reset").json()["session"]
    assert reset["step"] == 0
    assert reset["answers"] == []

    assert client.delete(f"/wizard/sessions/{sid}").status_code == 200
    assert client.get(f"/wizard/sessions/{sid}").status_code == 404


def test_oldest_sessions_are_dropped_past_the_cap(client, monkeypatch):
    monkeypatch.setattr(wizard_router.settings, "wizard_max_sessions", 3)
    sids = [_create(client) for _ in range(5)]

    assert len(wizard_router._sessions) == 3
    assert client.get(f"/wizard/sessions/{sids[0]}").status_code == 404
    assert client.get(f"/wizard/sessions/{sids[1]}").status_code == 404
    assert client.get(f"/wizard/sessions/{sids[4]}").status_code == 200
