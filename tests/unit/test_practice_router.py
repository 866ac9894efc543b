"""
Tests for the practice HTTP API.

The app is built around the in-memory catalog and gateway, so no database
is needed.
"""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from practice_engine.api.main import create_app
from practice_engine.practice.memory import InMemoryPersistenceGateway
from practice_engine.practice.models import RewardGrant
from builders import STUDENT_ID, SUB_TOPIC_ID

HEADERS = {"X-Student-Id": STUDENT_ID}


def reward(summary):
    return RewardGrant(xp=summary.score, coins=summary.correct_count)


@pytest.fixture
def client(catalog, gateway, settings):
    app = create_app(gateway=gateway, catalog=catalog, reward_function=reward, settings=settings)
    with TestClient(app) as test_client:
        yield test_client


def start(client, headers=HEADERS):
    return client.post("/api/practice/sessions", json={"sub_topic_id": SUB_TOPIC_ID}, headers=headers)


def answer_all(client, session_id, total):
    for index in range(1, total + 1):
        client.post(
            f"/api/practice/sessions/{session_id}/navigate",
            json={"action": "goto", "index": index},
            headers=HEADERS,
        )
        question = client.get(f"/api/practice/sessions/{session_id}/question", headers=HEADERS).json()
        body = {"text_answer": "Paris"} if question["type"] == "free-text" else {"selected_option_ids": ["a"]}
        response = client.post(
            f"/api/practice/sessions/{session_id}/answers",
            json={**body, "time_spent_seconds": 3},
            headers=HEADERS,
        )
        assert response.status_code == 200, response.text


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "in_memory"


class TestSessionFlow:
    def test_start(self, client):
        response = start(client)

        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "active"
        assert data["total_questions"] == 10
        assert data["current_question_index"] == 1
        assert data["subject_name"] == "Mathematics"

    def test_question_hides_correct_answers(self, client):
        session_id = start(client).json()["id"]

        data = client.get(f"/api/practice/sessions/{session_id}/question", headers=HEADERS).json()

        assert data["index"] == 1
        assert sorted(o["id"] for o in data["options"]) == ["a", "b", "c", "d"]
        assert all("is_correct" not in o for o in data["options"])
        assert data["answer"] is None
        assert data["correct_option_ids"] is None

    def test_option_order_is_stable(self, client):
        session_id = start(client).json()["id"]
        url = f"/api/practice/sessions/{session_id}/question"

        first = [o["id"] for o in client.get(url, headers=HEADERS).json()["options"]]
        second = [o["id"] for o in client.get(url, headers=HEADERS).json()["options"]]

        assert first == second

    def test_answer_then_reveal(self, client):
        session_id = start(client).json()["id"]

        response = client.post(
            f"/api/practice/sessions/{session_id}/answers",
            json={"selected_option_ids": ["a"], "time_spent_seconds": 7},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["is_correct"] is True

        data = client.get(f"/api/practice/sessions/{session_id}/question", headers=HEADERS).json()
        assert data["answer"]["is_correct"] is True
        assert data["correct_option_ids"] == ["a"]
        assert data["explanation"] == "Because a"

    def test_duplicate_answer_conflict(self, client):
        session_id = start(client).json()["id"]
        url = f"/api/practice/sessions/{session_id}/answers"
        client.post(url, json={"selected_option_ids": ["a"]}, headers=HEADERS)

        response = client.post(url, json={"selected_option_ids": ["b"]}, headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "already_answered"

    def test_empty_answer(self, client):
        session_id = start(client).json()["id"]

        response = client.post(
            f"/api/practice/sessions/{session_id}/answers",
            json={"selected_option_ids": []},
            headers=HEADERS,
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "empty_submission"

    def test_navigation(self, client):
        session_id = start(client).json()["id"]
        url = f"/api/practice/sessions/{session_id}/navigate"

        previous = client.post(url, json={"action": "previous"}, headers=HEADERS).json()
        assert previous == {"moved": False, "current_question_index": 1, "total_questions": 10}

        moved = client.post(url, json={"action": "goto", "index": 4}, headers=HEADERS).json()
        assert moved["moved"] is True
        assert moved["current_question_index"] == 4

        assert client.post(url, json={"action": "sideways"}, headers=HEADERS).status_code == 422

    def test_complete_early(self, client):
        session_id = start(client).json()["id"]

        response = client.post(f"/api/practice/sessions/{session_id}/complete", headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "incomplete_answers"

    def test_complete_with_rewards(self, client, gateway):
        session_id = start(client).json()["id"]
        answer_all(client, session_id, 10)

        response = client.post(f"/api/practice/sessions/{session_id}/complete", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 100
        assert data["duration_seconds"] == 30
        assert data["rewards"] == {"xp": 100, "coins": 10}
        assert gateway.sessions[session_id].xp_earned == 100

    def test_completed_stores_are_released(self, client):
        for _ in range(3):
            data = start(client).json()
            session_id = data["id"]
            answer_all(client, session_id, data["total_questions"])
            assert client.post(f"/api/practice/sessions/{session_id}/complete", headers=HEADERS).status_code == 200

        assert len(client.app.state.stores) == 0

    def test_reward_failure_still_completes(self, catalog, gateway, settings):
        def broken_reward(summary):
            raise RuntimeError("reward service down")

        app = create_app(gateway=gateway, catalog=catalog, reward_function=broken_reward, settings=settings)
        with TestClient(app) as client:
            session_id = start(client).json()["id"]
            answer_all(client, session_id, 10)

            response = client.post(f"/api/practice/sessions/{session_id}/complete", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["score"] == 100
        assert response.json()["rewards"] is None
        assert gateway.sessions[session_id].is_completed
        assert gateway.sessions[session_id].xp_earned is None

    def test_resume_after_leaving(self, client):
        session_id = start(client).json()["id"]
        client.post(
            f"/api/practice/sessions/{session_id}/navigate",
            json={"action": "goto", "index": 6},
            headers=HEADERS,
        )

        assert client.delete(f"/api/practice/sessions/{session_id}", headers=HEADERS).status_code == 204

        data = client.get(f"/api/practice/sessions/{session_id}", headers=HEADERS).json()
        assert data["current_question_index"] == 6
        assert data["state"] == "active"


class TestAccess:
    def test_header_required(self, client):
        assert start(client, headers={}).status_code == 422

    def test_other_student_cannot_see_session(self, client):
        session_id = start(client).json()["id"]

        response = client.get(f"/api/practice/sessions/{session_id}", headers={"X-Student-Id": "student-2"})

        assert response.status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/api/practice/sessions/missing", headers=HEADERS).status_code == 404


class TestLimits:
    def test_limits(self, client):
        start(client)

        data = client.get("/api/practice/limits", params={"force": True}, headers=HEADERS).json()

        assert data["sessions_today"] == 1
        assert data["session_limit"] == 10
        assert data["remaining_sessions"] == 9

    def test_limit_reached(self, catalog):
        settings = Settings(session_limits={"core": 1}, log_file=None)
        app = create_app(gateway=InMemoryPersistenceGateway(), catalog=catalog, settings=settings)
        with TestClient(app) as client:
            assert start(client).status_code == 201

            response = start(client)

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["code"] == "limit_reached"
        assert detail["limit"]["remaining_sessions"] == 0


class TestHistory:
    def test_history_lists_sessions(self, client):
        finished = start(client).json()["id"]
        answer_all(client, finished, 10)
        client.post(f"/api/practice/sessions/{finished}/complete", headers=HEADERS)
        start(client)

        data = client.get("/api/practice/history", params={"date_range": "today"}, headers=HEADERS).json()

        assert len(data["sessions"]) == 2
        statuses = {s["id"]: s["status"] for s in data["sessions"]}
        assert statuses[finished] == "completed"
        assert data["subjects"] == ["Mathematics"]

    def test_history_filters_by_subject(self, client):
        start(client)

        data = client.get(
            "/api/practice/history", params={"subject_name": "Science"}, headers=HEADERS
        ).json()

        assert data["sessions"] == []
        assert data["subjects"] == ["Mathematics"]

    def test_bad_date_range(self, client):
        response = client.get("/api/practice/history", params={"date_range": "forever"}, headers=HEADERS)
        assert response.status_code == 422
