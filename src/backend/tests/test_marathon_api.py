"""
马拉松 API 端点测试
"""
import pytest

from app.core.database import get_db
from app.core.exceptions import StorageError
from app.services.marathon_service import MarathonService


@pytest.fixture
def client(session_factory):
    """创建测试客户端（数据库替换为内存 SQLite）"""
    from fastapi.testclient import TestClient
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(client, topic_ids, user_id="user-1"):
    return client.post(
        "/api/marathon/start",
        params={"user_id": user_id},
        json={"topic_ids": topic_ids},
    )


class TestMarathonAPI:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_start_requires_topics(self, client):
        response = _start(client, [])
        assert response.status_code == 400

    def test_start_without_questions(self, client):
        response = _start(client, ["topic-empty"])
        assert response.status_code == 400

    def test_full_session_flow(self, client, add_questions):
        question_id = add_questions("topic-1", 1, correct_index=2)[0]

        started = _start(client, ["topic-1"])
        assert started.status_code == 201
        session = started.json()
        assert session["status"] == "active"
        assert session["total_questions"] == 1
        session_id = session["id"]

        served = client.get(
            "/api/marathon/next-question",
            params={"session_id": session_id, "user_id": "user-1"},
        )
        assert served.status_code == 200
        payload = served.json()
        assert payload["completed"] is False
        assert payload["question_id"] == question_id
        assert payload["options"] == ["选项A", "选项B", "选项C", "选项D"]
        assert payload["times_shown"] == 1

        answered = client.post(
            "/api/marathon/answer",
            params={"user_id": "user-1"},
            json={
                "session_id": session_id,
                "queue_id": payload["queue_id"],
                "question_id": question_id,
                "selected_option": 2,
                "time_taken_seconds": 14,
            },
        )
        assert answered.status_code == 200
        result = answered.json()
        assert result["is_correct"] is True
        assert result["correct_answer"] == 2
        assert result["is_mastered"] is True
        assert result["will_reappear"] is False

        done = client.get(
            "/api/marathon/next-question",
            params={"session_id": session_id, "user_id": "user-1"},
        )
        assert done.json() == {"completed": True, "all_mastered": True}

        summary = client.get(
            f"/api/marathon/session/{session_id}/summary",
            params={"user_id": "user-1"},
        ).json()
        assert summary["total_attempts"] == 1
        assert summary["accuracy"] == 100
        assert summary["avg_time_seconds"] == 14
        assert summary["status"] == "completed"

        exited = client.put(
            f"/api/marathon/session/{session_id}/exit",
            params={"user_id": "user-1"},
        )
        assert exited.status_code == 200
        assert exited.json()["status"] == "completed"

        history = client.get("/api/marathon/history", params={"user_id": "user-1"}).json()
        assert [s["id"] for s in history] == [session_id]

    def test_exit_active_session(self, client, add_questions):
        add_questions("topic-1", 2)
        session_id = _start(client, ["topic-1"]).json()["id"]

        response = client.put(
            f"/api/marathon/session/{session_id}/exit",
            params={"user_id": "user-1"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "exited"
        assert response.json()["completed_at"] is not None

    def test_other_users_session_is_hidden(self, client, add_questions):
        add_questions("topic-1", 2)
        session_id = _start(client, ["topic-1"]).json()["id"]

        for method, url, params in (
            ("get", f"/api/marathon/session/{session_id}", {}),
            ("get", f"/api/marathon/session/{session_id}/summary", {}),
            ("put", f"/api/marathon/session/{session_id}/exit", {}),
            ("get", "/api/marathon/next-question", {"session_id": session_id}),
        ):
            response = getattr(client, method)(url, params={"user_id": "user-2", **params})
            assert response.status_code == 404, url

    def test_answer_unknown_queue_item(self, client, add_questions):
        question_id = add_questions("topic-1", 1)[0]
        session_id = _start(client, ["topic-1"]).json()["id"]

        response = client.post(
            "/api/marathon/answer",
            params={"user_id": "user-1"},
            json={
                "session_id": session_id,
                "queue_id": "missing",
                "question_id": question_id,
                "selected_option": 0,
            },
        )

        assert response.status_code == 404

    @pytest.mark.parametrize("limit", [0, -1])
    def test_history_rejects_non_positive_limit(self, client, limit):
        response = client.get(
            "/api/marathon/history", params={"user_id": "user-1", "limit": limit}
        )

        assert response.status_code == 422

    def test_history_limit(self, client, add_questions):
        add_questions("topic-1", 1)
        for _ in range(3):
            _start(client, ["topic-1"])

        response = client.get(
            "/api/marathon/history", params={"user_id": "user-1", "limit": 2}
        )

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_reused_submission_id_is_rejected(self, client, add_questions):
        add_questions("topic-1", 2)
        session_id = _start(client, ["topic-1"]).json()["id"]
        params = {"session_id": session_id, "user_id": "user-1"}

        def answer(served):
            return client.post(
                "/api/marathon/answer",
                params={"user_id": "user-1"},
                json={
                    "session_id": session_id,
                    "queue_id": served["queue_id"],
                    "question_id": served["question_id"],
                    "selected_option": 0,
                    "submission_id": "client-1",
                },
            )

        first = client.get("/api/marathon/next-question", params=params).json()
        assert answer(first).status_code == 200
        second = client.get("/api/marathon/next-question", params=params).json()
        assert second["question_id"] != first["question_id"]

        response = answer(second)

        assert response.status_code == 400

    def test_storage_error_is_retryable(self, client, monkeypatch):
        def broken_history(self, user_id, limit=None):
            raise StorageError("获取历史会话失败，请重试")

        monkeypatch.setattr(MarathonService, "list_history", broken_history)

        response = client.get("/api/marathon/history", params={"user_id": "user-1"})

        assert response.status_code == 503
