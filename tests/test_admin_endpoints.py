"""Tests for admin and health endpoints."""

from fastapi.testclient import TestClient

from planning_poker.api.app import create_app
from tests.conftest import RecordingSubscriber


def test_health_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_admin_sessions_requires_token(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/admin/sessions").status_code == 401
    response = client.get("/admin/sessions", headers={"X-Admin-Token": "wrong"})
    assert response.status_code == 401


def test_admin_sessions_endpoint(container) -> None:
    app = create_app(container)
    client = TestClient(app)
    session_id, _ = container.registry.create_session(
        "host", "Hana", RecordingSubscriber()
    )
    container.voting_service.start_voting("host", session_id, "Story A")
    container.voting_service.vote("host", session_id, "5")

    response = client.get("/admin/sessions", headers={"X-Admin-Token": "admin-token"})

    assert response.status_code == 200
    assert response.json() == {
        "sessions": [
            {
                "sessionId": session_id,
                "participantCount": 1,
                "phase": "open",
                "currentStory": "Story A",
            }
        ]
    }
