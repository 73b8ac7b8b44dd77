"""Tests for the health endpoint and application factory."""

from datetime import datetime

from fastapi.testclient import TestClient

from api.app import create_app


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_check(self):
        """Health endpoint should return ok without authentication."""
        client = TestClient(create_app())

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00")).tzinfo is not None

    def test_health_response_structure(self):
        client = TestClient(create_app())

        data = client.get("/health").json()

        assert set(data.keys()) == {"status", "timestamp"}


class TestCreateApp:
    def test_docs_hidden_outside_debug(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "false")
        client = TestClient(create_app())

        assert client.get("/api/docs").status_code == 404

    def test_docs_served_in_debug(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        client = TestClient(create_app())

        assert client.get("/api/docs").status_code == 200

    def test_unknown_route_uses_error_envelope(self):
        client = TestClient(create_app())

        response = client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Not Found"},
        }
