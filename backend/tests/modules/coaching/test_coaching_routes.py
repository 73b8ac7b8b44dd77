"""Tests for the coaching module API endpoints."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import get_module_service
from modules.coaching.exceptions import (
    ActiveEnrollmentExistsError,
    DayOutOfOrderError,
    GeneratedModuleNotFoundError,
    LlmError,
)
from modules.coaching.models import (
    CompleteDayRequest,
    DayCompletionResult,
    DayStats,
    Enrollment,
    EnrollmentList,
    ModuleList,
    ReflectionResult,
    ShiftResult,
)


STARTED_AT = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_enrollment(**overrides) -> Enrollment:
    data = {
        "id": "enr-1",
        "user_id": "user-1",
        "module_id": "mod-1",
        "started_at": STARTED_AT,
    }
    data.update(overrides)
    return Enrollment(**data)


@pytest.fixture
def mock_service():
    return AsyncMock()


@pytest.fixture
def client(mock_service):
    app = create_app()
    app.dependency_overrides[get_module_service] = lambda: mock_service
    return TestClient(app)


class TestAuthentication:
    @pytest.mark.parametrize("method,path", [
        ("post", "/api/modules/generate"),
        ("get", "/api/modules"),
        ("get", "/api/modules/enrollments"),
        ("post", "/api/modules/mod-1/enroll"),
        ("post", "/api/modules/mod-1/days/1/frame"),
        ("post", "/api/modules/mod-1/days/1/complete"),
    ])
    def test_requires_token(self, client, method, path):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json()["success"] is False


class TestModules:
    def test_generate(self, client, mock_service, auth_headers, test_user_id):
        mock_service.generate_modules.return_value = ModuleList(modules=[])

        response = client.post("/api/modules/generate", headers=auth_headers)

        assert response.status_code == 201
        assert response.json() == {"success": True, "data": {"modules": []}}
        mock_service.generate_modules.assert_awaited_once_with(test_user_id)

    def test_generate_llm_failure(self, client, mock_service, auth_headers):
        mock_service.generate_modules.side_effect = LlmError(reason="invalid_response")

        response = client.post("/api/modules/generate", headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "LLM_ERROR"

    def test_list_enrollments(self, client, mock_service, auth_headers):
        mock_service.list_active_enrollments.return_value = EnrollmentList(
            enrollments=[make_enrollment()]
        )

        response = client.get("/api/modules/enrollments", headers=auth_headers)

        assert response.status_code == 200
        enrollment = response.json()["data"]["enrollments"][0]
        assert enrollment["moduleId"] == "mod-1"
        assert enrollment["currentDay"] == 1
        assert enrollment["completedDays"] == []


class TestEnroll:
    def test_enroll(self, client, mock_service, auth_headers, test_user_id):
        mock_service.enroll.return_value = make_enrollment()

        response = client.post("/api/modules/mod-1/enroll", headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["data"]["status"] == "active"
        mock_service.enroll.assert_awaited_once_with(test_user_id, "mod-1")

    def test_enroll_conflict(self, client, mock_service, auth_headers):
        mock_service.enroll.side_effect = ActiveEnrollmentExistsError("mod-1")

        response = client.post("/api/modules/mod-1/enroll", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_unknown_module(self, client, mock_service, auth_headers):
        mock_service.enroll.side_effect = GeneratedModuleNotFoundError("mod-9")

        response = client.post("/api/modules/mod-9/enroll", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"moduleId": "mod-9"}


class TestDailySteps:
    def test_day_number_must_be_positive(self, client, mock_service, auth_headers):
        response = client.post("/api/modules/mod-1/days/0/frame", headers=auth_headers)

        assert response.status_code == 400
        assert "day_number" in response.json()["error"]["details"]
        mock_service.generate_frame.assert_not_awaited()

    def test_complete_reflection(self, client, mock_service, auth_headers, test_user_id):
        mock_service.complete_reflection.return_value = ReflectionResult(
            reflection_summary="Noticed the freeze",
            session_id="sess_1",
        )

        response = client.post(
            "/api/modules/mod-1/days/1/reflect/complete",
            json={"transcript": "user: I froze", "sessionId": "sess_1"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["reflectionSummary"] == "Noticed the freeze"
        mock_service.complete_reflection.assert_awaited_once_with(
            test_user_id, "mod-1", 1, "user: I froze", session_id="sess_1"
        )

    def test_shift_without_body(self, client, mock_service, auth_headers, test_user_id):
        mock_service.generate_shift.return_value = ShiftResult(content="Send the message")

        response = client.post("/api/modules/mod-1/days/2/shift", headers=auth_headers)

        assert response.status_code == 200
        mock_service.generate_shift.assert_awaited_once_with(
            test_user_id, "mod-1", 2, reflection_summary=None
        )

    def test_shift_with_summary(self, client, mock_service, auth_headers, test_user_id):
        mock_service.generate_shift.return_value = ShiftResult(content="Send the message")

        client.post(
            "/api/modules/mod-1/days/2/shift",
            json={"reflectionSummary": "I avoid conflict"},
            headers=auth_headers,
        )

        mock_service.generate_shift.assert_awaited_once_with(
            test_user_id, "mod-1", 2, reflection_summary="I avoid conflict"
        )

    def test_complete_day(self, client, mock_service, auth_headers, test_user_id):
        mock_service.complete_day.return_value = DayCompletionResult(
            enrollment=make_enrollment(current_day=2),
            day_stats=DayStats(day_number=1, total_days=5, streak=1, is_module_complete=False),
        )

        response = client.post(
            "/api/modules/mod-1/days/1/complete",
            json={"reflectionSummary": "Felt rushed", "voiceSessionId": "sess_1"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        stats = response.json()["data"]["dayStats"]
        assert stats["isModuleComplete"] is False
        request = mock_service.complete_day.call_args[0][3]
        assert request == CompleteDayRequest(reflection_summary="Felt rushed", voice_session_id="sess_1")

    def test_complete_day_out_of_order(self, client, mock_service, auth_headers):
        mock_service.complete_day.side_effect = DayOutOfOrderError(2, 3)

        response = client.post("/api/modules/mod-1/days/3/complete", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATE"
        assert response.json()["error"]["details"] == {"currentDay": 2, "dayNumber": 3}
