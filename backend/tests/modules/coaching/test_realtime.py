"""Tests for the OpenAI Realtime session client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from modules.coaching.exceptions import LlmError
from modules.coaching.realtime import (
    DEFAULT_VOICE,
    REALTIME_SESSIONS_URL,
    RealtimeSessionClient,
    resolve_voice,
)
from shared.config import Settings


SESSION_PAYLOAD = {
    "id": "sess_123",
    "client_secret": {"value": "ek_secret", "expires_at": 1767225600},
}


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="s",
        supabase_url="https://test-project.supabase.co",
        supabase_service_role_key="k",
        openai_api_key="sk-test",
        openai_realtime_model="gpt-4o-realtime-preview",
        openai_realtime_voice="coral",
    )


def patched_client(response=None, error=None):
    """Patch httpx.AsyncClient so `post` returns `response` or raises `error`."""
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=error)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return patch("modules.coaching.realtime.httpx.AsyncClient", return_value=client), client


def make_response(status_code: int, payload=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {},
        request=httpx.Request("POST", REALTIME_SESSIONS_URL),
    )


class TestResolveVoice:
    def test_known_voice(self):
        assert resolve_voice("sage") == "sage"

    def test_unknown_voice_falls_back(self):
        assert resolve_voice("robot") == DEFAULT_VOICE


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_returns_ephemeral_credentials(self, settings):
        patcher, client = patched_client(make_response(200, SESSION_PAYLOAD))

        with patcher:
            session = await RealtimeSessionClient(settings).create_session("Be brief.")

        assert session.session_id == "sess_123"
        assert session.token == "ek_secret"
        assert session.token_expires_at == 1767225600
        assert session.ws_url == "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview"

        url = client.post.call_args[0][0]
        kwargs = client.post.call_args[1]
        assert url == REALTIME_SESSIONS_URL
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["instructions"] == "Be brief."
        assert kwargs["json"]["voice"] == "coral"
        assert kwargs["json"]["turn_detection"]["type"] == "server_vad"

    @pytest.mark.asyncio
    async def test_rejected_request(self, settings):
        patcher, _ = patched_client(make_response(401, {"error": "bad key"}))

        with patcher, pytest.raises(LlmError) as exc_info:
            await RealtimeSessionClient(settings).create_session("Be brief.")

        assert exc_info.value.details["reason"] == "realtime_rejected"

    @pytest.mark.asyncio
    async def test_unreachable(self, settings):
        patcher, _ = patched_client(error=httpx.ConnectError("down"))

        with patcher, pytest.raises(LlmError) as exc_info:
            await RealtimeSessionClient(settings).create_session("Be brief.")

        assert exc_info.value.details["reason"] == "realtime_unavailable"

    @pytest.mark.asyncio
    async def test_malformed_payload(self, settings):
        patcher, _ = patched_client(make_response(200, {"id": "sess_123"}))

        with patcher, pytest.raises(LlmError):
            await RealtimeSessionClient(settings).create_session("Be brief.")
