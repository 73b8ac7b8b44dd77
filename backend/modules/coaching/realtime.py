"""
OpenAI Realtime session client.

Creates a short-lived realtime voice session configured with the day's
reflection instructions. The app connects to it directly with the
ephemeral client secret, so the API key never leaves the server.
"""

import logging
from typing import Any

import httpx

from shared.config import Settings

from .exceptions import LlmError
from .models import ReflectSession

logger = logging.getLogger(__name__)

REALTIME_SESSIONS_URL = "https://api.openai.com/v1/realtime/sessions"
REALTIME_WS_URL = "wss://api.openai.com/v1/realtime"

VALID_VOICES = frozenset({
    "alloy", "ash", "ballad", "coral", "echo",
    "sage", "shimmer", "verse", "marin", "cedar",
})
DEFAULT_VOICE = "alloy"

TURN_DETECTION = {
    "type": "server_vad",
    "threshold": 0.5,
    "prefix_padding_ms": 300,
    "silence_duration_ms": 2500,
}


def resolve_voice(voice: str) -> str:
    if voice in VALID_VOICES:
        return voice
    logger.warning("Unknown realtime voice %r, using %r", voice, DEFAULT_VOICE)
    return DEFAULT_VOICE


class RealtimeSessionClient:
    """Mints ephemeral OpenAI Realtime sessions."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_realtime_model
        self._voice = resolve_voice(settings.openai_realtime_voice)
        self._timeout = settings.http_timeout

    def _session_body(self, instructions: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "voice": self._voice,
            "instructions": instructions,
            "input_audio_format": "pcm16",
            "output_audio_format": "pcm16",
            "input_audio_transcription": {"model": "whisper-1"},
            "turn_detection": TURN_DETECTION,
        }

    async def create_session(self, instructions: str) -> ReflectSession:
        """
        Create a realtime session and return its ephemeral credentials.

        Raises:
            LlmError: If OpenAI rejects the request or is unreachable.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    REALTIME_SESSIONS_URL,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._session_body(instructions),
                )
                response.raise_for_status()
                payload = response.json()
            secret = payload["client_secret"]
            return ReflectSession(
                session_id=payload["id"],
                token=secret["value"],
                token_expires_at=secret["expires_at"],
                ws_url=f"{REALTIME_WS_URL}?model={self._model}",
            )
        except httpx.HTTPStatusError as e:
            logger.error("Realtime session rejected (%s): %s", e.response.status_code, e.response.text)
            raise LlmError("Failed to start voice session", reason="realtime_rejected") from e
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Realtime session request failed: %s", e)
            raise LlmError("Failed to start voice session", reason="realtime_unavailable") from e
