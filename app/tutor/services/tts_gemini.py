"""
Purpose: Speech synthesis through Gemini's native generateContent API.
The OpenAI-compatible surface only covers chat, so audio is requested here
with responseModalities=["AUDIO"] and returned as raw 24 kHz mono PCM16.

Testing: httpx.MockTransport; assert request shape and error mapping.
"""

from __future__ import annotations
import base64
import logging
import time
from typing import Iterable, Optional

import httpx

from ..errors import (
    INVALID_KEY_CUES,
    InvalidCredentialError,
    SpeechUnavailable,
    TransientServerError,
)

logger = logging.getLogger(__name__)

DEFAULT_SPEECH_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def speech_payload(text: str, voice: str) -> dict:
    return {
        "contents": [{"parts": [{"text": text}]}],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}
            },
        },
    }


def extract_audio(data: dict) -> bytes:
    """Decoded inline audio of the first candidate part; b"" if absent."""
    try:
        part = data["candidates"][0]["content"]["parts"][0]
        encoded = part["inlineData"]["data"]
    except (KeyError, IndexError, TypeError):
        return b""
    return base64.b64decode(encoded)


class GeminiSpeechClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_SPEECH_BASE_URL,
        timeout: float = 30.0,
        retry_delays: Iterable[float] = (),
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("Missing API key")
        self.retry_delays = tuple(retry_delays)
        self.http = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers={"x-goog-api-key": api_key},
            transport=transport,
        )

    def _post(self, path: str, payload: dict) -> httpx.Response:
        for delay in (*self.retry_delays, None):
            try:
                resp = self.http.post(path, json=payload)
            except httpx.TransportError as e:
                if delay is None:
                    raise TransientServerError() from e
                logger.info("TTS transport error (%s); retrying in %.1fs", e, delay)
                time.sleep(delay)
                continue
            if resp.status_code not in RETRYABLE_STATUS:
                return resp
            if delay is None:
                raise TransientServerError()
            logger.info("TTS status %s; retrying in %.1fs", resp.status_code, delay)
            time.sleep(delay)

    def synthesize(self, text: str, *, voice: str, model: str) -> bytes:
        resp = self._post(f"models/{model}:generateContent", speech_payload(text, voice))
        if resp.status_code in (401, 403) or (
            resp.is_error and any(cue in resp.text for cue in INVALID_KEY_CUES)
        ):
            raise InvalidCredentialError()
        if resp.is_error:
            logger.warning("TTS request rejected (%s): %s", resp.status_code, resp.text[:200])
            raise SpeechUnavailable()

        audio = extract_audio(resp.json())
        if not audio:
            raise SpeechUnavailable()
        return audio
