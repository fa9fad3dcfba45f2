"""
Purpose: Thin client wrapper around an OpenAI-compatible endpoint (by default
Gemini's). One place for auth, retries, model options, response/usage
normalization and translation of SDK errors into TutorError kinds.
Speech is handed to GeminiSpeechClient.

Testing: Mock SDK calls; assert it maps usage and errors correctly.
"""

from __future__ import annotations
import logging
import time
from typing import Optional

from openai import (
    OpenAI,
    APIConnectionError,
    APIStatusError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)

from ..errors import INVALID_KEY_CUES, InvalidCredentialError, TransientServerError
from ..models import LLMSettings
from .tts_gemini import DEFAULT_SPEECH_BASE_URL, GeminiSpeechClient

logger = logging.getLogger(__name__)

RETRY_DELAYS = (0.5, 1.0, 2.0, 4.0)


def translate_error(exc: Exception) -> Exception:
    """Map an SDK exception onto the app's error kinds (or return it as is)."""
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return InvalidCredentialError()
    if isinstance(exc, APIStatusError):
        text = str(exc)
        if any(cue in text for cue in INVALID_KEY_CUES):
            return InvalidCredentialError()
        if exc.status_code >= 500:
            return TransientServerError()
    if isinstance(exc, (APIConnectionError, RateLimitError)):
        return TransientServerError()
    return exc


class OpenAILLMClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        speech_base_url: str = DEFAULT_SPEECH_BASE_URL,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        if not self.api_key:
            raise ValueError("Missing API key")
        self.client = OpenAI(
            api_key=self.api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self.speech_client = GeminiSpeechClient(
            api_key,
            base_url=speech_base_url,
            timeout=timeout,
            retry_delays=RETRY_DELAYS,
        )

    def _with_retries(self, fn, *args, **kwargs):
        for delay in RETRY_DELAYS:
            try:
                return fn(*args, **kwargs)
            except (RateLimitError, APIConnectionError, InternalServerError) as e:
                logger.info("Transient API error (%s); retrying in %.1fs", e, delay)
                time.sleep(delay)
        return fn(*args, **kwargs)

    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ):
        payload = []
        if system:
            payload.append({"role": "system", "content": system})
        payload.extend(messages)

        params = dict(
            model=settings.model,
            messages=payload,
            temperature=settings.temperature,
            top_p=settings.top_p,
        )
        if settings.max_tokens is not None:
            params["max_tokens"] = settings.max_tokens

        try:
            cc = self._with_retries(self.client.chat.completions.create, **params)
        except Exception as e:
            raise translate_error(e) from e

        text = cc.choices[0].message.content if cc.choices else None
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return text or "", {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }

    def speech(self, text: str, *, voice: str, model: str) -> bytes:
        """Raw 24 kHz mono PCM16 for `text`."""
        return self.speech_client.synthesize(text, voice=voice, model=model)
