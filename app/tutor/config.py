"""
Purpose: Runtime configuration from the environment (and an optional .env).
The API credential is deliberately not part of it: it lives in the
credential store and is entered through the UI.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_CHAT_MODEL = "gemini-2.0-flash"
DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_SPEECH_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
AUDIO_OUTPUTS = ("browser", "device")
RECOGNITION_MODES = ("recorder", "microphone")


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    base_url: str = DEFAULT_BASE_URL
    chat_model: str = DEFAULT_CHAT_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    speech_base_url: str = DEFAULT_SPEECH_BASE_URL
    audio_output: str = "browser"
    recognition: str = "recorder"
    request_timeout: float = 30.0
    log_level: str = "INFO"

    @property
    def storage_path(self) -> Path:
        return self.data_dir / "storage.json"


def load_config() -> AppConfig:
    load_dotenv()

    audio_output = os.getenv("TUTOR_AUDIO_OUTPUT", "browser").strip().lower()
    if audio_output not in AUDIO_OUTPUTS:
        raise ValueError(
            f"TUTOR_AUDIO_OUTPUT must be one of {AUDIO_OUTPUTS}, got {audio_output!r}"
        )

    recognition = os.getenv("TUTOR_RECOGNITION", "recorder").strip().lower()
    if recognition not in RECOGNITION_MODES:
        raise ValueError(
            f"TUTOR_RECOGNITION must be one of {RECOGNITION_MODES}, got {recognition!r}"
        )

    timeout_raw = os.getenv("TUTOR_REQUEST_TIMEOUT", "30")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(f"TUTOR_REQUEST_TIMEOUT is not a number: {timeout_raw!r}")
    if timeout <= 0:
        raise ValueError("TUTOR_REQUEST_TIMEOUT must be positive")

    log_level = os.getenv("TUTOR_LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"Unknown TUTOR_LOG_LEVEL: {log_level!r}")

    return AppConfig(
        data_dir=Path(os.getenv("TUTOR_DATA_DIR", "~/.ai_teacher")).expanduser(),
        base_url=os.getenv("TUTOR_BASE_URL", DEFAULT_BASE_URL),
        chat_model=os.getenv("TUTOR_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        tts_model=os.getenv("TUTOR_TTS_MODEL", DEFAULT_TTS_MODEL),
        speech_base_url=os.getenv("TUTOR_SPEECH_BASE_URL", DEFAULT_SPEECH_BASE_URL),
        audio_output=audio_output,
        recognition=recognition,
        request_timeout=timeout,
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
