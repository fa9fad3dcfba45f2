"""Fakes and fixtures: no network, no audio hardware."""

from __future__ import annotations

import numpy as np
import pytest

from tutor.config import AppConfig
from tutor.controller import TutorSessionController
from tutor.persistence import CredentialStore, InMemoryKeyValueStore, TranscriptRepository
from tutor.services.playback import AudioPlaybackEngine
from tutor.services.tutor_client import RemoteTutorClient
from tutor.services.voice import SpeechToTextBridge

VALID_KEY = "AIzaSyTEST-0123456789"
REPLY = (
    "I'm great, thanks! How about you?\n"
    "💡 Correction: Your sentence is perfect.\n"
    "🇰🇷 번역: 저는 잘 지내요, 고마워요! 당신은요?"
)


def pcm(n_samples: int = 2400) -> bytes:
    """Quiet PCM16 payload (0.1 s at 24 kHz by default)."""
    return np.full(n_samples, 1000, dtype="<i2").tobytes()


class FakeLLM:
    def __init__(self, reply: str = REPLY, audio: bytes = b""):
        self.reply = reply
        self.audio = audio or pcm()
        self.chat_calls: list[dict] = []
        self.speech_calls: list[dict] = []
        self.chat_error: Exception | None = None
        self.speech_error: Exception | None = None
        self.on_chat = None

    def chat(self, messages, settings, system=None):
        self.chat_calls.append(
            {"messages": [dict(m) for m in messages], "settings": settings, "system": system}
        )
        if self.on_chat is not None:
            self.on_chat()
        if self.chat_error is not None:
            raise self.chat_error
        return self.reply, {"model": settings.model, "tokens_in": 1, "tokens_out": 1}

    def speech(self, text, *, voice, model):
        self.speech_calls.append({"text": text, "voice": voice, "model": model})
        if self.speech_error is not None:
            raise self.speech_error
        return self.audio


class FakeOutput:
    def __init__(self):
        self.starts: list[dict] = []
        self.stops = 0
        self.active = False
        self._on_finished = None
        self.fail_start = False

    def start(self, samples, sample_rate, on_finished):
        if self.fail_start:
            raise RuntimeError("device busy")
        self.starts.append({"samples": samples, "sample_rate": sample_rate})
        self.active = True
        self._on_finished = on_finished

    def stop(self):
        self.stops += 1
        self.active = False

    def is_active(self):
        return self.active

    def finish(self):
        """Simulate natural end of the clip."""
        self.active = False
        if self._on_finished is not None:
            self._on_finished()


class FakeEngine:
    def __init__(self, available: bool = True):
        self.available = available
        self.events = None
        self.begun: list[str] = []
        self.aborts = 0

    def is_available(self):
        return self.available

    def begin(self, language_tag, events):
        self.begun.append(language_tag)
        self.events = events

    def abort(self):
        self.aborts += 1


@pytest.fixture
def config(tmp_path):
    return AppConfig(data_dir=tmp_path, chat_model="chat-model", tts_model="tts-model")


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def credentials(store, llm):
    creds = CredentialStore(store, lambda key: llm, probe_model="chat-model")
    creds.save(VALID_KEY)
    return creds


@pytest.fixture
def repository(store):
    return TranscriptRepository(store)


@pytest.fixture
def tutor(credentials, llm, config):
    return RemoteTutorClient(credentials, lambda key: llm, config)


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def player(output):
    return AudioPlaybackEngine(output)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def bridge(engine):
    return SpeechToTextBridge(engine)


@pytest.fixture
def controller(tutor, player, repository, bridge):
    return TutorSessionController(tutor, player, repository, recognizer=bridge)
