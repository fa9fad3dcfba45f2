"""
Purpose: Transcript & settings storage on a local key-value store.
Why: The conversation survives a page reload; settings survive restarts.

What is inside:
InMemoryKeyValueStore (tests, ephemeral sessions).
JsonFileStore: all slots in one JSON file, rewritten atomically.
TranscriptRepository: typed load/save of the message log and settings.

Every save overwrites the whole slot, so a reader sees either the previous
or the new log, never a mix.
"""

from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from ..models import Level, Message, Settings, Topic, VOICES, DEFAULT_VOICE

logger = logging.getLogger(__name__)

CHAT_KEY = "ai_teacher_chat"
SETTINGS_KEY = "ai_teacher_settings"


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """A localStorage-like store backed by one JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Storage file %s is corrupt; starting empty", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file %s has no object at top level", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".storage-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


class TranscriptRepository:
    def __init__(self, store) -> None:
        self.store = store

    def load_messages(self) -> list[Message]:
        raw = self.store.get(CHAT_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
            return [Message.from_dict(item) for item in items]
        except (json.JSONDecodeError, TypeError, KeyError, ValueError):
            logger.warning("Stored transcript is unreadable; starting a new one")
            return []

    def save_messages(self, messages: list[Message]) -> None:
        payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False)
        self.store.set(CHAT_KEY, payload)

    def clear_messages(self) -> None:
        self.store.delete(CHAT_KEY)

    def load_settings(self) -> Settings:
        defaults = Settings()
        raw = self.store.get(SETTINGS_KEY)
        if not raw:
            return defaults
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored settings are unreadable; using defaults")
            return defaults
        if not isinstance(data, dict):
            return defaults

        try:
            level = Level(data.get("level"))
        except ValueError:
            level = defaults.level
        try:
            topic = Topic(data.get("topic"))
        except ValueError:
            topic = defaults.topic
        voice = data.get("voice")
        if voice not in VOICES:
            voice = DEFAULT_VOICE
        return Settings(level=level, topic=topic, voice=voice)

    def save_settings(self, settings: Settings) -> None:
        self.store.set(
            SETTINGS_KEY, json.dumps(settings.to_dict(), ensure_ascii=False)
        )
