"""
Abstractions for pluggable services. Inversion of control: core depends
on interfaces, not concrete services. Enables fakes in tests and swapping
the provider, the storage backend or the audio device.

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta) / speech(...) -> bytes
- KeyValueStore.get / set / delete (local storage slots)
- AudioOutput.start / stop / is_active (one physical output)
- RecognitionEngine.begin / abort (one speech-to-text capability)

Testing: Use simple fake implementations to test the controller without
network calls or audio hardware.
"""

from __future__ import annotations
from typing import Callable, Optional, Protocol

import numpy as np

from .models import LLMSettings


class LLMClient(Protocol):
    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]: ...

    def speech(self, text: str, *, voice: str, model: str) -> bytes: ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class AudioOutput(Protocol):
    def start(
        self,
        samples: np.ndarray,
        sample_rate: int,
        on_finished: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def is_active(self) -> bool: ...


class RecognitionEvents(Protocol):
    def interim(self, text: str) -> None: ...

    def final(self, text: str) -> None: ...

    def end(self) -> None: ...

    def error(self, exc: Exception) -> None: ...


class RecognitionEngine(Protocol):
    def is_available(self) -> bool: ...

    def begin(self, language_tag: str, events: RecognitionEvents) -> None: ...

    def abort(self) -> None: ...
