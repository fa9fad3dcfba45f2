"""
Purpose: Single-slot audio player for synthesized speech.
Decodes raw 24 kHz mono PCM16 and plays it through exactly one output at a
time. Starting a new playback always stops the previous one; stop() is safe
to call at any time.

Outputs:
- BrowserAutoplayOutput: a hidden <audio> element for the Streamlit page.
- SoundDeviceOutput (services/audio_device.py): the local sound card.

Speed is applied by rendering at sample_rate * speed (pitch shifts with it).
"""

from __future__ import annotations
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..interfaces import AudioOutput
from ..utils.audio import SAMPLE_RATE, autoplay_html, decode_pcm16, wav_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybackSession:
    handle: int
    session_id: str
    is_preview: bool = False

    @property
    def message_id(self) -> Optional[str]:
        return None if self.is_preview else self.session_id

    @property
    def voice_id(self) -> Optional[str]:
        return self.session_id if self.is_preview else None


class BrowserAutoplayOutput:
    """
    Hands the audio to the page as an auto-playing element. The page cannot
    report completion back, so the output counts as active for the clip's
    duration.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self._html = ""
        self._deadline = 0.0

    def start(self, samples, sample_rate, on_finished) -> None:
        self._html = autoplay_html(wav_bytes(samples, sample_rate))
        self._deadline = self.clock() + len(samples) / float(sample_rate)

    def stop(self) -> None:
        self._html = ""
        self._deadline = 0.0

    def is_active(self) -> bool:
        return bool(self._html) and self.clock() < self._deadline

    def html(self) -> str:
        return self._html if self.is_active() else ""


class AudioPlaybackEngine:
    def __init__(self, output: AudioOutput, *, sample_rate: int = SAMPLE_RATE):
        self.output = output
        self.sample_rate = sample_rate
        self._lock = threading.Lock()
        self._current: Optional[PlaybackSession] = None
        self._handles = itertools.count(1)

    @property
    def current(self) -> Optional[PlaybackSession]:
        with self._lock:
            if self._current is not None and not self.output.is_active():
                self._current = None
            return self._current

    @property
    def currently_playing_id(self) -> Optional[str]:
        session = self.current
        return session.message_id if session else None

    @property
    def previewing_voice(self) -> Optional[str]:
        session = self.current
        return session.voice_id if session else None

    def play(
        self,
        audio: bytes,
        session_id: str,
        speed: float = 1.0,
        *,
        preview: bool = False,
    ) -> Optional[PlaybackSession]:
        """Start playing `audio`; returns None if nothing could be played."""
        self.stop()
        if speed <= 0:
            logger.error("Invalid playback speed %r", speed)
            return None
        try:
            samples = decode_pcm16(audio)
        except ValueError as e:
            logger.error("Audio decode failed for %s: %s", session_id, e)
            return None

        session = PlaybackSession(
            handle=next(self._handles),
            session_id=session_id,
            is_preview=preview,
        )
        with self._lock:
            self._current = session
        try:
            self.output.start(
                samples,
                int(round(self.sample_rate * speed)),
                lambda: self._finished(session.handle),
            )
        except Exception as e:
            logger.error("Playback start failed for %s: %s", session_id, e)
            self._finished(session.handle)
            return None
        return session

    def stop(self) -> None:
        with self._lock:
            self._current = None
        try:
            self.output.stop()
        except Exception as e:
            logger.warning("Stopping audio output failed: %s", e)

    def _finished(self, handle: int) -> None:
        with self._lock:
            if self._current is not None and self._current.handle == handle:
                self._current = None
