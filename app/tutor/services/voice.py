"""
Purpose: speech-to-text integration. Allow voice-based inputs.

SpeechToTextBridge turns a recognition engine into start/stop sessions with
interim and final transcript callbacks and one terminal event per session.
Only one session is alive: start() silently closes any previous session,
whose late events are then ignored.

Engines (speech_recognition based, one utterance per session):
- RecordedAudioEngine: WAV captured by the browser recorder widget.
- MicrophoneEngine: the local microphone.
"""

from __future__ import annotations
import io
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import speech_recognition as sr

from ..errors import (
    RecognitionError,
    RecognitionNoResult,
    RecognitionPermissionDenied,
    RecognitionUnsupported,
)
from ..interfaces import RecognitionEngine
from ..models import RECOGNITION_LANGUAGES

logger = logging.getLogger(__name__)


@dataclass
class RecognitionSession:
    language_tag: str
    is_listening: bool = True
    interim_text: str = ""
    final_text_buffer: str = ""


class _SessionEvents:
    """Engine-facing handle; events only count while its session is current."""

    def __init__(self, bridge: "SpeechToTextBridge", session: RecognitionSession):
        self._bridge = bridge
        self._session = session

    def interim(self, text: str) -> None:
        self._bridge._on_interim(self._session, text)

    def final(self, text: str) -> None:
        self._bridge._on_final(self._session, text)

    def end(self) -> None:
        self._bridge._on_end(self._session)

    def error(self, exc: Exception) -> None:
        self._bridge._on_error(self._session, exc)


class SpeechToTextBridge:
    def __init__(
        self,
        engine: Optional[RecognitionEngine],
        *,
        secure_context: bool = True,
        on_interim: Optional[Callable[[str], None]] = None,
        on_final_segment: Optional[Callable[[str], None]] = None,
        on_end: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.engine = engine
        self.secure_context = secure_context
        self.on_interim = on_interim
        self.on_final_segment = on_final_segment
        self.on_end = on_end
        self.on_error = on_error
        self._session: Optional[RecognitionSession] = None

    @property
    def session(self) -> Optional[RecognitionSession]:
        return self._session

    @property
    def is_listening(self) -> bool:
        return self._session is not None and self._session.is_listening

    def start(self, language_tag: str) -> RecognitionSession:
        if language_tag not in RECOGNITION_LANGUAGES:
            raise ValueError(f"Unsupported recognition language: {language_tag!r}")
        if not self.secure_context:
            raise RecognitionUnsupported()
        if self.engine is None or not self.engine.is_available():
            raise RecognitionUnsupported()

        self._close()
        session = RecognitionSession(language_tag=language_tag)
        self._session = session
        try:
            self.engine.begin(language_tag, _SessionEvents(self, session))
        except RecognitionError as e:
            self._on_error(session, e)
        except Exception as e:
            logger.exception("Recognition start error")
            self._on_error(session, RecognitionError(f"음성 인식을 시작할 수 없습니다: {e}"))
        return session

    def stop(self) -> None:
        """End the active session; its terminal event carries the text so far."""
        session = self._session
        if session is None:
            return
        if self.engine is not None:
            self.engine.abort()
        self._on_end(session)

    def cancel(self) -> None:
        """Drop the active session without a terminal event."""
        self._close()

    def _close(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        session.is_listening = False
        if self.engine is not None:
            self.engine.abort()

    def _is_current(self, session: RecognitionSession) -> bool:
        if session is not self._session:
            logger.debug("Ignoring event from a superseded recognition session")
            return False
        return True

    def _on_interim(self, session: RecognitionSession, text: str) -> None:
        if not self._is_current(session):
            return
        session.interim_text = text
        if self.on_interim:
            self.on_interim(text)

    def _on_final(self, session: RecognitionSession, text: str) -> None:
        if not self._is_current(session):
            return
        text = (text or "").strip()
        if text:
            buffer = session.final_text_buffer
            session.final_text_buffer = f"{buffer} {text}" if buffer else text
        session.interim_text = ""
        if self.on_final_segment:
            self.on_final_segment(session.final_text_buffer)

    def _on_end(self, session: RecognitionSession) -> None:
        if not self._is_current(session):
            return
        session.is_listening = False
        session.interim_text = ""
        self._session = None
        if self.on_end:
            self.on_end(session.final_text_buffer.strip())

    def _on_error(self, session: RecognitionSession, exc: Exception) -> None:
        if not self._is_current(session):
            return
        if isinstance(exc, RecognitionNoResult):
            self._on_end(session)
            return
        logger.warning("Recognition error (%s): %s", session.language_tag, exc)
        session.is_listening = False
        self._session = None
        if self.engine is not None:
            self.engine.abort()
        if self.on_error:
            self.on_error(exc)


class SpeechRecognitionEngine:
    """Shared recognition step: Google Web Speech via speech_recognition."""

    def __init__(self, recognizer: Optional[sr.Recognizer] = None):
        self.recognizer = recognizer or sr.Recognizer()
        self._events = None
        self._language: Optional[str] = None

    def is_available(self) -> bool:
        return True

    def begin(self, language_tag: str, events) -> None:
        self._language = language_tag
        self._events = events

    def abort(self) -> None:
        self._events = None

    def _recognize(self, audio: sr.AudioData) -> None:
        events = self._events
        if events is None:
            return
        try:
            text = self.recognizer.recognize_google(audio, language=self._language)
        except sr.UnknownValueError:
            self._events = None
            events.end()
            return
        except sr.RequestError as e:
            self._events = None
            events.error(RecognitionError(f"음성 인식 서비스 오류: {e}"))
            return

        self._events = None
        if text:
            events.final(text)
        events.end()


class RecordedAudioEngine(SpeechRecognitionEngine):
    def feed(self, wav: bytes) -> None:
        """Recognize one recorded utterance for the active session."""
        events = self._events
        if events is None:
            logger.warning("Recorded audio received with no active session")
            return
        if not wav:
            self._events = None
            events.end()
            return
        try:
            with sr.AudioFile(io.BytesIO(wav)) as source:
                audio = self.recognizer.record(source)
        except ValueError as e:
            self._events = None
            events.error(RecognitionError(f"녹음된 오디오를 읽을 수 없습니다: {e}"))
            return
        self._recognize(audio)


class MicrophoneEngine(SpeechRecognitionEngine):
    def __init__(
        self,
        recognizer: Optional[sr.Recognizer] = None,
        *,
        device_index: Optional[int] = None,
        listen_timeout: float = 5.0,
        phrase_time_limit: float = 15.0,
    ):
        super().__init__(recognizer)
        self.device_index = device_index
        self.listen_timeout = listen_timeout
        self.phrase_time_limit = phrase_time_limit

    def is_available(self) -> bool:
        try:
            names = sr.Microphone.list_microphone_names()
        except (AttributeError, ImportError, OSError):
            return False
        return bool(names)

    def begin(self, language_tag: str, events) -> None:
        super().begin(language_tag, events)
        try:
            with sr.Microphone(device_index=self.device_index) as source:
                self.recognizer.adjust_for_ambient_noise(source, duration=0.3)
                audio = self.recognizer.listen(
                    source,
                    timeout=self.listen_timeout,
                    phrase_time_limit=self.phrase_time_limit,
                )
        except sr.WaitTimeoutError:
            self._events = None
            events.end()
            return
        except OSError as e:
            logger.warning("Microphone unavailable: %s", e)
            self._events = None
            events.error(RecognitionPermissionDenied())
            return
        self._recognize(audio)
