"""
Purpose: The single orchestration point for a practice session. Owns the
message log, settings and turn state; keeps the persisted transcript equal
to the in-memory one after every mutation.
Prevents UI from knowing how prompts/LLM/speech/playback work.

Turn sequence (one turn in flight at a time):
    IDLE -> append user message -> REQUEST_REPLY
    REQUEST_REPLY ok   -> append assistant message -> REQUEST_SPEECH
    REQUEST_REPLY fail -> append error message -> IDLE
    REQUEST_SPEECH audio -> PLAY -> IDLE, empty -> IDLE

Recovery operations: replay (normal / slow), rewind (restart_from_message),
topic selection, level change, voice preview, full reset.

Testing: Pure unit tests with fakes: fake LLM client, in-memory store,
fake audio output and recognition engine.
"""

from __future__ import annotations
import logging
import time
from typing import Optional

from .errors import RecognitionError, RecognitionUnsupported, TutorError
from .models import (
    Level,
    Message,
    Role,
    SessionState,
    Topic,
    TurnPhase,
    VOICES,
)
from .persistence.session_store import TranscriptRepository
from .prompts import DefaultPromptFactory
from .services.playback import AudioPlaybackEngine
from .services.tutor_client import RemoteTutorClient, to_history
from .services.voice import SpeechToTextBridge

logger = logging.getLogger(__name__)

GENERIC_ERROR = "오류가 발생했습니다. 잠시 후 다시 시도해 주세요."
PREVIEW_TEXT = "Hello, nice to meet you!"
SLOW_SPEED = 0.75


class TutorSessionController:
    def __init__(
        self,
        tutor: RemoteTutorClient,
        player: AudioPlaybackEngine,
        repository: TranscriptRepository,
        recognizer: Optional[SpeechToTextBridge] = None,
        prompts: Optional[DefaultPromptFactory] = None,
    ):
        self.tutor = tutor
        self.player = player
        self.repository = repository
        self.prompts = prompts or DefaultPromptFactory()
        self.state = SessionState(
            messages=repository.load_messages(),
            settings=repository.load_settings(),
        )
        self._last_id = max(
            (int(m.id) for m in self.state.messages if m.id.isdigit()), default=0
        )

        self.recognizer = recognizer
        if recognizer is not None:
            recognizer.on_interim = self._on_interim
            recognizer.on_final_segment = self._on_final_segment
            recognizer.on_end = self.handle_recognition_end
            recognizer.on_error = self._on_recognition_error

    # LOG

    def get_history(self) -> list[Message]:
        return list(self.state.messages)

    def _next_id(self) -> str:
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return str(self._last_id)

    def _set_messages(self, messages: list[Message]) -> None:
        self.repository.save_messages(messages)
        self.state.messages = messages

    def _append(self, role: Role, content: str, *, has_audio: bool = False) -> Message:
        msg = Message(
            id=self._next_id(),
            role=role,
            content=content,
            created_at=time.time(),
            has_audio=has_audio,
        )
        self._set_messages([*self.state.messages, msg])
        return msg

    def find_message(self, message_id: str) -> Optional[Message]:
        return next((m for m in self.state.messages if m.id == message_id), None)

    # TURNS

    def handle_send(self, text: str, initial: bool = False) -> bool:
        """
        Run one turn. `initial` turns (greeting, level announcement) are not
        shown as a user message and are sent without history.
        Returns False when the turn was rejected: empty text, or another turn
        still in flight.
        """
        trimmed = (text or "").strip()
        if not trimmed and not initial:
            return False
        if self.state.loading:
            logger.info("A turn is already in flight; ignoring new submission")
            return False

        history = [] if initial else to_history(self.state.messages)
        settings = self.state.settings

        self.state.loading = True
        try:
            if not initial:
                self._append(Role.USER, trimmed)
                self.state.pending_input = ""

            self.state.phase = TurnPhase.REQUEST_REPLY
            try:
                reply = self.tutor.request_reply(
                    trimmed, history, settings.level, settings.topic
                )
            except TutorError as e:
                logger.warning("Tutor reply failed: %s", e)
                self._append(Role.ASSISTANT, e.user_message)
                return True
            except Exception:
                logger.exception("Unexpected error while requesting a reply")
                self._append(Role.ASSISTANT, GENERIC_ERROR)
                return True

            msg = self._append(Role.ASSISTANT, reply, has_audio=True)

            self.state.phase = TurnPhase.REQUEST_SPEECH
            audio = self.tutor.request_speech(reply, settings.voice)
            if audio:
                self.state.phase = TurnPhase.PLAY
                self.player.play(audio, msg.id)
            return True
        finally:
            self.state.phase = TurnPhase.IDLE
            self.state.loading = False

    # PLAYBACK

    @property
    def currently_playing_id(self) -> Optional[str]:
        return self.player.currently_playing_id

    @property
    def previewing_voice(self) -> Optional[str]:
        return self.player.previewing_voice

    def stop_audio(self) -> None:
        self.player.stop()

    def replay(self, message_id: str, slow: bool = False) -> bool:
        """Speak an assistant message again; on the playing message, stop it."""
        if self.player.currently_playing_id == message_id:
            self.player.stop()
            return False
        msg = self.find_message(message_id)
        if msg is None or msg.role != Role.ASSISTANT:
            return False
        if self.state.loading:
            logger.info("Busy; replay of %s ignored", message_id)
            return False

        self.state.loading = True
        try:
            audio = self.tutor.request_speech(msg.content, self.state.settings.voice)
            if not audio:
                return False
            speed = SLOW_SPEED if slow else 1.0
            return self.player.play(audio, message_id, speed) is not None
        finally:
            self.state.loading = False

    def preview_voice(self, voice: str) -> bool:
        if voice not in VOICES:
            raise ValueError(f"Unknown voice: {voice!r}")
        if self.player.previewing_voice == voice:
            self.player.stop()
            return False
        audio = self.tutor.request_speech(PREVIEW_TEXT, voice)
        if not audio:
            return False
        return self.player.play(audio, voice, preview=True) is not None

    # RECOVERY & SETTINGS

    def restart_from_message(self, message_id: str) -> bool:
        """Drop the message and everything after it. There is no undo."""
        idx = next(
            (i for i, m in enumerate(self.state.messages) if m.id == message_id), -1
        )
        if idx == -1:
            return False
        self._set_messages(self.state.messages[:idx])
        self.player.stop()
        return True

    def select_topic(self, topic: Topic) -> bool:
        self.state.settings.topic = topic
        self.repository.save_settings(self.state.settings)

        self.cancel_listening()
        self.player.stop()
        self.repository.clear_messages()
        self.state.messages = []
        self.state.topic_active = True

        greeting = self.prompts.greeting_instruction(
            topic=topic, level=self.state.settings.level
        )
        return self.handle_send(greeting, initial=True)

    def change_level(self, level: Level) -> bool:
        self.state.settings.level = level
        self.repository.save_settings(self.state.settings)
        if not self.state.topic_active:
            return False
        return self.handle_send(
            self.prompts.level_change_instruction(level=level), initial=True
        )

    def change_voice(self, voice: str) -> None:
        if voice not in VOICES:
            raise ValueError(f"Unknown voice: {voice!r}")
        self.state.settings.voice = voice
        self.repository.save_settings(self.state.settings)

    def reset_conversation(self) -> None:
        self.cancel_listening()
        self.player.stop()
        self.repository.clear_messages()
        self.state.messages = []
        self.state.topic_active = False
        self.state.pending_input = ""

    # VOICE INPUT

    @property
    def is_listening(self) -> bool:
        return self.recognizer is not None and self.recognizer.is_listening

    def start_listening(self, language_tag: str) -> bool:
        if self.recognizer is None:
            self._on_recognition_error(RecognitionUnsupported())
            return False
        self.player.stop()
        self.state.interim_transcript = ""
        try:
            self.recognizer.start(language_tag)
        except RecognitionError as e:
            self._on_recognition_error(e)
            return False
        return True

    def stop_listening(self) -> None:
        if self.recognizer is not None:
            self.recognizer.stop()

    def cancel_listening(self) -> None:
        """Abandon voice input; whatever was heard is discarded."""
        if self.recognizer is not None:
            self.recognizer.cancel()
        self.state.interim_transcript = ""

    def toggle_listening(self, language_tag: str) -> bool:
        if self.is_listening:
            self.stop_listening()
            return False
        return self.start_listening(language_tag)

    def handle_recognition_end(self, text: str) -> bool:
        self.state.interim_transcript = ""
        if not text.strip():
            logger.info("Recognition ended without a result")
            return False
        return self.handle_send(text)

    def _on_interim(self, text: str) -> None:
        self.state.interim_transcript = text

    def _on_final_segment(self, text: str) -> None:
        self.state.pending_input = text

    def _on_recognition_error(self, exc: Exception) -> None:
        self.state.interim_transcript = ""
        if isinstance(exc, TutorError):
            self.state.alert = exc.user_message
        else:
            self.state.alert = GENERIC_ERROR

    def take_alert(self) -> Optional[str]:
        alert, self.state.alert = self.state.alert, None
        return alert
