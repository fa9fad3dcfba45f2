"""
Purpose: The remote tutor. Turns (utterance, history, level, topic) into the
tutor's formatted reply, and reply text into speech audio.

The reply is expected to contain an English section, an optional correction
block and a Korean translation block. That shape is a prompt-level contract
with the model and is not enforced here.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from ..config import AppConfig
from ..errors import EmptyReplyError, NoCredentialError
from ..interfaces import LLMClient
from ..models import Level, LLMSettings, Message, Role, Topic
from ..persistence.credentials import CredentialStore
from ..prompts import DefaultPromptFactory
from .speech import tts_bytes

logger = logging.getLogger(__name__)

ROLE_LABELS = {Role.USER: "user", Role.ASSISTANT: "assistant"}


def to_history(messages: list[Message]) -> list[dict[str, str]]:
    """Translate the message log into the client's chat turns."""
    return [{"role": ROLE_LABELS[m.role], "content": m.content} for m in messages]


class RemoteTutorClient:
    def __init__(
        self,
        credentials: CredentialStore,
        client_factory: Callable[[str], LLMClient],
        config: AppConfig,
        prompts: Optional[DefaultPromptFactory] = None,
    ):
        self.credentials = credentials
        self.client_factory = client_factory
        self.config = config
        self.prompts = prompts or DefaultPromptFactory()
        self._client: Optional[LLMClient] = None
        self._client_key: Optional[str] = None

    def _llm(self) -> LLMClient:
        key = self.credentials.load()
        if not key:
            raise NoCredentialError()
        if self._client is None or self._client_key != key:
            self._client = self.client_factory(key)
            self._client_key = key
        return self._client

    def reply_settings(self) -> LLMSettings:
        return LLMSettings(model=self.config.chat_model, temperature=0.7, top_p=0.95)

    def request_reply(
        self,
        utterance: str,
        history: list[dict[str, str]],
        level: Level,
        topic: Topic,
    ) -> str:
        llm = self._llm()
        system = self.prompts.build_system(level=level, topic=topic)
        messages = self.prompts.assemble(history=history, user_text=utterance)

        text, meta = llm.chat(messages, self.reply_settings(), system=system)
        logger.debug(
            "Reply from %s (%s in / %s out tokens)",
            meta.get("model"),
            meta.get("tokens_in"),
            meta.get("tokens_out"),
        )
        if not (text or "").strip():
            raise EmptyReplyError()
        return text

    def request_speech(self, text: str, voice: str) -> bytes:
        """Audio for the English part of `text`; b"" is a normal outcome."""
        try:
            llm = self._llm()
        except NoCredentialError:
            logger.info("No API key; skipping speech synthesis")
            return b""
        return tts_bytes(text, llm, voice=voice, model=self.config.tts_model)
