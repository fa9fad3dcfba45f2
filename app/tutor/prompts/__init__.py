"""Facade over the tutor prompt builders."""

from __future__ import annotations

from ..models import Level, Topic
from . import tutor as _tutor
from .tutor import CORRECTION_MARKER, TRANSLATION_MARKER, TRANSLATION_LABEL


class DefaultPromptFactory:
    def build_system(self, *, level: Level, topic: Topic) -> str:
        return _tutor.build_tutor_system(level=level, topic=topic)

    def assemble(
        self, *, history: list[dict[str, str]], user_text: str
    ) -> list[dict[str, str]]:
        return _tutor.assemble(history=history, user_text=user_text)

    def greeting_instruction(self, *, topic: Topic, level: Level) -> str:
        return _tutor.greeting_instruction(topic=topic, level=level)

    def level_change_instruction(self, *, level: Level) -> str:
        return _tutor.level_change_instruction(level=level)


__all__ = [
    "DefaultPromptFactory",
    "CORRECTION_MARKER",
    "TRANSLATION_MARKER",
    "TRANSLATION_LABEL",
]
