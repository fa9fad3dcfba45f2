"""Tutor prompts (system instruction, greeting, level announcements)"""

from __future__ import annotations
from textwrap import dedent

from ..models import Level, Topic, TOPIC_CATALOG

CORRECTION_MARKER = "💡"
TRANSLATION_MARKER = "🇰🇷"
TRANSLATION_LABEL = "번역:"


def level_guidance(level: Level, topic: Topic) -> str:
    if level == Level.BEGINNER:
        return (
            "- Use ONLY simple A1-level vocabulary and very short, clear sentences.\n"
            "- Explain corrections using very basic terms.\n"
            f"- Focus on survival phrases related to {topic.value}.\n"
        )
    if level == Level.INTERMEDIATE:
        return (
            "- Use B1-B2 level vocabulary. Mix simple and complex sentences.\n"
            f"- Use 1-2 common idioms or phrasal verbs related to {topic.value}.\n"
            "- Focus corrections on natural phrasing and nuance.\n"
        )
    return (
        "- Use C1-C2 level vocabulary and sophisticated structures.\n"
        "- Focus on professional or high-level social tone.\n"
        "- Corrections should focus on advanced style and flow.\n"
    )


def build_tutor_system(*, level: Level, topic: Topic) -> str:
    guidance = level_guidance(level, topic)
    return dedent(
        f"""\
        You are an expert English Teacher.
        Current Student Level: {level.value}
        Conversation Topic: {topic.value}

        Rules:
        """
    ) + guidance + dedent(
        f"""\
        - ALWAYS provide Korean translation for ALL English sentences you write.

        Format (MUST follow this exact format):
        1. Main English Response (your teaching response in English)
        2. {CORRECTION_MARKER} Correction: (Optional - only if student made grammar/vocabulary mistakes)
        3. {TRANSLATION_MARKER} {TRANSLATION_LABEL} (REQUIRED - translate ALL your English sentences above into natural Korean. This is MANDATORY for every response.)

        Always end your English response with a question to continue the conversation."""  # noqa: E501
    )


def greeting_instruction(*, topic: Topic, level: Level) -> str:
    name = TOPIC_CATALOG[topic].name
    return (
        f"Hi! Let's practice speaking about '{name}' at a "
        f"{level.short_name} level. Shall we begin?"
    )


def level_change_instruction(*, level: Level) -> str:
    return f"Level changed to {level.value}. Let's continue!"


def assemble(*, history: list[dict[str, str]], user_text: str) -> list[dict[str, str]]:
    return [
        *history,
        {"role": "user", "content": user_text},
    ]
