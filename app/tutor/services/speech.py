"""
Purpose: text-to-speech integration. Read the tutor's English reply aloud.
Only the main English section is spoken: the correction and the Korean
translation blocks are cut off before synthesis.
"""

from __future__ import annotations
import logging

from ..interfaces import LLMClient
from ..prompts import CORRECTION_MARKER, TRANSLATION_MARKER, TRANSLATION_LABEL

logger = logging.getLogger(__name__)

SPEECH_CUT_MARKERS = (CORRECTION_MARKER, TRANSLATION_MARKER, TRANSLATION_LABEL)


def speech_text(reply: str) -> str:
    """The part of `reply` before the first section marker, stripped."""
    text = reply or ""
    cut = len(text)
    for marker in SPEECH_CUT_MARKERS:
        idx = text.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return text[:cut].strip()


def tts_bytes(
    text: str,
    llm: LLMClient,
    *,
    voice: str,
    model: str,
    max_chars: int = 1200,
) -> bytes:
    """
    Return raw PCM bytes for the spoken part of `text`, or b"" when there is
    nothing to say or synthesis fails.
    """
    safe = speech_text(text)
    if not safe:
        return b""
    if len(safe) > max_chars:
        safe = safe[: max_chars - 1].rstrip() + "…"

    try:
        return llm.speech(safe, voice=voice, model=model) or b""
    except Exception as e:
        logger.warning("TTS failed (voice=%s): %s", voice, e)
        return b""
