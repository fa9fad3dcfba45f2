"""
Purpose: One error vocabulary for the whole app.
Every failure that can reach the UI is a TutorError carrying the message
the learner sees. Turn-level errors become a substitute assistant message;
speech and recognition errors are either alerts or silent.
"""

from __future__ import annotations
from typing import Optional


# Provider error text that means the API key itself was rejected.
INVALID_KEY_CUES = ("API_KEY_INVALID", "API key not valid")


class TutorError(Exception):
    default_message = "오류가 발생했습니다. 잠시 후 다시 시도해 주세요."

    def __init__(self, message: Optional[str] = None):
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class NoCredentialError(TutorError):
    default_message = "API 키가 설정되지 않았습니다."


class InvalidCredentialError(TutorError):
    default_message = "API 키가 유효하지 않습니다. 설정에서 올바른 키를 입력해주세요."


class TransientServerError(TutorError):
    default_message = "AI 서버 일시적 오류입니다. 잠시 후 다시 시도해 주세요."


class EmptyReplyError(TutorError):
    default_message = "죄송합니다. 답변을 생성할 수 없습니다."


class SpeechUnavailable(TutorError):
    default_message = "음성을 생성할 수 없습니다."


class RecognitionError(TutorError):
    default_message = "음성 인식 중 오류가 발생했습니다."


class RecognitionPermissionDenied(RecognitionError):
    default_message = (
        "마이크 권한이 거부되었습니다.\n\n"
        "해결 방법:\n"
        "1. 브라우저 주소창 왼쪽 '자물쇠' 아이콘 클릭\n"
        "2. 권한 재설정 또는 마이크 '허용'\n"
        "3. 페이지 새로고침"
    )


class RecognitionUnsupported(RecognitionError):
    default_message = (
        "이 환경은 음성 인식을 지원하지 않습니다. "
        "음성 인식은 보안 연결(HTTPS) 환경에서만 작동합니다."
    )


class RecognitionNoResult(RecognitionError):
    default_message = "음성이 인식되지 않았습니다."
