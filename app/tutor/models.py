"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Level / Topic / Role enums and the voice catalog.
- Message (id, role, content, created_at, has_audio) and Settings.
- LLMSettings (model, temperature, top_p, max_tokens).
- SessionState: everything the controller mutates during a session.

Testing: Trivial; mostly types. Serialization helpers are covered by the
repository tests.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
from enum import Enum


class Level(str, Enum):
    BEGINNER = "Beginner (초급)"
    INTERMEDIATE = "Intermediate (중급)"
    ADVANCED = "Advanced (고급)"

    @property
    def short_name(self) -> str:
        return self.value.split(" ")[0]


class Topic(str, Enum):
    GENERAL = "General"
    TRAVEL = "Travel"
    SIGHTSEEING = "Sightseeing"
    RESTAURANT = "Restaurant"
    SHOPPING = "Shopping"
    TRANSPORT = "Transport"
    HOTEL = "Hotel"
    BUSINESS = "Business"
    EMERGENCY = "Emergency"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnPhase(str, Enum):
    IDLE = "idle"
    REQUEST_REPLY = "request_reply"
    REQUEST_SPEECH = "request_speech"
    PLAY = "play"


@dataclass(frozen=True)
class TopicInfo:
    topic: Topic
    name: str
    description: str


TOPIC_CATALOG: dict[Topic, TopicInfo] = {
    info.topic: info
    for info in (
        TopicInfo(Topic.GENERAL, "일반 대화", "자유로운 일상 대화"),
        TopicInfo(Topic.SIGHTSEEING, "관광지 탐방", "길 찾기 및 명소 안내"),
        TopicInfo(Topic.RESTAURANT, "음식점 이용", "주문, 예약, 맛 표현"),
        TopicInfo(Topic.TRANSPORT, "대중교통", "티켓 구매 및 노선 문의"),
        TopicInfo(Topic.SHOPPING, "쇼핑과 환불", "가격 흥정 및 사이즈 문의"),
        TopicInfo(Topic.HOTEL, "호텔 숙박", "체크인 및 서비스 요청"),
        TopicInfo(Topic.TRAVEL, "여행 계획", "일정 짜기 및 준비물"),
        TopicInfo(Topic.BUSINESS, "비즈니스", "미팅 및 이메일 표현"),
        TopicInfo(Topic.EMERGENCY, "긴급 상황", "병원 및 도움 요청"),
    )
}

VOICES = ("Kore", "Puck", "Charon", "Fenrir", "Zephyr")
DEFAULT_VOICE = "Kore"

RECOGNITION_LANGUAGES = ("en-US", "ko-KR")


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    content: str
    created_at: float
    has_audio: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.created_at,
            "hasAudio": self.has_audio,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            id=str(data["id"]),
            role=Role(data["role"]),
            content=str(data.get("content") or ""),
            created_at=float(data.get("timestamp") or 0),
            has_audio=bool(data.get("hasAudio", False)),
        )


@dataclass
class Settings:
    level: Level = Level.BEGINNER
    topic: Topic = Topic.GENERAL
    voice: str = DEFAULT_VOICE

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "topic": self.topic.value,
            "voice": self.voice,
        }


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 0.95
    max_tokens: Optional[int] = None


@dataclass
class SessionState:
    messages: list[Message] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    phase: TurnPhase = TurnPhase.IDLE
    loading: bool = False

    pending_input: str = ""
    interim_transcript: str = ""

    topic_active: bool = False
    alert: Optional[str] = None
