from .session_store import (
    CHAT_KEY,
    SETTINGS_KEY,
    InMemoryKeyValueStore,
    JsonFileStore,
    TranscriptRepository,
)
from .credentials import CREDENTIAL_KEY, CredentialStore

__all__ = [
    "CHAT_KEY",
    "SETTINGS_KEY",
    "CREDENTIAL_KEY",
    "InMemoryKeyValueStore",
    "JsonFileStore",
    "TranscriptRepository",
    "CredentialStore",
]
