"""
Purpose: The single API credential: persist, load, clear, and validate it
with a minimal remote probe before it is accepted.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from ..interfaces import KeyValueStore, LLMClient
from ..models import LLMSettings

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "gemini_api_key"
MIN_CONFIGURED_LENGTH = 10


def mask(secret: str) -> str:
    if len(secret) <= 7:
        return "*" * len(secret)
    return f"{secret[:4]}…{secret[-3:]}"


class CredentialStore:
    def __init__(
        self,
        store: KeyValueStore,
        client_factory: Callable[[str], LLMClient],
        *,
        probe_model: str,
    ) -> None:
        self.store = store
        self.client_factory = client_factory
        self.probe_model = probe_model

    def validate(self, candidate: str) -> bool:
        """True only if a tiny request with this key succeeds. Never raises."""
        candidate = (candidate or "").strip()
        if not candidate:
            return False
        try:
            client = self.client_factory(candidate)
            client.chat(
                [{"role": "user", "content": "Hi"}],
                LLMSettings(model=self.probe_model, max_tokens=5),
            )
        except Exception as e:
            logger.warning("API key validation failed for %s: %s", mask(candidate), e)
            return False
        return True

    def submit(self, candidate: str) -> bool:
        """Validate, then persist. Rejected candidates are never stored."""
        candidate = (candidate or "").strip()
        if not self.validate(candidate):
            return False
        self.save(candidate)
        return True

    def save(self, candidate: str) -> None:
        self.store.set(CREDENTIAL_KEY, candidate)

    def load(self) -> Optional[str]:
        return self.store.get(CREDENTIAL_KEY) or None

    def clear(self) -> None:
        self.store.delete(CREDENTIAL_KEY)

    def is_configured(self) -> bool:
        key = self.load()
        return bool(key) and len(key) > MIN_CONFIGURED_LENGTH

    def masked(self) -> str:
        key = self.load()
        return mask(key) if key else ""
