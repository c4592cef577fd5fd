"""
Content moderation gate for assembled story text.

A story is checked once, as a whole, before any image is generated.
Two backends are available: a local keyword blocklist and the OpenAI
moderation endpoint.
"""

import logging
import re
from typing import Iterable, Optional, Protocol

from openai import AsyncOpenAI

from backend.config import MODERATION_BLOCKLIST, MODERATION_PROVIDER, OPENAI_MODERATION_MODEL

logger = logging.getLogger(__name__)


class ContentModerator(Protocol):
    """Anything that can accept or reject a block of text."""

    async def is_clean(self, text: str) -> bool: ...


class KeywordModerator:
    """Rejects text containing any blocklisted word (case-insensitive, whole word)."""

    def __init__(self, blocklist: Optional[Iterable[str]] = None):
        words = list(blocklist if blocklist is not None else MODERATION_BLOCKLIST)
        alternatives = "|".join(re.escape(word) for word in words)
        self._pattern = re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE) if words else None

    def find_violations(self, text: str) -> list[str]:
        """Return the blocklisted words found in text, lowercased and de-duplicated."""
        if self._pattern is None:
            return []
        return sorted({match.lower() for match in self._pattern.findall(text)})

    async def is_clean(self, text: str) -> bool:
        violations = self.find_violations(text)
        if violations:
            logger.info(f"Moderation blocklist hit: {', '.join(violations)}")
        return not violations


class OpenAIModerator:
    """Uses the OpenAI moderation endpoint. Errors count as a rejection."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: str = OPENAI_MODERATION_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI()
        return self._client

    async def is_clean(self, text: str) -> bool:
        try:
            response = await self.client.moderations.create(model=self.model, input=text)
        except Exception as e:
            logger.error(f"Moderation request failed, rejecting story: {e}")
            return False

        flagged = any(result.flagged for result in response.results)
        if flagged:
            logger.info("Moderation endpoint flagged story text")
        return not flagged


def build_moderator(provider: str = MODERATION_PROVIDER) -> ContentModerator:
    """Create the moderator selected by MODERATION_PROVIDER."""
    if provider == "openai":
        return OpenAIModerator()
    if provider == "keyword":
        return KeywordModerator()
    raise ValueError(f"Unknown MODERATION_PROVIDER '{provider}'. Use 'keyword' or 'openai'.")
