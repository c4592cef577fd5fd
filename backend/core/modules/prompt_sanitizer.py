"""Redaction of disallowed words from image generation prompts."""

import re

from backend.config import REDACTION_PLACEHOLDER, SANITIZER_DENYLIST


def _build_pattern(words: list[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(word) for word in words)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_DENYLIST_PATTERN = _build_pattern(SANITIZER_DENYLIST)


def sanitize_prompt(text: str) -> str:
    """
    Replace denylisted words with a placeholder.

    Matching is case-insensitive and whole-word only, so "skill" and
    "bloodhound" are left alone. Text without matches is returned unchanged.
    """
    return _DENYLIST_PATTERN.sub(REDACTION_PLACEHOLDER, text)
