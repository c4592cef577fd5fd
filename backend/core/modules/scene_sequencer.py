"""Ordering of a story's scene keys (scene1, scene2, ..., scene10)."""

import re
from typing import Any, Mapping

from backend.config import STORY_CONSTANTS

_SCENE_KEY = re.compile(rf"{STORY_CONSTANTS['scene_key_prefix']}(\d+)")


def scene_number(key: str) -> int:
    """Numeric position of a scene key. Raises ValueError for non-scene keys."""
    match = _SCENE_KEY.fullmatch(key)
    if not match:
        raise ValueError(f"Not a scene key: {key!r}")
    return int(match.group(1))


def ordered_scene_keys(story: Mapping[str, Any]) -> list[str]:
    """Scene keys of a story in numeric order. Non-scene keys such as title are skipped."""
    keys = [key for key in story if isinstance(key, str) and _SCENE_KEY.fullmatch(key)]
    return sorted(keys, key=scene_number)

