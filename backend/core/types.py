"""
Centralized domain types for the Illustrated Story backend.

All dataclasses that are used across multiple modules are defined here
to make data flow explicit and avoid circular imports.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


COVER_KEY = "cover"


class StreamEventType(str, Enum):
    """Event names on the illustration stream."""

    COVER = "cover"
    SCENE = "scene"
    ERROR = "error"
    DONE = "done"


# =============================================================================
# Generation Types
# =============================================================================


@dataclass(frozen=True)
class ImageContext:
    """Who and what a single image generation call is for."""

    user_id: str
    story_id: str
    scene_key: str


@dataclass
class GeneratedArtifact:
    """Result of illustrating one item (the cover or a scene).

    Either `image` (base64) is set, or `error` is.
    """

    key: str
    text: Optional[str] = None
    image: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_image(cls, key: str, image_bytes: bytes, text: Optional[str] = None) -> "GeneratedArtifact":
        return cls(key=key, text=text, image=base64.b64encode(image_bytes).decode("ascii"))

    @classmethod
    def failed(cls, key: str, error: str) -> "GeneratedArtifact":
        return cls(key=key, error=error)

    @property
    def is_cover(self) -> bool:
        return self.key == COVER_KEY

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.image is not None

    def to_event(self) -> "StreamEvent":
        """Convert to the stream event the client receives for this item."""
        if not self.succeeded:
            return StreamEvent(StreamEventType.ERROR.value, {"key": self.key, "error": self.error})
        if self.is_cover:
            return StreamEvent(StreamEventType.COVER.value, {"title": self.text, "image": self.image})
        return StreamEvent(StreamEventType.SCENE.value, {"key": self.key, "text": self.text, "image": self.image})


@dataclass(frozen=True)
class StreamEvent:
    """A named event with a JSON-serialisable payload."""

    event: str  # a StreamEventType value
    data: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Story Draft Types
# =============================================================================


@dataclass
class StoryDraft:
    """A titled story split into scenes, ready for illustration."""

    title: str
    scenes: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, str]:
        """Flatten to the {title, scene1..sceneN} shape the client edits."""
        payload = {"title": self.title}
        for index, text in enumerate(self.scenes, start=1):
            payload[f"scene{index}"] = text
        return payload
