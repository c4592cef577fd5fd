"""Shared enums for API models."""

from enum import Enum

from backend.core.types import StreamEventType

__all__ = ["StreamEventType", "ImageProvider"]


class ImageProvider(str, Enum):
    """Configured image generation backend."""

    GEMINI = "gemini"
    REPLICATE = "replicate"
