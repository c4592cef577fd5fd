# Illustrated Story backend - Core Domain

# Re-export types for convenient access
from .types import (
    COVER_KEY,
    ImageContext,
    GeneratedArtifact,
    StreamEvent,
    StreamEventType,
    StoryDraft,
)
from .errors import (
    StoryValidationError,
    ModerationRejection,
    ProviderError,
    ArtifactError,
    PersistenceError,
)

__all__ = [
    "COVER_KEY",
    "ImageContext",
    "GeneratedArtifact",
    "StreamEvent",
    "StreamEventType",
    "StoryDraft",
    "StoryValidationError",
    "ModerationRejection",
    "ProviderError",
    "ArtifactError",
    "PersistenceError",
]
