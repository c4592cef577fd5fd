"""Exception types for story illustration runs.

Request-level errors (validation, moderation) end a run before any image is
generated. Item-level errors (ArtifactError) are reported for one cover or scene
and the run moves on.
"""

from typing import Optional


class StoryValidationError(ValueError):
    """The request payload is missing fields or has no usable scenes."""


class ModerationRejection(Exception):
    """The assembled story text failed the content moderation gate."""


class ProviderError(RuntimeError):
    """A single image generation attempt failed."""


class ArtifactError(RuntimeError):
    """Image generation for one item failed after its retry budget was spent."""

    def __init__(self, message: str, key: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.key = key
        self.attempts = attempts


class PersistenceError(RuntimeError):
    """Saving a story fragment to the store failed."""
