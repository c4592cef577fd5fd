from .short_story import ShortStorySignature

__all__ = [
    "ShortStorySignature",
]
