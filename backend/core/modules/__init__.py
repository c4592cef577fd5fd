# Safety
from .prompt_sanitizer import sanitize_prompt
from .content_moderator import ContentModerator, KeywordModerator, OpenAIModerator, build_moderator

# Illustration
from .image_generator import (
    ImageGenerator,
    LazyClient,
    GeminiImageGenerator,
    RefiningImageGenerator,
    build_image_generator,
)
from .image_retry import RetryPolicy, RetryingImageGenerator
from .scene_sequencer import ordered_scene_keys, scene_number

# Story drafts
from .story_writer import StoryWriter

__all__ = [
    # Safety
    "sanitize_prompt",
    "ContentModerator",
    "KeywordModerator",
    "OpenAIModerator",
    "build_moderator",
    # Illustration
    "ImageGenerator",
    "LazyClient",
    "GeminiImageGenerator",
    "RefiningImageGenerator",
    "build_image_generator",
    "RetryPolicy",
    "RetryingImageGenerator",
    "ordered_scene_keys",
    "scene_number",
    # Story drafts
    "StoryWriter",
]
