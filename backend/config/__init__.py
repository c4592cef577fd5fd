"""
Configuration module for the Illustrated Story backend.

Re-exports all configuration for convenient access.
"""

from .llm import get_inference_lm, get_inference_model_name, llm_retry
from .story import STORY_CONSTANTS
from .safety import (
    REDACTION_PLACEHOLDER,
    SANITIZER_DENYLIST,
    MODERATION_BLOCKLIST,
    MODERATION_PROVIDER,
    OPENAI_MODERATION_MODEL,
)
from .image import (
    IMAGE_PROVIDER,
    IMAGE_CONSTANTS,
    IMAGE_RETRY,
    get_image_client,
    get_replicate_client,
    get_image_model,
    get_image_config,
    extract_image_from_response,
)

__all__ = [
    # LLM
    "get_inference_lm",
    "get_inference_model_name",
    "llm_retry",
    # Story
    "STORY_CONSTANTS",
    # Safety
    "REDACTION_PLACEHOLDER",
    "SANITIZER_DENYLIST",
    "MODERATION_BLOCKLIST",
    "MODERATION_PROVIDER",
    "OPENAI_MODERATION_MODEL",
    # Image
    "IMAGE_PROVIDER",
    "IMAGE_CONSTANTS",
    "IMAGE_RETRY",
    "get_image_client",
    "get_replicate_client",
    "get_image_model",
    "get_image_config",
    "extract_image_from_response",
]
