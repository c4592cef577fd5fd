"""
Image generation configuration for the Illustrated Story backend.

Two providers are supported:
- "gemini": single-pass generation with Nano Banana Pro (Gemini 3 Pro Image)
- "replicate": two-stage generate-then-refine pipeline on Replicate
"""

import base64
import os

from dotenv import load_dotenv
from google import genai
from google.genai.types import GenerateContentConfig, Modality
import replicate

# Load environment variables from .env file
load_dotenv()

IMAGE_PROVIDER = os.getenv("IMAGE_PROVIDER", "gemini").strip().lower()

# Image generation constants
IMAGE_CONSTANTS = {
    "gemini_model": "gemini-3-pro-image-preview",  # Nano Banana Pro
    "replicate_base_model": os.getenv("REPLICATE_BASE_MODEL", "black-forest-labs/flux-dev"),
    "replicate_refine_model": os.getenv("REPLICATE_REFINE_MODEL", "black-forest-labs/flux-dev"),
    "aspect_ratio": "1:1",
    "base_inference_steps": 25,
    "base_guidance": 3.5,
    "refine_inference_steps": 10,
    "refine_guidance": 3.0,
    "refine_prompt_strength": 0.35,  # How far refinement may move from the base image
    "output_format": "png",
}

# Retry and timeout settings for a single cover/scene image.
# Defaults retry immediately on any provider failure.
IMAGE_RETRY = {
    "max_retries": int(os.getenv("IMAGE_MAX_RETRIES", "2")),
    "backoff_initial": float(os.getenv("IMAGE_RETRY_BACKOFF_S", "0")),
    "backoff_max": float(os.getenv("IMAGE_RETRY_BACKOFF_MAX_S", "30")),
    "jitter": float(os.getenv("IMAGE_RETRY_JITTER_S", "0")),
    "attempt_timeout": float(os.getenv("IMAGE_ATTEMPT_TIMEOUT_S", "180")),
}


def get_image_client() -> genai.Client:
    """
    Get the Nano Banana Pro (Gemini 3 Pro Image) client for illustration generation.

    Uses GOOGLE_API_KEY from environment.
    """
    api_key = os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ValueError("GOOGLE_API_KEY not found in environment. Set it in .env file.")

    return genai.Client(api_key=api_key)


def get_replicate_client() -> replicate.Client:
    """
    Get the Replicate client for the generate-then-refine pipeline.

    Uses REPLICATE_API_TOKEN from environment.
    """
    api_token = os.getenv("REPLICATE_API_TOKEN")
    if not api_token:
        raise ValueError("REPLICATE_API_TOKEN not found in environment. Set it in .env file.")

    return replicate.Client(api_token=api_token)


def get_image_model() -> str:
    """Get the Gemini image model ID."""
    return IMAGE_CONSTANTS["gemini_model"]


def get_image_config(seed: int) -> GenerateContentConfig:
    """Get the config for one Gemini image generation call, pinned to a seed."""
    return GenerateContentConfig(
        response_modalities=[Modality.TEXT, Modality.IMAGE],
        seed=seed,
    )


def extract_image_from_response(response) -> bytes:
    """
    Extract image bytes from a Gemini API response.

    Args:
        response: The response from genai.Client.aio.models.generate_content()

    Returns:
        Image bytes (PNG/JPEG)

    Raises:
        ValueError: If no image found in response
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        raise ValueError("No candidates in response")

    for part in candidates[0].content.parts or []:
        if hasattr(part, "inline_data") and part.inline_data:
            data = part.inline_data.data
            return base64.b64decode(data) if isinstance(data, str) else data

    raise ValueError("No image found in response")
