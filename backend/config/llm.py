"""
LLM configuration for the Illustrated Story backend.

The language model writes story drafts (title + scenes) before illustration.

Includes:
- 120s timeout per LLM call to fail fast on hanging connections
- Retry with exponential backoff for transient network errors
"""

import os
import logging
from dotenv import load_dotenv
import dspy
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

# Load environment variables from .env file
load_dotenv()

# Logging for retry attempts
logger = logging.getLogger(__name__)

# Timeout for LLM calls (seconds)
LLM_TIMEOUT = 120

# Network errors that should trigger retry
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,  # Catches [Errno 32] Broken pipe
)


def get_inference_lm() -> dspy.LM:
    """
    Get the inference LM for story drafts.

    Priority order:
    1. Gemini 3 Pro (GOOGLE_API_KEY)
    2. Claude (ANTHROPIC_API_KEY)
    3. GPT (OPENAI_API_KEY)

    Includes 120s timeout per call.
    """
    if os.getenv("GOOGLE_API_KEY"):
        return dspy.LM(
            "gemini/gemini-3-pro-preview",
            api_key=os.getenv("GOOGLE_API_KEY"),
            max_tokens=4096,
            temperature=1.0,  # Google recommends 1.0 for Gemini 3
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("ANTHROPIC_API_KEY"):
        return dspy.LM(
            "anthropic/claude-opus-4-5-20251101",
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            max_tokens=4096,
            temperature=1.0,
            timeout=LLM_TIMEOUT,
        )
    elif os.getenv("OPENAI_API_KEY"):
        return dspy.LM(
            "gpt-5.2",
            api_key=os.getenv("OPENAI_API_KEY"),
            max_tokens=16000,  # GPT-5 reasoning models require >= 16000
            temperature=1.0,   # GPT-5 reasoning models require 1.0
            timeout=LLM_TIMEOUT,
        )
    else:
        raise ValueError(
            "No API key found. Set GOOGLE_API_KEY, ANTHROPIC_API_KEY, or OPENAI_API_KEY in .env"
        )


# Retry decorator for LLM calls with network errors
llm_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def get_inference_model_name() -> str:
    """Get the name of the inference model that will be used."""
    if os.getenv("GOOGLE_API_KEY"):
        return "gemini-3-pro-preview"
    elif os.getenv("ANTHROPIC_API_KEY"):
        return "claude-opus-4-5-20251101"
    elif os.getenv("OPENAI_API_KEY"):
        return "gpt-5.2"
    else:
        return "unknown"
