"""
Bounded retry around an image generator.

The prompt is sanitized once, then the generator is called up to
max_retries + 1 times. By default every provider failure is retried
immediately; backoff, jitter, a per-attempt timeout, and which errors count
as retryable are all set through RetryPolicy.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_none,
    wait_random,
)

from backend.config import IMAGE_RETRY
from ..errors import ArtifactError, ProviderError
from ..types import ImageContext
from .image_generator import ImageGenerator
from .prompt_sanitizer import sanitize_prompt

logger = logging.getLogger(__name__)


def _always_retry(error: BaseException) -> bool:
    return True


@dataclass
class RetryPolicy:
    """How often and how patiently to retry one image."""

    max_retries: int = 2
    backoff_initial: float = 0.0  # Seconds before the first retry; 0 retries immediately
    backoff_max: float = 30.0
    jitter: float = 0.0  # Up to this many random seconds added to each wait
    attempt_timeout: Optional[float] = None
    retry_on: Callable[[BaseException], bool] = field(default=_always_retry)

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_retries=IMAGE_RETRY["max_retries"],
            backoff_initial=IMAGE_RETRY["backoff_initial"],
            backoff_max=IMAGE_RETRY["backoff_max"],
            jitter=IMAGE_RETRY["jitter"],
            attempt_timeout=IMAGE_RETRY["attempt_timeout"] or None,
        )

    def wait_strategy(self):
        wait = wait_none()
        if self.backoff_initial > 0:
            wait = wait_exponential(multiplier=self.backoff_initial, min=self.backoff_initial, max=self.backoff_max)
        if self.jitter > 0:
            wait = wait + wait_random(0, self.jitter)
        return wait


class RetryingImageGenerator:
    """Wraps an ImageGenerator with sanitization and bounded retry."""

    def __init__(self, generator: ImageGenerator, policy: Optional[RetryPolicy] = None):
        self.generator = generator
        self.policy = policy or RetryPolicy()

    def _should_retry(self, error: BaseException) -> bool:
        # Cancellation is never retried
        return isinstance(error, Exception) and self.policy.retry_on(error)

    async def _attempt(self, prompt: str, seed: int, context: ImageContext) -> bytes:
        call = self.generator.generate(prompt, seed, context)
        if self.policy.attempt_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.policy.attempt_timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Image generation timed out after {self.policy.attempt_timeout}s") from e

    async def generate_with_retry(
        self,
        prompt: str,
        seed: int,
        context: ImageContext,
        max_retries: Optional[int] = None,
    ) -> bytes:
        """
        Generate one image, retrying failed attempts.

        Args:
            prompt: Raw prompt; sanitized once before the first attempt
            seed: Story seed, identical for every attempt
            context: Story and scene the image is for
            max_retries: Overrides the policy's retry budget

        Returns:
            Image bytes from the first successful attempt

        Raises:
            ArtifactError: All attempts failed, or a failure was not retryable
        """
        retries = self.policy.max_retries if max_retries is None else max_retries
        total_attempts = retries + 1
        safe_prompt = sanitize_prompt(prompt)
        attempt_number = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(total_attempts),
            wait=self.policy.wait_strategy(),
            retry=retry_if_exception(self._should_retry),
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    try:
                        image = await self._attempt(safe_prompt, seed, context)
                    except Exception as e:
                        logger.warning(
                            f"Attempt {attempt_number}/{total_attempts} failed for {context.scene_key}: {e}",
                            extra={
                                "story_id": context.story_id,
                                "scene_key": context.scene_key,
                                "attempt": attempt_number,
                                "error_type": type(e).__name__,
                            },
                        )
                        raise
        except RetryError as e:
            raise ArtifactError(
                f"Image generation failed after {total_attempts} attempts.",
                key=context.scene_key,
                attempts=total_attempts,
            ) from e.last_attempt.exception()
        except Exception as e:
            raise ArtifactError(
                f"Image generation failed with a non-retryable error: {e}",
                key=context.scene_key,
                attempts=attempt_number,
            ) from e

        return image
