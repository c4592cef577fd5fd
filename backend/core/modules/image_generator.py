"""
Image generation providers for story covers and scenes.

Every provider exposes the same call:

    await generator.generate(prompt, seed, context) -> image bytes

and raises ProviderError when no usable image comes back. Whether a provider
makes one remote call or several is its own business:

- GeminiImageGenerator: single pass with Nano Banana Pro.
- RefiningImageGenerator: a base generation on Replicate, then a refinement
  pass fed with the base image. Both stages use the same seed so the whole
  story keeps one visual style.

SDK clients are created lazily on first use and shared by every run in the
process (see LazyClient).
"""

import asyncio
import inspect
import io
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, Protocol, TypeVar, Union

import httpx
from PIL import Image, UnidentifiedImageError

from backend.config import (
    IMAGE_CONSTANTS,
    IMAGE_PROVIDER,
    extract_image_from_response,
    get_image_client,
    get_image_config,
    get_image_model,
    get_replicate_client,
)
from ..errors import ProviderError
from ..types import ImageContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEGATIVE_PROMPT = (
    "ugly, deformed, noisy, blurry, low contrast, text, signature, watermark, username, "
    "logo, worst quality, low quality, bad anatomy, bad hands, extra fingers"
)


class ImageGenerator(Protocol):
    """A provider that turns a prompt and seed into image bytes."""

    async def generate(self, prompt: str, seed: int, context: ImageContext) -> bytes: ...


class LazyClient(Generic[T]):
    """
    Process-wide SDK client handle, created on first use.

    Concurrent first calls share one initialization: the factory runs once
    and every waiter gets the same client.
    """

    def __init__(self, factory: Callable[[], Union[T, Awaitable[T]]], name: str = "client"):
        self._factory = factory
        self._name = name
        self._client: Optional[T] = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def get(self) -> T:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                logger.info(f"Connecting {self._name}...")
                client = self._factory()
                if inspect.isawaitable(client):
                    client = await client
                self._client = client
                logger.info(f"{self._name} connected")
        return self._client


def verify_image(data: Any, stage: str = "image") -> bytes:
    """Check that data is a decodable image and return it as bytes."""
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise ProviderError(f"Provider returned no {stage} data")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ProviderError(f"Provider returned an unreadable {stage}: {e}") from e
    return bytes(data)


class GeminiImageGenerator:
    """Single-pass illustration with Nano Banana Pro."""

    def __init__(self, client: Optional[LazyClient] = None, model: Optional[str] = None):
        self.client = client or LazyClient(get_image_client, name="Gemini image client")
        self.model = model or get_image_model()

    async def generate(self, prompt: str, seed: int, context: ImageContext) -> bytes:
        client = await self.client.get()
        logger.info(
            f"Generating {context.scene_key} image for story {context.story_id}: {prompt[:50]}...",
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=get_image_config(seed),
            )
        except Exception as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        try:
            data = extract_image_from_response(response)
        except (ValueError, AttributeError, IndexError) as e:
            raise ProviderError(f"Gemini returned no image: {e}") from e
        return verify_image(data)


class RefiningImageGenerator:
    """
    Two-stage generate-then-refine pipeline on Replicate.

    The refine stage depends on the base image, so the two predictions run
    one after the other.
    """

    def __init__(
        self,
        client: Optional[LazyClient] = None,
        base_model: Optional[str] = None,
        refine_model: Optional[str] = None,
        http_timeout: float = 60.0,
    ):
        self.client = client or LazyClient(get_replicate_client, name="Replicate client")
        self.base_model = base_model or IMAGE_CONSTANTS["replicate_base_model"]
        self.refine_model = refine_model or IMAGE_CONSTANTS["replicate_refine_model"]
        self.http_timeout = http_timeout

    def _base_input(self, prompt: str, seed: int) -> dict[str, Any]:
        return {
            "prompt": prompt,
            "negative_prompt": NEGATIVE_PROMPT,
            "seed": seed,
            "aspect_ratio": IMAGE_CONSTANTS["aspect_ratio"],
            "num_inference_steps": IMAGE_CONSTANTS["base_inference_steps"],
            "guidance": IMAGE_CONSTANTS["base_guidance"],
            "output_format": IMAGE_CONSTANTS["output_format"],
            "num_outputs": 1,
        }

    def _refine_input(self, prompt: str, seed: int, base_image: bytes) -> dict[str, Any]:
        return {
            "prompt": prompt,
            "image": io.BytesIO(base_image),
            "prompt_strength": IMAGE_CONSTANTS["refine_prompt_strength"],
            "seed": seed,
            "num_inference_steps": IMAGE_CONSTANTS["refine_inference_steps"],
            "guidance": IMAGE_CONSTANTS["refine_guidance"],
            "output_format": IMAGE_CONSTANTS["output_format"],
            "num_outputs": 1,
        }

    async def generate(self, prompt: str, seed: int, context: ImageContext) -> bytes:
        client = await self.client.get()

        logger.info(f"Generating base {context.scene_key} image for story {context.story_id}: {prompt[:50]}...")
        base_image = await self._run_stage(client, "base image", self.base_model, self._base_input(prompt, seed))

        logger.info(f"Refining {context.scene_key} image for story {context.story_id}")
        return await self._run_stage(
            client, "refined image", self.refine_model, self._refine_input(prompt, seed, base_image)
        )

    async def _run_stage(self, client, stage: str, model: str, payload: dict[str, Any]) -> bytes:
        try:
            output = await client.async_run(model, input=payload)
        except Exception as e:
            raise ProviderError(f"Replicate {stage} request failed: {e}") from e
        return verify_image(await self._read_output(output, stage), stage)

    async def _read_output(self, output: Any, stage: str) -> bytes:
        """Read bytes from a Replicate output (file object, URL, or a list of either)."""
        if isinstance(output, (list, tuple)):
            if not output:
                raise ProviderError(f"Replicate returned no {stage}")
            output = output[0]

        try:
            if hasattr(output, "aread"):
                return await output.aread()
            if hasattr(output, "read"):
                return output.read()
            if isinstance(output, str) and output.startswith(("http://", "https://")):
                async with httpx.AsyncClient(timeout=self.http_timeout) as http:
                    response = await http.get(output)
                    response.raise_for_status()
                    return response.content
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to fetch {stage}: {e}") from e

        raise ProviderError(f"Replicate did not return a valid {stage} (got {type(output).__name__})")


def build_image_generator(provider: str = IMAGE_PROVIDER) -> ImageGenerator:
    """Create the generator selected by IMAGE_PROVIDER. Clients connect on first use."""
    if provider == "gemini":
        return GeminiImageGenerator()
    if provider == "replicate":
        return RefiningImageGenerator()
    raise ValueError(f"Unknown IMAGE_PROVIDER '{provider}'. Use 'gemini' or 'replicate'.")
