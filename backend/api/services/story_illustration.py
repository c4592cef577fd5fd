"""
Streaming story illustration.

One run takes a story (title + scenes), checks it, and then illustrates it
one item at a time: the cover first, then every scene in order. Each image
is streamed to the client as soon as it exists.

Run stages:
    validating -> moderating -> cover -> scene1 .. sceneN -> done

A bad request or a moderation failure ends the run with a single error event
before any image is generated. A failed cover or scene only produces an error
event for that item; the run carries on with the next one.
"""

import logging
import random
import time
from typing import Any, Callable, Optional, Protocol

from pydantic import ValidationError

from backend.config import STORY_CONSTANTS
from backend.core.errors import ArtifactError, ModerationRejection, StoryValidationError
from backend.core.modules.content_moderator import ContentModerator
from backend.core.modules.image_retry import RetryingImageGenerator
from backend.core.modules.scene_sequencer import ordered_scene_keys
from backend.core.types import COVER_KEY, GeneratedArtifact, ImageContext, StreamEventType

from ..config import STREAM_DONE_ON_REJECTION
from ..logging import story_logger
from ..models.requests import StoryRequest
from .event_stream import EventStream

logger = logging.getLogger(__name__)

DONE_MESSAGE = "All scenes processed."
REJECTED_MESSAGE = "Story rejected."


class StorySaver(Protocol):
    """Best-effort store for story fragments as they are generated."""

    async def save_story(
        self,
        user_id: str,
        story_id: str,
        text_fragment: dict[str, str],
        image_fragment: dict[str, str],
        genre: str,
        tone: str,
        audience: str,
    ) -> None: ...


def draw_seed() -> int:
    """One seed per story, shared by the cover and every scene."""
    return random.randint(0, STORY_CONSTANTS["seed_max"])


def parse_story_request(payload: Any) -> tuple[StoryRequest, list[str]]:
    """
    Validate a raw request body.

    Returns:
        The parsed request and its scene keys in order

    Raises:
        StoryValidationError: With a client-facing message
    """
    if not isinstance(payload, dict) or not payload:
        raise StoryValidationError("No payload received in POST request.")

    try:
        request = StoryRequest.model_validate(payload)
    except ValidationError as e:
        raise StoryValidationError("Missing or invalid fields in the payload.") from e

    story = request.story.as_mapping()
    try:
        scene_keys = ordered_scene_keys(story)
    except ValueError as e:
        # Scene numbers too long to convert
        raise StoryValidationError("Invalid scene keys in the story.") from e
    if not scene_keys:
        raise StoryValidationError("No scenes found in the story.")

    min_length = STORY_CONSTANTS["min_scene_length"]
    for key in scene_keys:
        text = story[key]
        if not isinstance(text, str) or len(text.strip()) < min_length:
            raise StoryValidationError(f'Scene "{key}" is too short or missing.')

    return request, scene_keys


class StoryIllustrationOrchestrator:
    """
    Illustrate a story and stream the results.

    Args:
        images: Image generator with retry
        moderator: Gate applied to the whole story text before generation
        saver: Optional store; failures are logged and never reach the client
        seed_factory: Draws the per-story seed
        done_on_rejection: Also end rejected requests with a done event
    """

    def __init__(
        self,
        images: RetryingImageGenerator,
        moderator: ContentModerator,
        saver: Optional[StorySaver] = None,
        seed_factory: Callable[[], int] = draw_seed,
        done_on_rejection: bool = STREAM_DONE_ON_REJECTION,
    ):
        self.images = images
        self.moderator = moderator
        self.saver = saver
        self.seed_factory = seed_factory
        self.done_on_rejection = done_on_rejection

    def _build_cover_prompt(self, request: StoryRequest) -> str:
        return (
            f"masterpiece book cover, best quality, award-winning digital painting, cinematic, "
            f'for a {request.genre} story titled "{request.story.title}". '
            f"Tone: {request.tone}. Audience: {request.audience}."
        )

    def _build_scene_prompt(self, request: StoryRequest, scene_text: str) -> str:
        return (
            f"masterpiece illustration, best quality, cinematic lighting, detailed, "
            f"for a {request.genre} story. Tone: {request.tone}. Audience: {request.audience}. "
            f"Scene: {scene_text}."
        )

    @staticmethod
    def _combined_text(request: StoryRequest, scene_keys: list[str]) -> str:
        story = request.story.as_mapping()
        return " ".join([request.story.title, *(story[key] for key in scene_keys)])

    async def run(self, payload: Any, stream: EventStream) -> None:
        """Run one illustration request to completion, then close the stream."""
        try:
            await self._run(payload, stream)
        finally:
            await stream.close()

    async def _run(self, payload: Any, stream: EventStream) -> None:
        story_id = payload.get("storyId") if isinstance(payload, dict) else None

        stage = "validating"
        try:
            request, scene_keys = parse_story_request(payload)
            stage = "moderating"
            if not await self._is_clean(self._combined_text(request, scene_keys)):
                raise ModerationRejection("Story failed content moderation.")
        except (StoryValidationError, ModerationRejection) as e:
            story_logger.run_rejected(str(story_id), str(e), stage)
            await stream.emit(StreamEventType.ERROR.value, {"error": str(e)})
            if self.done_on_rejection:
                await stream.emit(StreamEventType.DONE.value, {"message": REJECTED_MESSAGE})
            return

        seed = self.seed_factory()
        story_logger.run_started(request.story_id, len(scene_keys), seed)
        start_time = time.time()

        story = request.story.as_mapping()
        steps = [(COVER_KEY, request.story.title, self._build_cover_prompt(request))]
        steps += [(key, story[key], self._build_scene_prompt(request, story[key])) for key in scene_keys]

        failures = 0
        for key, text, prompt in steps:
            if stream.disconnected:
                story_logger.client_disconnected(request.story_id, key)
                return

            artifact = await self._illustrate(request, key, text, prompt, seed)
            await stream.send(artifact.to_event())

            if artifact.succeeded:
                await self._save(request, artifact)
            else:
                failures += 1

        await stream.emit(StreamEventType.DONE.value, {"message": DONE_MESSAGE})
        story_logger.run_completed(request.story_id, time.time() - start_time, failures)

    async def _is_clean(self, text: str) -> bool:
        """Moderate text. A moderator that fails counts as a rejection."""
        try:
            return await self.moderator.is_clean(text)
        except Exception:
            logger.exception("Content moderation failed, rejecting story")
            return False

    async def _illustrate(
        self,
        request: StoryRequest,
        key: str,
        text: str,
        prompt: str,
        seed: int,
    ) -> GeneratedArtifact:
        """Generate one image. Never raises for generation failures."""
        context = ImageContext(user_id=request.user_id, story_id=request.story_id, scene_key=key)
        started = time.time()
        try:
            image = await self.images.generate_with_retry(prompt, seed, context)
        except ArtifactError as e:
            story_logger.artifact_failed(request.story_id, key, e)
            return GeneratedArtifact.failed(key, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error illustrating {key} for story {request.story_id}")
            story_logger.artifact_failed(request.story_id, key, e)
            return GeneratedArtifact.failed(key, f"Failed to generate image: {e}")

        story_logger.artifact_completed(request.story_id, key, time.time() - started)
        return GeneratedArtifact.from_image(key, image, text=text)

    async def _save(self, request: StoryRequest, artifact: GeneratedArtifact) -> None:
        if self.saver is None:
            return

        if artifact.is_cover:
            text_fragment = {"title": request.story.title}
        else:
            text_fragment = {artifact.key: artifact.text}

        try:
            await self.saver.save_story(
                request.user_id,
                request.story_id,
                text_fragment,
                {artifact.key: artifact.image},
                request.genre,
                request.tone,
                request.audience,
            )
        except Exception as e:
            story_logger.persistence_failed(request.story_id, artifact.key, e)
