"""Pytest fixtures for unit tests."""

import asyncio
import io
import json
import os

import pytest
from dotenv import find_dotenv, load_dotenv
from PIL import Image

# Unit tests never talk to a real database or moderation endpoint
os.environ["DATABASE_URL"] = ""
os.environ["MODERATION_PROVIDER"] = "keyword"
os.environ["STREAM_DONE_ON_REJECTION"] = "true"

# Load environment variables (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from backend.api.services.event_stream import EventStream  # noqa: E402
from backend.core.errors import ProviderError  # noqa: E402
from backend.core.modules.content_moderator import KeywordModerator  # noqa: E402


def make_png(color: str = "red", size: tuple[int, int] = (8, 8)) -> bytes:
    """Create a small PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def parse_frame(frame: str) -> tuple[str, dict]:
    """Split an SSE frame into its event name and decoded data."""
    event_line, data_line = frame.rstrip("\n").split("\n")
    assert event_line.startswith("event: ")
    assert data_line.startswith("data: ")
    return event_line[len("event: "):], json.loads(data_line[len("data: "):])


class FakeImageGenerator:
    """Records every call; fails a scene a set number of times (or always)."""

    def __init__(self, failures: dict = None, image: bytes = None):
        self.failures = dict(failures or {})
        self.image = image or make_png()
        self.calls = []

    async def generate(self, prompt, seed, context):
        self.calls.append({"prompt": prompt, "seed": seed, "key": context.scene_key})
        remaining = self.failures.get(context.scene_key, 0)
        if remaining == "always":
            raise ProviderError(f"{context.scene_key} unavailable")
        if remaining:
            self.failures[context.scene_key] = remaining - 1
            raise ProviderError(f"{context.scene_key} unavailable")
        return self.image


class RecordingSaver:
    """StorySaver that keeps every saved fragment."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.saved = []

    async def save_story(self, user_id, story_id, text_fragment, image_fragment, genre, tone, audience):
        self.saved.append(
            {
                "user_id": user_id,
                "story_id": story_id,
                "text": text_fragment,
                "image": image_fragment,
                "genre": genre,
                "tone": tone,
                "audience": audience,
            }
        )
        if self.error is not None:
            raise self.error


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def story_payload():
    """A valid two-scene illustration request."""
    return {
        "userId": "u1",
        "storyId": "s1",
        "genre": "fantasy",
        "tone": "mythic",
        "audience": "teen",
        "story": {
            "title": "The Gate",
            "scene1": "A door opens in the forest.",
            "scene2": "The hero steps through.",
        },
    }


@pytest.fixture
def keyword_moderator():
    return KeywordModerator()


@pytest.fixture
def run_and_collect():
    """Run an orchestrator against a payload and return the parsed events in order."""

    async def _run(orchestrator, payload):
        stream = EventStream()
        frames = []

        async def consume():
            async for frame in stream.frames():
                frames.append(frame)

        consumer = asyncio.create_task(consume())
        await orchestrator.run(payload, stream)
        await consumer
        return [parse_frame(frame) for frame in frames]

    return _run


@pytest.fixture
def generator_factory():
    """Build a FakeImageGenerator with per-scene failures."""
    return FakeImageGenerator


@pytest.fixture
def saver_factory():
    """Build a RecordingSaver, optionally failing every save."""
    return RecordingSaver


@pytest.fixture
def frame_parser():
    return parse_frame
