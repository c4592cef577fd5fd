"""Unit tests for the streaming story illustration orchestrator."""

import asyncio
import base64

import pytest

from backend.api.services.event_stream import EventStream
from backend.api.services.story_illustration import (
    DONE_MESSAGE,
    REJECTED_MESSAGE,
    StoryIllustrationOrchestrator,
    parse_story_request,
)
from backend.core.errors import StoryValidationError
from backend.core.modules.image_retry import RetryingImageGenerator, RetryPolicy
from backend.core.modules.content_moderator import KeywordModerator


def _orchestrator(generator, saver=None, moderator=None, done_on_rejection=True, seed=1234):
    return StoryIllustrationOrchestrator(
        images=RetryingImageGenerator(generator, RetryPolicy(max_retries=2)),
        moderator=moderator or KeywordModerator(),
        saver=saver,
        seed_factory=lambda: seed,
        done_on_rejection=done_on_rejection,
    )


def _names(events):
    return [name for name, _ in events]


# =============================================================================
# parse_story_request tests
# =============================================================================


class TestParseStoryRequest:
    """Tests for request validation."""

    def test_valid_request(self, story_payload):
        request, scene_keys = parse_story_request(story_payload)

        assert request.user_id == "u1"
        assert request.story_id == "s1"
        assert request.story.title == "The Gate"
        assert scene_keys == ["scene1", "scene2"]

    @pytest.mark.parametrize("payload", [None, {}, [], "story"])
    def test_missing_payload(self, payload):
        with pytest.raises(StoryValidationError, match="No payload received"):
            parse_story_request(payload)

    @pytest.mark.parametrize("field", ["userId", "storyId", "genre", "tone", "audience", "story"])
    def test_missing_field(self, story_payload, field):
        del story_payload[field]
        with pytest.raises(StoryValidationError, match="Missing or invalid fields"):
            parse_story_request(story_payload)

    def test_blank_title(self, story_payload):
        story_payload["story"]["title"] = "   "
        with pytest.raises(StoryValidationError, match="Missing or invalid fields"):
            parse_story_request(story_payload)

    def test_no_scenes(self, story_payload):
        story_payload["story"] = {"title": "X"}
        with pytest.raises(StoryValidationError, match="No scenes found in the story."):
            parse_story_request(story_payload)

    def test_short_scene(self, story_payload):
        story_payload["story"]["scene2"] = "Too short"
        with pytest.raises(StoryValidationError, match='Scene "scene2" is too short or missing.'):
            parse_story_request(story_payload)

    def test_non_text_scene(self, story_payload):
        story_payload["story"]["scene2"] = 12345678901
        with pytest.raises(StoryValidationError, match='Scene "scene2"'):
            parse_story_request(story_payload)

    def test_scenes_ordered_numerically(self, story_payload):
        story_payload["story"]["scene10"] = "The gate closes behind them."
        _, scene_keys = parse_story_request(story_payload)
        assert scene_keys == ["scene1", "scene2", "scene10"]

    def test_oversized_scene_number(self, story_payload):
        """A scene number too long to convert is a validation error, not a crash."""
        story_payload["story"]["scene" + "9" * 5000] = "A very long numbered scene."
        with pytest.raises(StoryValidationError, match="Invalid scene keys"):
            parse_story_request(story_payload)


# =============================================================================
# Orchestrator tests
# =============================================================================


class TestIllustrationRun:
    """Tests for a full illustration run."""

    @pytest.mark.asyncio
    async def test_all_items_succeed(self, story_payload, generator_factory, run_and_collect, png_bytes):
        """Cover, then each scene in order, then done."""
        generator = generator_factory(image=png_bytes)

        events = await run_and_collect(_orchestrator(generator), story_payload)

        assert _names(events) == ["cover", "scene", "scene", "done"]
        cover, scene1, scene2, done = (data for _, data in events)
        assert cover == {"title": "The Gate", "image": base64.b64encode(png_bytes).decode()}
        assert scene1["key"] == "scene1"
        assert scene1["text"] == "A door opens in the forest."
        assert scene2["key"] == "scene2"
        assert done == {"message": DONE_MESSAGE}

    @pytest.mark.asyncio
    async def test_one_seed_for_whole_story(self, story_payload, generator_factory, run_and_collect):
        """Every call, retries included, uses the story's seed."""
        generator = generator_factory(failures={"scene1": 1})

        await run_and_collect(_orchestrator(generator, seed=777), story_payload)

        assert len(generator.calls) == 4
        assert {call["seed"] for call in generator.calls} == {777}

    @pytest.mark.asyncio
    async def test_items_generated_in_order(self, story_payload, generator_factory, run_and_collect):
        story_payload["story"]["scene10"] = "The gate closes behind them."
        generator = generator_factory()

        await run_and_collect(_orchestrator(generator), story_payload)

        assert [call["key"] for call in generator.calls] == ["cover", "scene1", "scene2", "scene10"]

    @pytest.mark.asyncio
    async def test_scene_failure_does_not_stop_run(self, story_payload, generator_factory, run_and_collect):
        """A scene that exhausts its retries yields an error event; the run still finishes."""
        generator = generator_factory(failures={"scene2": "always"})

        events = await run_and_collect(_orchestrator(generator), story_payload)

        assert _names(events) == ["cover", "scene", "error", "done"]
        assert events[2][1] == {"key": "scene2", "error": "Image generation failed after 3 attempts."}
        assert [call["key"] for call in generator.calls].count("scene2") == 3

    @pytest.mark.asyncio
    async def test_cover_failure_does_not_stop_run(self, story_payload, generator_factory, run_and_collect):
        generator = generator_factory(failures={"cover": "always"})

        events = await run_and_collect(_orchestrator(generator), story_payload)

        assert _names(events) == ["error", "scene", "scene", "done"]
        assert events[0][1]["key"] == "cover"

    @pytest.mark.asyncio
    async def test_prompts_describe_story(self, story_payload, generator_factory, run_and_collect):
        generator = generator_factory()

        await run_and_collect(_orchestrator(generator), story_payload)

        cover_prompt = generator.calls[0]["prompt"]
        scene_prompt = generator.calls[1]["prompt"]
        assert '"The Gate"' in cover_prompt
        assert "fantasy" in cover_prompt
        assert "A door opens in the forest." in scene_prompt
        assert "mythic" in scene_prompt


class TestRejectedRequests:
    """Tests for requests rejected before any image is generated."""

    @pytest.mark.asyncio
    async def test_no_scenes_ends_with_done(self, story_payload, generator_factory, run_and_collect):
        story_payload["story"] = {"title": "X"}
        generator = generator_factory()

        events = await run_and_collect(_orchestrator(generator), story_payload)

        assert events == [
            ("error", {"error": "No scenes found in the story."}),
            ("done", {"message": REJECTED_MESSAGE}),
        ]
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_no_scenes_without_done(self, story_payload, generator_factory, run_and_collect):
        """With done_on_rejection off, a rejection is a single error event."""
        story_payload["story"] = {"title": "X"}

        events = await run_and_collect(
            _orchestrator(generator_factory(), done_on_rejection=False), story_payload
        )

        assert events == [("error", {"error": "No scenes found in the story."})]

    @pytest.mark.asyncio
    async def test_moderation_failure_makes_no_provider_calls(
        self, story_payload, generator_factory, run_and_collect
    ):
        story_payload["story"]["scene2"] = "The hero watches the torture of the villagers."
        generator = generator_factory()

        events = await run_and_collect(
            _orchestrator(generator, done_on_rejection=False), story_payload
        )

        assert events == [("error", {"error": "Story failed content moderation."})]
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_moderator_sees_title_and_all_scenes(self, story_payload, generator_factory, run_and_collect):
        seen = []

        class RecordingModerator:
            async def is_clean(self, text):
                seen.append(text)
                return True

        await run_and_collect(
            _orchestrator(generator_factory(), moderator=RecordingModerator()), story_payload
        )

        assert seen == ["The Gate A door opens in the forest. The hero steps through."]

    @pytest.mark.asyncio
    async def test_invalid_payload(self, generator_factory, run_and_collect):
        events = await run_and_collect(_orchestrator(generator_factory()), None)

        assert events[0] == ("error", {"error": "No payload received in POST request."})

    @pytest.mark.asyncio
    async def test_oversized_scene_number_ends_with_done(self, story_payload, generator_factory, run_and_collect):
        story_payload["story"]["scene" + "9" * 5000] = "A very long numbered scene."
        generator = generator_factory()

        events = await run_and_collect(_orchestrator(generator), story_payload)

        assert events == [
            ("error", {"error": "Invalid scene keys in the story."}),
            ("done", {"message": REJECTED_MESSAGE}),
        ]
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_failing_moderator_rejects_story(self, story_payload, generator_factory, run_and_collect):
        """A moderator that raises counts as a rejection; no images are generated."""

        class BrokenModerator:
            async def is_clean(self, text):
                raise RuntimeError("moderation backend down")

        generator = generator_factory()

        events = await run_and_collect(
            _orchestrator(generator, moderator=BrokenModerator()), story_payload
        )

        assert events == [
            ("error", {"error": "Story failed content moderation."}),
            ("done", {"message": REJECTED_MESSAGE}),
        ]
        assert generator.calls == []


class TestPersistence:
    """Tests for best-effort saving of generated parts."""

    @pytest.mark.asyncio
    async def test_saves_each_successful_part(
        self, story_payload, generator_factory, saver_factory, run_and_collect, png_bytes
    ):
        saver = saver_factory()
        generator = generator_factory(failures={"scene2": "always"}, image=png_bytes)

        await run_and_collect(_orchestrator(generator, saver=saver), story_payload)

        image_b64 = base64.b64encode(png_bytes).decode()
        assert [entry["text"] for entry in saver.saved] == [
            {"title": "The Gate"},
            {"scene1": "A door opens in the forest."},
        ]
        assert [entry["image"] for entry in saver.saved] == [{"cover": image_b64}, {"scene1": image_b64}]
        assert saver.saved[0]["user_id"] == "u1"
        assert saver.saved[0]["genre"] == "fantasy"

    @pytest.mark.asyncio
    async def test_save_failure_never_reaches_client(
        self, story_payload, generator_factory, saver_factory, run_and_collect
    ):
        saver = saver_factory(error=RuntimeError("database is down"))

        events = await run_and_collect(_orchestrator(generator_factory(), saver=saver), story_payload)

        assert _names(events) == ["cover", "scene", "scene", "done"]
        assert len(saver.saved) == 3


class TestClientDisconnect:
    """Tests for a client that stops reading mid-run."""

    @pytest.mark.asyncio
    async def test_run_stops_after_disconnect(self, story_payload, generator_factory):
        class SlowGenerator(generator_factory):
            async def generate(self, prompt, seed, context):
                await asyncio.sleep(0.01)
                return await super().generate(prompt, seed, context)

        generator = SlowGenerator()
        stream = EventStream()

        run = asyncio.create_task(_orchestrator(generator).run(story_payload, stream))
        frames = stream.frames()
        first = await frames.__anext__()
        await frames.aclose()
        await run

        assert first.startswith("event: cover")
        assert len(generator.calls) < 3
        assert stream.closed
