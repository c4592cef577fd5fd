"""Unit tests for the StoryWriter DSPy module."""

from unittest.mock import MagicMock, patch

import dspy
import pytest

from backend.core.modules.story_writer import StoryWriter
from backend.core.signatures.short_story import ShortStorySignature


def _writer_with_result(title, scenes, scene_count=5):
    writer = StoryWriter(lm=MagicMock(), scene_count=scene_count)
    writer.write = MagicMock(return_value=dspy.Prediction(title=title, scenes=scenes))
    return writer


class TestStoryWriter:
    """Tests for StoryWriter.forward."""

    def test_returns_draft(self):
        writer = _writer_with_result("The Gate", ["A door opens.", "The hero steps through."])

        draft = writer(prompt="a door", genre="fantasy", tone="mythic", audience="teen")

        assert draft.title == "The Gate"
        assert draft.scenes == ["A door opens.", "The hero steps through."]
        assert writer.write.call_args.kwargs["scene_count"] == 5

    def test_strips_scene_labels(self):
        writer = _writer_with_result("T", ["Scene 1: A door opens.", "2. The hero steps through.", "3) End."])

        draft = writer(prompt="a door", genre="fantasy", tone="mythic", audience="teen")

        assert draft.scenes == ["A door opens.", "The hero steps through.", "End."]

    def test_truncates_to_scene_count(self):
        writer = _writer_with_result("T", [f"Scene text {i}" for i in range(8)])

        draft = writer(prompt="a door", genre="fantasy", tone="mythic", audience="teen", scene_count=3)

        assert len(draft.scenes) == 3
        assert writer.write.call_args.kwargs["scene_count"] == 3

    def test_blank_title_gets_default(self):
        writer = _writer_with_result('  ""  ', ["A door opens."])

        draft = writer(prompt="a door", genre="fantasy", tone="mythic", audience="teen")

        assert draft.title == "Untitled Story"

    def test_no_scenes_raises(self):
        writer = _writer_with_result("T", ["", "   "])

        with pytest.raises(ValueError, match="no scenes"):
            writer(prompt="a door", genre="fantasy", tone="mythic", audience="teen")

    def test_draft_uses_configured_lm_when_none_given(self):
        writer = StoryWriter()
        writer.write = MagicMock(return_value=dspy.Prediction(title="T", scenes=["A door opens."]))

        with patch("backend.core.modules.story_writer.get_inference_lm") as mock_get_lm, \
             patch("backend.core.modules.story_writer.dspy.context") as mock_context:
            draft = writer.draft(prompt="a door", genre="fantasy", tone="mythic", audience="teen")

        mock_context.assert_called_once_with(lm=mock_get_lm.return_value)
        assert draft.scenes == ["A door opens."]


class TestShortStorySignature:
    """Tests for the ShortStorySignature fields."""

    def test_fields(self):
        assert set(ShortStorySignature.input_fields) == {"prompt", "genre", "tone", "audience", "scene_count"}
        assert set(ShortStorySignature.output_fields) == {"title", "scenes"}
