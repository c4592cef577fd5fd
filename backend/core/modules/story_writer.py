"""
DSPy Module for writing story drafts.

A draft is a title plus a handful of scenes. The client edits the draft
and then submits it for illustration.
"""

import re
from typing import Optional

import dspy

from backend.config import STORY_CONSTANTS, get_inference_lm, llm_retry
from ..signatures.short_story import ShortStorySignature
from ..types import StoryDraft

# "Scene 3:" / "3." style prefixes some models add despite instructions
_SCENE_LABEL = re.compile(r"^\s*(?:scene\s*\d+\s*[:.\-]|\d+\s*[:.)\-])\s*", re.IGNORECASE)


class StoryWriter(dspy.Module):
    """
    Write a titled story split into scenes.

    Args:
        lm: Optional LM; defaults to the configured inference LM
        scene_count: Default number of scenes per draft
    """

    def __init__(self, lm: Optional[dspy.LM] = None, scene_count: int = STORY_CONSTANTS["draft_scene_count"]):
        super().__init__()
        self.lm = lm
        self.scene_count = scene_count
        self.write = dspy.Predict(ShortStorySignature)

    @staticmethod
    def _clean_scene(text: str) -> str:
        return _SCENE_LABEL.sub("", text).strip()

    def forward(
        self,
        prompt: str,
        genre: str,
        tone: str,
        audience: str,
        scene_count: Optional[int] = None,
    ) -> StoryDraft:
        count = scene_count or self.scene_count
        result = self.write(
            prompt=prompt,
            genre=genre,
            tone=tone,
            audience=audience,
            scene_count=count,
        )

        scenes = [
            self._clean_scene(scene)
            for scene in (result.scenes or [])
            if isinstance(scene, str) and scene.strip()
        ]
        scenes = [scene for scene in scenes if scene]
        if not scenes:
            raise ValueError("Story writer returned no scenes")

        title = (result.title or "").strip().strip('"').strip() or "Untitled Story"
        return StoryDraft(title=title, scenes=scenes[:count])

    @llm_retry
    def draft(self, **kwargs) -> StoryDraft:
        """Run the writer with this module's LM, or the configured inference LM."""
        lm = self.lm if self.lm is not None else get_inference_lm()
        with dspy.context(lm=lm):
            return self(**kwargs)
