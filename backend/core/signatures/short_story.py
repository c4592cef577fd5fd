"""
DSPy Signature for writing a short illustrated story from a prompt.

The story is split into scenes so that each scene can get its own
illustration. Scenes are plain prose; image prompts are built later.
"""

import dspy


class ShortStorySignature(dspy.Signature):
    """
    Write a short story to be illustrated scene by scene.

    STRUCTURE:
    - A short, evocative title
    - Exactly `scene_count` scenes, in reading order
    - Each scene: 2-4 sentences, one clear visual moment
    - The final scene resolves the story

    STYLE:
    - Match the requested genre and tone throughout
    - Vocabulary and themes suitable for the audience
    - Concrete, visual details an illustrator can draw
    - No graphic violence, gore, or sexual content
    """

    prompt: str = dspy.InputField(desc="What the story should be about")
    genre: str = dspy.InputField(desc="Story genre, e.g. fantasy, mystery, sci-fi")
    tone: str = dspy.InputField(desc="Emotional tone, e.g. whimsical, mythic, eerie")
    audience: str = dspy.InputField(desc="Intended readers, e.g. children, teen, adult")
    scene_count: int = dspy.InputField(desc="Number of scenes to write")

    title: str = dspy.OutputField(desc="Story title, without quotes")
    scenes: list[str] = dspy.OutputField(
        desc="The scenes in reading order, one string per scene, no numbering or labels"
    )
