"""
Story constants for the Illustrated Story backend.

Shape limits for incoming stories and the per-story seed range.
"""

# Story constants
STORY_CONSTANTS = {
    "scene_key_prefix": "scene",  # Scenes are keyed scene1, scene2, ...
    "min_scene_length": 10,  # Characters, after trimming whitespace
    "draft_scene_count": 5,  # Scenes produced by the story writer
    "max_draft_scene_count": 12,
    "seed_max": 999_999_999,  # Seeds are drawn from [0, seed_max]
}
