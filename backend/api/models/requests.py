"""Pydantic models for API requests."""

from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from backend.config import STORY_CONSTANTS


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_require_text)]


class StoryContent(BaseModel):
    """The story being illustrated: a title plus scene1..sceneN texts."""

    model_config = ConfigDict(extra="allow")

    title: NonBlankStr

    def as_mapping(self) -> dict[str, Any]:
        """Title and every extra key (the scenes) as a plain dict."""
        return {"title": self.title, **(self.model_extra or {})}


class StoryRequest(BaseModel):
    """Request body for streaming story illustrations."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: NonBlankStr = Field(..., alias="userId")
    story_id: NonBlankStr = Field(..., alias="storyId")
    genre: NonBlankStr
    tone: NonBlankStr
    audience: NonBlankStr
    story: StoryContent


class CreateDraftRequest(BaseModel):
    """Request body for writing a story draft."""

    prompt: str = Field(
        ...,
        min_length=3,
        max_length=2000,
        description="What the story should be about",
        examples=["a lighthouse keeper who befriends a storm"],
    )
    genre: str = Field(..., min_length=1, max_length=100, examples=["fantasy"])
    tone: str = Field(..., min_length=1, max_length=100, examples=["whimsical"])
    audience: str = Field(..., min_length=1, max_length=100, examples=["children"])
    scene_count: Optional[int] = Field(
        default=None,
        ge=1,
        le=STORY_CONSTANTS["max_draft_scene_count"],
        description="Number of scenes (default 5)",
    )
