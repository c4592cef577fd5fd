"""Pydantic models for API responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .enums import ImageProvider


class StoryPartResponse(BaseModel):
    """One stored part of a story: the cover or a scene."""

    key: str
    text: Optional[str] = None
    image: Optional[str] = None  # base64-encoded image
    updated_at: Optional[datetime] = None


class StoryResponse(BaseModel):
    """A stored story with every part saved so far."""

    user_id: str
    story_id: str
    title: Optional[str] = None
    genre: str
    tone: str
    audience: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    cover: Optional[StoryPartResponse] = None
    scenes: list[StoryPartResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Service health."""

    status: str = "healthy"
    image_provider: ImageProvider
    persistence: bool


class StoryListResponse(BaseModel):
    """Paginated list of a user's stories (cover only, no scenes)."""

    stories: list[StoryResponse]
    total: int
    limit: int
    offset: int
