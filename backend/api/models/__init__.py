"""Pydantic models for API requests and responses."""

from .requests import StoryRequest, StoryContent, CreateDraftRequest
from .responses import StoryResponse, StoryPartResponse, StoryListResponse, HealthResponse
from .enums import StreamEventType, ImageProvider

__all__ = [
    "StoryRequest",
    "StoryContent",
    "CreateDraftRequest",
    "StoryResponse",
    "StoryPartResponse",
    "StoryListResponse",
    "HealthResponse",
    "StreamEventType",
    "ImageProvider",
]
