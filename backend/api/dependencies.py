"""FastAPI dependency injection for services and repositories.

Long-lived objects (image client, moderator, orchestrator, repository) are
built once in the application lifespan and stored on app.state.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from backend.core.modules.content_moderator import ContentModerator
from backend.core.modules.story_writer import StoryWriter

from .database.repository import StoryRepository
from .services.story_illustration import StoryIllustrationOrchestrator


def get_orchestrator(request: Request) -> StoryIllustrationOrchestrator:
    """Get the shared illustration orchestrator."""
    return request.app.state.orchestrator


def get_moderator(request: Request) -> ContentModerator:
    """Get the shared content moderator."""
    return request.app.state.moderator


def get_story_writer(request: Request) -> StoryWriter:
    """Get the shared story writer."""
    return request.app.state.story_writer


def get_optional_repository(request: Request) -> Optional[StoryRepository]:
    """Get the repository, or None when persistence is not configured."""
    return getattr(request.app.state, "repository", None)


def get_repository(
    repo: Annotated[Optional[StoryRepository], Depends(get_optional_repository)]
) -> StoryRepository:
    """Get the repository.

    Raises:
        HTTPException: 503 if persistence is not configured
    """
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Story storage is not configured",
        )
    return repo


# Type aliases for cleaner route signatures
Orchestrator = Annotated[StoryIllustrationOrchestrator, Depends(get_orchestrator)]
Moderator = Annotated[ContentModerator, Depends(get_moderator)]
Writer = Annotated[StoryWriter, Depends(get_story_writer)]
Repository = Annotated[StoryRepository, Depends(get_repository)]
