"""Story endpoints: draft writing, streaming illustration, and stored story lookup."""

import asyncio
import logging
import uuid

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from ..dependencies import Moderator, Orchestrator, Repository, Writer
from ..models.requests import CreateDraftRequest
from ..models.responses import StoryListResponse, StoryResponse
from ..services.event_stream import SSE_HEADERS, SSE_MEDIA_TYPE, EventStream
from ..services.run_manager import run_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/drafts",
    summary="Write a story draft",
    description="Write a titled story split into scenes (scene1..sceneN) from a prompt.",
    responses={
        400: {"description": "Prompt failed content moderation"},
        502: {"description": "The language model did not produce a usable story"},
    },
)
async def create_draft(request: CreateDraftRequest, writer: Writer, moderator: Moderator):
    """Write a story draft for the client to edit before illustration."""
    if not await moderator.is_clean(request.prompt):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt contains harmful or inappropriate content.",
        )

    try:
        draft = await asyncio.to_thread(
            writer.draft,
            prompt=request.prompt,
            genre=request.genre,
            tone=request.tone,
            audience=request.audience,
            scene_count=request.scene_count,
        )
    except Exception as e:
        logger.error(f"Story draft failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate story.",
        )

    return draft.to_payload()


@router.post(
    "/illustrations/stream",
    summary="Illustrate a story (streaming)",
    description=(
        "Generate a cover and one image per scene, streamed as server-sent events: "
        "`cover`, then `scene` per scene in order, `error` for any item that failed, "
        "and a final `done`."
    ),
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_illustrations(request: Request, orchestrator: Orchestrator):
    """Start an illustration run and stream its events."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    stream = EventStream()
    run_manager.start(str(uuid.uuid4()), orchestrator.run(payload, stream))

    return StreamingResponse(stream.frames(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)


@router.get(
    "/{user_id}",
    response_model=StoryListResponse,
    summary="List a user's stories",
    description="Get a paginated list of a user's stored stories, newest first, with covers only.",
)
async def list_stories(
    user_id: str,
    repo: Repository,
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of stories to return"),
    offset: int = Query(default=0, ge=0, description="Number of stories to skip"),
):
    """List a user's stories with pagination."""
    stories, total = await repo.list_stories(user_id, limit=limit, offset=offset)

    return StoryListResponse(
        stories=stories,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{user_id}/{story_id}",
    response_model=StoryResponse,
    summary="Get a stored story",
    description="Get the title, cover, and scenes saved for a story.",
)
async def get_story(user_id: str, story_id: str, repo: Repository):
    """Get a stored story."""
    story = await repo.get_story(user_id, story_id)

    if not story:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Story {story_id} not found",
        )

    return story
