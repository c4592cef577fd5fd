"""FastAPI application for the Illustrated Story backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import IMAGE_PROVIDER, get_inference_model_name
from backend.core.modules.content_moderator import build_moderator
from backend.core.modules.image_generator import build_image_generator
from backend.core.modules.image_retry import RetryingImageGenerator, RetryPolicy
from backend.core.modules.story_writer import StoryWriter

from .config import ALLOWED_ORIGINS, DATABASE_URL, LOG_FORMAT, LOG_LEVEL, RUN_SHUTDOWN_TIMEOUT
from .logging import configure_logging
from .models.responses import HealthResponse
from .routes import stories
from .services.run_manager import run_manager
from .services.story_illustration import StoryIllustrationOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging(json_format=LOG_FORMAT == "json", level=logging.getLevelName(LOG_LEVEL))

    # Startup: Initialize database (only if DATABASE_URL is configured)
    app.state.repository = None
    if DATABASE_URL:
        from .database.db import init_db
        from .database.repository import StoryRepository

        pool = await init_db()
        app.state.repository = StoryRepository(pool)
        logger.info("Database initialized")
    else:
        logger.warning("DATABASE_URL not set - stories will not be persisted")

    # One provider client per process, connected on first use
    images = RetryingImageGenerator(build_image_generator(), RetryPolicy.from_config())
    app.state.moderator = build_moderator()
    app.state.story_writer = StoryWriter()
    app.state.orchestrator = StoryIllustrationOrchestrator(
        images=images,
        moderator=app.state.moderator,
        saver=app.state.repository,
    )
    logger.info(f"Image provider: {IMAGE_PROVIDER}, story writer model: {get_inference_model_name()}")

    yield

    # Shutdown: finish or cancel in-flight runs, then close the database
    await run_manager.shutdown(timeout=RUN_SHUTDOWN_TIMEOUT)
    if app.state.repository is not None:
        from .database.db import close_db

        await close_db()


app = FastAPI(
    title="Illustrated Story API",
    description="""
Turn a short story into an illustrated one.

## Workflow
1. POST `/stories/drafts` with a prompt, genre, tone and audience to get a draft
   (`title`, `scene1`..`sceneN`)
2. Edit the draft, then POST it to `/stories/illustrations/stream`
3. Read the event stream: `cover`, one `scene` per scene, `error` for items that
   could not be illustrated, and a final `done`
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(stories.router, prefix="/stories", tags=["Stories"])


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        image_provider=IMAGE_PROVIDER,
        persistence=bool(DATABASE_URL),
    )
