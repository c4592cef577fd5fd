"""Services for story illustration."""

from .event_stream import EventStream, format_sse, SSE_HEADERS, SSE_MEDIA_TYPE
from .run_manager import RunManager, run_manager
from .story_illustration import StoryIllustrationOrchestrator, StorySaver, parse_story_request

__all__ = [
    "EventStream",
    "format_sse",
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "RunManager",
    "run_manager",
    "StoryIllustrationOrchestrator",
    "StorySaver",
    "parse_story_request",
]
