#!/usr/bin/env python3
"""
CLI for illustrating a story without running the API server.

Reads a request body (userId, storyId, genre, tone, audience, story) from a
JSON file and prints the event stream to stdout, exactly as the streaming
endpoint would send it.

Usage:
    python cli/illustrate_story.py story.json
    python cli/illustrate_story.py story.json --provider replicate
    python cli/illustrate_story.py story.json --save-dir output/  # also write PNG files
"""

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.api.logging import configure_logging
from backend.api.models.enums import ImageProvider
from backend.api.services.event_stream import EventStream
from backend.api.services.story_illustration import StoryIllustrationOrchestrator
from backend.config import IMAGE_PROVIDER
from backend.core.modules.content_moderator import build_moderator
from backend.core.modules.image_generator import build_image_generator
from backend.core.modules.image_retry import RetryingImageGenerator, RetryPolicy


def _save_frame(frame: str, save_dir: Path) -> None:
    """Write the image carried by a cover/scene frame to save_dir."""
    lines = frame.strip().split("\n")
    event = lines[0].removeprefix("event: ")
    if event not in ("cover", "scene"):
        return
    data = json.loads(lines[1].removeprefix("data: "))
    name = "cover" if event == "cover" else data["key"]
    path = save_dir / f"{name}.png"
    path.write_bytes(base64.b64decode(data["image"]))
    print(f"Saved {path}", file=sys.stderr)


async def illustrate(payload: dict, provider: str, max_retries: int, save_dir: Path = None) -> None:
    policy = RetryPolicy.from_config()
    policy.max_retries = max_retries
    orchestrator = StoryIllustrationOrchestrator(
        images=RetryingImageGenerator(build_image_generator(provider), policy),
        moderator=build_moderator(),
    )

    stream = EventStream()
    run = asyncio.create_task(orchestrator.run(payload, stream))
    async for frame in stream.frames():
        if save_dir is not None:
            _save_frame(frame, save_dir)
        else:
            sys.stdout.write(frame)
            sys.stdout.flush()
    await run


def main():
    parser = argparse.ArgumentParser(
        description="Illustrate a story and print the event stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "story_file",
        type=Path,
        help="JSON file with userId, storyId, genre, tone, audience and story",
    )

    parser.add_argument(
        "--provider",
        choices=[provider.value for provider in ImageProvider],
        default=IMAGE_PROVIDER,
        help=f"Image provider (default: {IMAGE_PROVIDER})",
    )

    parser.add_argument(
        "--max-retries",
        type=int,
        default=2,
        help="Retries per image after the first attempt (default: 2)",
    )

    parser.add_argument(
        "--save-dir",
        type=Path,
        default=None,
        help="Write images to this directory instead of printing frames",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logs",
    )

    args = parser.parse_args()

    configure_logging(json_format=False, level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        payload = json.loads(args.story_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error reading {args.story_file}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.save_dir is not None:
        args.save_dir.mkdir(parents=True, exist_ok=True)

    try:
        asyncio.run(illustrate(payload, args.provider, args.max_retries, args.save_dir))
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
