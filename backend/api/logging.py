"""Structured logging infrastructure for the API layer.

Provides JSON-formatted logging for production and human-readable
logging for development, plus a StoryLogger helper for illustration run events.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Extra fields copied from log records into JSON output
_EXTRA_FIELDS = ("story_id", "scene_key", "stage", "duration", "attempt", "error_type", "seed", "failures")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create console handler
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


class StoryLogger:
    """Logger for illustration run events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("story_illustration")

    def run_started(self, story_id: str, scene_count: int, seed: int) -> None:
        self.logger.info(
            f"Illustration run started ({scene_count} scenes)",
            extra={"story_id": story_id, "stage": "started", "seed": seed},
        )

    def run_rejected(self, story_id: str, reason: str, stage: str) -> None:
        self.logger.warning(
            f"Illustration run rejected: {reason}",
            extra={"story_id": story_id, "stage": stage},
        )

    def artifact_completed(self, story_id: str, scene_key: str, duration: float = None) -> None:
        extra = {"story_id": story_id, "scene_key": scene_key, "stage": "artifact"}
        if duration:
            extra["duration"] = round(duration, 2)
        self.logger.info(f"Artifact completed: {scene_key}", extra=extra)

    def artifact_failed(self, story_id: str, scene_key: str, error: Exception) -> None:
        self.logger.error(
            f"Artifact failed: {scene_key}: {error}",
            extra={
                "story_id": story_id,
                "scene_key": scene_key,
                "stage": "artifact",
                "error_type": type(error).__name__,
            },
        )

    def persistence_failed(self, story_id: str, scene_key: str, error: Exception) -> None:
        self.logger.warning(
            f"Failed to save {scene_key}: {error}",
            extra={
                "story_id": story_id,
                "scene_key": scene_key,
                "stage": "persistence",
                "error_type": type(error).__name__,
            },
        )

    def client_disconnected(self, story_id: str, scene_key: str) -> None:
        self.logger.info(
            f"Client disconnected before {scene_key}, stopping run",
            extra={"story_id": story_id, "scene_key": scene_key, "stage": "disconnected"},
        )

    def run_completed(self, story_id: str, duration: float, failures: int) -> None:
        self.logger.info(
            "Illustration run completed",
            extra={
                "story_id": story_id,
                "stage": "completed",
                "duration": round(duration, 2),
                "failures": failures,
            },
        )


# Global story logger instance
story_logger = StoryLogger()
