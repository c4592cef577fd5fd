"""API configuration constants.

Single source of truth for settings used across the API layer.
"""

import os

from dotenv import find_dotenv, load_dotenv

# Load .env from project root (find_dotenv searches parent directories)
load_dotenv(find_dotenv())


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Database (optional - stories are not persisted when unset)
DATABASE_URL = os.getenv("DATABASE_URL", "")

# CORS: comma-separated origins, "*" when unset
_allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "").strip()
ALLOWED_ORIGINS = (
    [origin.strip() for origin in _allowed_origins_env.split(",") if origin.strip()]
    if _allowed_origins_env
    else ["*"]
)

# Logging: "json" for structured logs, "text" for development
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# Whether a rejected request (bad payload, failed moderation) still ends with a done event
STREAM_DONE_ON_REJECTION = _env_flag("STREAM_DONE_ON_REJECTION", True)

# Cancel in-flight illustration runs after this many seconds on shutdown
RUN_SHUTDOWN_TIMEOUT = float(os.getenv("RUN_SHUTDOWN_TIMEOUT", "5"))
