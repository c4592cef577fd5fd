"""PostgreSQL connection pool management using asyncpg."""

from typing import Optional

import asyncpg

from ..config import DATABASE_URL

# Global pool (set during API startup)
_pool: Optional[asyncpg.Pool] = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS stories (
    user_id     TEXT NOT NULL,
    story_id    TEXT NOT NULL,
    title       TEXT,
    genre       TEXT NOT NULL,
    tone        TEXT NOT NULL,
    audience    TEXT NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (user_id, story_id)
);

CREATE TABLE IF NOT EXISTS story_parts (
    user_id     TEXT NOT NULL,
    story_id    TEXT NOT NULL,
    part_key    TEXT NOT NULL,
    text        TEXT,
    image_b64   TEXT,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (user_id, story_id, part_key),
    FOREIGN KEY (user_id, story_id) REFERENCES stories (user_id, story_id) ON DELETE CASCADE
);
"""


def _to_asyncpg_dsn(url: str) -> str:
    # Accept SQLAlchemy-style URLs (postgresql+asyncpg://...)
    return url.replace("+asyncpg", "")


async def init_db(database_url: str = DATABASE_URL) -> asyncpg.Pool:
    """Create the connection pool and make sure the tables exist."""
    global _pool
    if not database_url:
        raise RuntimeError(
            "Database not configured. Set DATABASE_URL environment variable "
            "to a PostgreSQL connection string."
        )

    pool = await asyncpg.create_pool(_to_asyncpg_dsn(database_url), min_size=1, max_size=5)
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)
    _pool = pool
    return pool


async def close_db() -> None:
    """Close the pool. Called during API shutdown."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
