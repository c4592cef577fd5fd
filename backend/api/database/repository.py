"""Repository for story persistence using raw asyncpg SQL."""

from typing import Optional

import asyncpg

from backend.core.errors import PersistenceError
from backend.core.modules.scene_sequencer import scene_number
from backend.core.types import COVER_KEY

from ..models.responses import StoryPartResponse, StoryResponse


class StoryRepository:
    """Repository for story persistence operations."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def save_story(
        self,
        user_id: str,
        story_id: str,
        text_fragment: dict[str, str],
        image_fragment: dict[str, str],
        genre: str,
        tone: str,
        audience: str,
    ) -> None:
        """
        Save one generated part of a story.

        Args:
            text_fragment: {"title": ...} for the cover, {sceneN: text} for a scene
            image_fragment: {"cover": base64} or {sceneN: base64}

        Raises:
            PersistenceError: If the write fails
        """
        if len(image_fragment) != 1:
            raise PersistenceError("image_fragment must hold exactly one part")
        part_key, image = next(iter(image_fragment.items()))
        title = text_fragment.get("title")
        text = title if part_key == COVER_KEY else text_fragment.get(part_key)

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        """
                        INSERT INTO stories (user_id, story_id, title, genre, tone, audience)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        ON CONFLICT (user_id, story_id) DO UPDATE
                        SET title = COALESCE(EXCLUDED.title, stories.title),
                            genre = EXCLUDED.genre,
                            tone = EXCLUDED.tone,
                            audience = EXCLUDED.audience,
                            updated_at = now()
                        """,
                        user_id,
                        story_id,
                        title,
                        genre,
                        tone,
                        audience,
                    )
                    await conn.execute(
                        """
                        INSERT INTO story_parts (user_id, story_id, part_key, text, image_b64)
                        VALUES ($1, $2, $3, $4, $5)
                        ON CONFLICT (user_id, story_id, part_key) DO UPDATE
                        SET text = EXCLUDED.text,
                            image_b64 = EXCLUDED.image_b64,
                            updated_at = now()
                        """,
                        user_id,
                        story_id,
                        part_key,
                        text,
                        image,
                    )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise PersistenceError(f"Failed to save {part_key} for story {story_id}: {e}") from e

    async def get_story(self, user_id: str, story_id: str) -> Optional[StoryResponse]:
        """Get a stored story with its cover and scenes, or None if it does not exist."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM stories WHERE user_id = $1 AND story_id = $2",
                user_id,
                story_id,
            )
            if row is None:
                return None

            part_rows = await conn.fetch(
                """
                SELECT part_key, text, image_b64, updated_at
                FROM story_parts
                WHERE user_id = $1 AND story_id = $2
                """,
                user_id,
                story_id,
            )

        cover = None
        scenes = []
        for part in part_rows:
            response = StoryPartResponse(
                key=part["part_key"],
                text=part["text"],
                image=part["image_b64"],
                updated_at=part["updated_at"],
            )
            if response.key == COVER_KEY:
                cover = response
            else:
                scenes.append(response)
        scenes.sort(key=lambda p: scene_number(p.key))

        return self._row_to_response(row, cover=cover, scenes=scenes)

    async def list_stories(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[StoryResponse], int]:
        """List a user's stories, newest first, with their covers but without scenes."""
        async with self.pool.acquire() as conn:
            total = await conn.fetchval(
                "SELECT COUNT(*) FROM stories WHERE user_id = $1",
                user_id,
            )
            rows = await conn.fetch(
                """
                SELECT s.*,
                       p.text AS cover_text,
                       p.image_b64 AS cover_image,
                       p.updated_at AS cover_updated_at
                FROM stories s
                LEFT JOIN story_parts p
                    ON p.user_id = s.user_id
                    AND p.story_id = s.story_id
                    AND p.part_key = $2
                WHERE s.user_id = $1
                ORDER BY s.created_at DESC
                LIMIT $3 OFFSET $4
                """,
                user_id,
                COVER_KEY,
                limit,
                offset,
            )

        stories = []
        for row in rows:
            cover = None
            if row["cover_image"] is not None:
                cover = StoryPartResponse(
                    key=COVER_KEY,
                    text=row["cover_text"],
                    image=row["cover_image"],
                    updated_at=row["cover_updated_at"],
                )
            stories.append(self._row_to_response(row, cover=cover))

        return stories, total or 0

    @staticmethod
    def _row_to_response(
        row,
        cover: Optional[StoryPartResponse] = None,
        scenes: Optional[list[StoryPartResponse]] = None,
    ) -> StoryResponse:
        return StoryResponse(
            user_id=row["user_id"],
            story_id=row["story_id"],
            title=row["title"],
            genre=row["genre"],
            tone=row["tone"],
            audience=row["audience"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            cover=cover,
            scenes=scenes or [],
        )
