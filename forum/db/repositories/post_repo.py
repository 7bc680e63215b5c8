"""Post repository – create, load and purge posts."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.post import Post


class PostRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def create(self, record: dict[str, Any]) -> Post:
        """Insert a post from a content record. Returns the stored row."""
        post = Post(
            tid=record["tid"],
            uid=record["uid"],
            content=record.get("content", ""),
            is_anonymous=1 if record.get("is_anonymous") == 1 else 0,
            real_uid=record.get("real_uid"),
            anonymous_alias_id=record.get("anonymous_alias_id"),
        )
        self._s.add(post)
        await self._s.commit()
        return post

    async def get(self, pid: int) -> Post | None:
        """Get a single post by ID."""
        result = await self._s.execute(select(Post).where(Post.pid == pid))
        return result.scalar_one_or_none()

    async def list_by_topic(self, tid: int, offset: int = 0, limit: int = 50) -> list[Post]:
        """Posts of a topic, oldest first."""
        result = await self._s.execute(
            select(Post)
            .where(Post.tid == tid)
            .order_by(Post.pid)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_by_topic(self, tid: int) -> int:
        """Hard-delete every post of a topic. Returns the number removed."""
        result = await self._s.execute(delete(Post).where(Post.tid == tid))
        await self._s.commit()
        return result.rowcount or 0
