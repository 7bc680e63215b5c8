"""Posting service – creates and loads posts with anonymous identities applied."""

from __future__ import annotations

import logging
from typing import Any

from forum.db.engine import async_session
from forum.db.repositories.post_repo import PostRepo
from forum.services.anonymous import (
    RenderOptions,
    assign_thread_identity,
    is_anonymous,
    override_user_display,
    statistics_identity,
)
from forum.services.field_store import FieldStore, StoreUnavailable
from forum.services.privileges import can_view_real_identity
from forum.services.thread_identity import ThreadIdentityAllocator

logger = logging.getLogger(__name__)

POSTCOUNT_FIELD = "postcount"


def user_key(uid: Any) -> str:
    return f"user:{uid}"


async def create_post(
    store: FieldStore,
    allocator: ThreadIdentityAllocator,
    *,
    tid: int,
    uid: int,
    content: str,
    anonymous: bool = False,
) -> dict[str, Any]:
    """Store a new post in topic *tid* and return its record.

    Anonymous posts are stored under the guest uid with the author's alias id
    for the topic. The author's post count is credited either way.
    """
    record: dict[str, Any] = {"tid": tid, "uid": uid, "content": content, "is_anonymous": 0}
    if anonymous:
        await assign_thread_identity(record, uid, tid, allocator)

    async with async_session() as session:
        post = await PostRepo(session).create(record)
    record["pid"] = post.pid

    try:
        await store.increment_field(user_key(statistics_identity(record)), POSTCOUNT_FIELD)
    except StoreUnavailable as exc:
        logger.warning("Post count not updated for post %d: %s", post.pid, exc)

    logger.info("Created post %d in topic %d anonymous=%s", post.pid, tid, anonymous)
    return record


def present(
    record: dict[str, Any], viewer_uid: Any, options: RenderOptions | None = None
) -> dict[str, Any]:
    """Mask an anonymous record for *viewer_uid*; privileged viewers keep ``real_uid``."""
    override_user_display(record, options or RenderOptions.from_settings())
    if is_anonymous(record) and not can_view_real_identity(viewer_uid):
        record.pop("real_uid", None)
    return record


async def get_post(
    pid: int, viewer_uid: Any, options: RenderOptions | None = None
) -> dict[str, Any] | None:
    async with async_session() as session:
        post = await PostRepo(session).get(pid)
    if post is None:
        return None
    return present(post.to_record(), viewer_uid, options)


async def list_topic_posts(
    tid: int,
    viewer_uid: Any,
    options: RenderOptions | None = None,
    *,
    offset: int = 0,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """One page of a topic's posts, oldest first, masked for *viewer_uid*."""
    async with async_session() as session:
        posts = await PostRepo(session).list_by_topic(tid, offset=offset, limit=limit)
    return [present(post.to_record(), viewer_uid, options) for post in posts]


async def purge_topic(allocator: ThreadIdentityAllocator, tid: int) -> int:
    """Delete a topic's posts and its alias map. Returns the number of posts removed."""
    async with async_session() as session:
        removed = await PostRepo(session).delete_by_topic(tid)
    await allocator.purge_thread(tid)
    logger.info("Purged topic %d (%d posts)", tid, removed)
    return removed


async def get_post_count(store: FieldStore, uid: int) -> int:
    value = await store.get_field(user_key(uid), POSTCOUNT_FIELD)
    return int(value) if value is not None else 0
