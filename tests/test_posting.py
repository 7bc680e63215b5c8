"""Tests for the posting service, post repository and privilege checks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from forum.config import settings
from forum.db.repositories.post_repo import PostRepo
from forum.models.post import Post
from forum.services.alias_names import name_for
from forum.services.anonymous import RenderOptions
from forum.services.posting import (
    create_post,
    get_post,
    get_post_count,
    list_topic_posts,
    present,
    purge_topic,
)
from forum.services.privileges import can_view_real_identity

ALIASED = RenderOptions(use_thread_alias=True)


def _patch_session():
    patcher = patch("forum.services.posting.async_session")
    mock_session_maker = patcher.start()
    mock_session = AsyncMock()
    mock_session_maker.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session_maker.return_value.__aexit__ = AsyncMock(return_value=False)
    return patcher


def _stored(pid: int, record: dict) -> Post:
    return Post(
        pid=pid,
        tid=record["tid"],
        uid=record["uid"],
        content=record.get("content", ""),
        is_anonymous=record.get("is_anonymous", 0),
        real_uid=record.get("real_uid"),
        anonymous_alias_id=record.get("anonymous_alias_id"),
    )


@pytest.fixture
def session_patch():
    patcher = _patch_session()
    yield
    patcher.stop()


@pytest.fixture
def admins(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USER_IDS", "1, 2")


# ── privileges ───────────────────────────────────────────────────────


class TestCanViewRealIdentity:
    def test_admin(self, admins):
        assert can_view_real_identity(1) is True
        assert can_view_real_identity("2") is True

    def test_regular_user(self, admins):
        assert can_view_real_identity(42) is False

    def test_anonymous_viewer(self, admins):
        assert can_view_real_identity(None) is False
        assert can_view_real_identity("") is False
        assert can_view_real_identity(0) is False

    def test_no_admins_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_USER_IDS", "")
        assert can_view_real_identity(1) is False


# ── present ──────────────────────────────────────────────────────────


class TestPresent:
    def test_strips_real_uid_for_regular_viewer(self, admins):
        record = {"pid": 1, "tid": 7, "uid": 0, "is_anonymous": 1, "real_uid": 42,
                  "anonymous_alias_id": 1}
        result = present(record, 99, ALIASED)
        assert "real_uid" not in result
        assert result["user"]["username"] == name_for(1)

    def test_keeps_real_uid_for_admin(self, admins):
        record = {"pid": 1, "tid": 7, "uid": 0, "is_anonymous": 1, "real_uid": 42,
                  "anonymous_alias_id": 1}
        result = present(record, 1, ALIASED)
        assert result["real_uid"] == 42
        assert result["user"]["uid"] == 0

    def test_regular_post_untouched(self, admins):
        record = {"pid": 1, "tid": 7, "uid": 42, "is_anonymous": 0}
        assert present(record, 99, ALIASED) == {"pid": 1, "tid": 7, "uid": 42, "is_anonymous": 0}


# ── create_post ──────────────────────────────────────────────────────


class TestCreatePost:
    @pytest.mark.asyncio
    async def test_anonymous_post_allocates_alias(self, session_patch, field_store, allocator):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.create = AsyncMock(
                side_effect=lambda record: _stored(10, record)
            )
            record = await create_post(
                field_store, allocator, tid=7, uid=42, content="hi", anonymous=True
            )

        assert record["pid"] == 10
        assert record["uid"] == 0
        assert record["real_uid"] == 42
        assert record["is_anonymous"] == 1
        assert record["anonymous_alias_id"] == 1

    @pytest.mark.asyncio
    async def test_repeat_anonymous_posts_share_alias(self, session_patch, field_store, allocator):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.create = AsyncMock(
                side_effect=lambda record: _stored(10, record)
            )
            first = await create_post(field_store, allocator, tid=7, uid=42, content="a", anonymous=True)
            other = await create_post(field_store, allocator, tid=7, uid=99, content="b", anonymous=True)
            again = await create_post(field_store, allocator, tid=7, uid=42, content="c", anonymous=True)

        assert first["anonymous_alias_id"] == again["anonymous_alias_id"] == 1
        assert other["anonymous_alias_id"] == 2

    @pytest.mark.asyncio
    async def test_regular_post(self, session_patch, field_store, allocator, fake_redis):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.create = AsyncMock(
                side_effect=lambda record: _stored(11, record)
            )
            record = await create_post(field_store, allocator, tid=7, uid=42, content="hi")

        assert record["uid"] == 42
        assert record["is_anonymous"] == 0
        assert "real_uid" not in record
        assert "thread:7:anonymous" not in fake_redis._hashes

    @pytest.mark.asyncio
    async def test_post_count_credits_real_author(self, session_patch, field_store, allocator):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.create = AsyncMock(
                side_effect=lambda record: _stored(12, record)
            )
            await create_post(field_store, allocator, tid=7, uid=42, content="a", anonymous=True)
            await create_post(field_store, allocator, tid=7, uid=42, content="b")

        assert await get_post_count(field_store, 42) == 2
        assert await get_post_count(field_store, 0) == 0

    @pytest.mark.asyncio
    async def test_store_outage_does_not_block_posting(
        self, session_patch, field_store, allocator, fake_redis
    ):
        fake_redis.hget.side_effect = RedisConnectionError("down")
        fake_redis.hincrby.side_effect = RedisConnectionError("down")
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.create = AsyncMock(
                side_effect=lambda record: _stored(13, record)
            )
            record = await create_post(
                field_store, allocator, tid=7, uid=42, content="a", anonymous=True
            )

        assert 1 <= record["anonymous_alias_id"] <= 4096
        assert record["pid"] == 13


# ── get_post / list_topic_posts / purge_topic ────────────────────────


class TestLoadPosts:
    @pytest.mark.asyncio
    async def test_get_post_masks_author(self, session_patch, admins):
        stored = _stored(5, {"tid": 7, "uid": 0, "is_anonymous": 1, "real_uid": 42,
                             "anonymous_alias_id": 3})
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.get = AsyncMock(return_value=stored)
            post = await get_post(5, 99, ALIASED)

        assert post["user"]["username"] == name_for(3)
        assert "real_uid" not in post

    @pytest.mark.asyncio
    async def test_get_post_missing(self, session_patch):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.get = AsyncMock(return_value=None)
            assert await get_post(5, 99) is None

    @pytest.mark.asyncio
    async def test_list_topic_posts_for_admin(self, session_patch, admins):
        posts = [
            _stored(1, {"tid": 7, "uid": 0, "is_anonymous": 1, "real_uid": 42,
                        "anonymous_alias_id": 1}),
            _stored(2, {"tid": 7, "uid": 99, "is_anonymous": 0}),
        ]
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.list_by_topic = AsyncMock(return_value=posts)
            result = await list_topic_posts(7, 1, ALIASED)

        assert [p["pid"] for p in result] == [1, 2]
        assert result[0]["real_uid"] == 42
        assert result[0]["user"]["username"] == name_for(1)
        assert "user" not in result[1]

    @pytest.mark.asyncio
    async def test_list_topic_posts_pages(self, session_patch):
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.list_by_topic = AsyncMock(return_value=[])
            assert await list_topic_posts(7, 99, offset=50, limit=25) == []
            MockRepo.return_value.list_by_topic.assert_awaited_once_with(7, offset=50, limit=25)

    @pytest.mark.asyncio
    async def test_purge_topic(self, session_patch, allocator, fake_redis):
        await allocator.assign_alias_id(7, 42)
        with patch("forum.services.posting.PostRepo") as MockRepo:
            MockRepo.return_value.delete_by_topic = AsyncMock(return_value=3)
            removed = await purge_topic(allocator, 7)

        assert removed == 3
        assert "thread:7:anonymous:authors" not in fake_redis._hashes


# ── PostRepo ─────────────────────────────────────────────────────────


class TestPostRepo:
    @pytest.mark.asyncio
    async def test_create_persists_anonymous_fields(self):
        session = MagicMock()
        session.commit = AsyncMock()
        repo = PostRepo(session)

        post = await repo.create({"tid": 7, "uid": 0, "content": "x", "is_anonymous": 1,
                                  "real_uid": 42, "anonymous_alias_id": 2})

        session.add.assert_called_once_with(post)
        session.commit.assert_awaited_once()
        assert post.is_anonymous == 1
        assert post.real_uid == 42
        assert post.anonymous_alias_id == 2

    @pytest.mark.asyncio
    async def test_create_regular_post(self):
        session = MagicMock()
        session.commit = AsyncMock()
        post = await PostRepo(session).create({"tid": 7, "uid": 42, "content": "x"})
        assert post.is_anonymous == 0
        assert post.real_uid is None

    @pytest.mark.asyncio
    async def test_list_by_topic_applies_page(self):
        session = AsyncMock()
        session.execute = AsyncMock(return_value=MagicMock())
        await PostRepo(session).list_by_topic(7, offset=50, limit=25)
        stmt = session.execute.await_args.args[0]
        assert stmt._offset == 50
        assert stmt._limit == 25

    @pytest.mark.asyncio
    async def test_delete_by_topic(self):
        session = AsyncMock()
        result = MagicMock()
        result.rowcount = 4
        session.execute = AsyncMock(return_value=result)
        assert await PostRepo(session).delete_by_topic(7) == 4

    def test_to_record_omits_unset_fields(self):
        post = Post(pid=1, tid=7, uid=42, content="x", is_anonymous=0)
        assert post.to_record() == {
            "pid": 1, "tid": 7, "uid": 42, "content": "x", "is_anonymous": 0,
        }
