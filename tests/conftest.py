"""Shared fixtures for forum tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from forum.services.field_store import RedisFieldStore
from forum.services.thread_identity import ThreadIdentityAllocator


@pytest.fixture
def fake_redis():
    """In-memory mock that behaves like redis.asyncio.Redis for the subset we use.

    Each hash command yields to the event loop once before touching state, so
    concurrent callers interleave the way they would against a real server.
    """

    hashes: dict[str, dict[str, str]] = {}

    redis = AsyncMock()

    async def _hget(key, field):
        await asyncio.sleep(0)
        return hashes.get(key, {}).get(str(field))

    async def _hsetnx(key, field, value):
        await asyncio.sleep(0)
        h = hashes.setdefault(key, {})
        if str(field) in h:
            return 0
        h[str(field)] = str(value)
        return 1

    async def _hincrby(key, field, amount=1):
        await asyncio.sleep(0)
        h = hashes.setdefault(key, {})
        new_val = int(h.get(str(field), "0")) + amount
        h[str(field)] = str(new_val)
        return new_val

    async def _delete(*keys):
        count = 0
        for k in keys:
            if k in hashes:
                del hashes[k]
                count += 1
        return count

    async def _ping():
        return True

    redis.hget = AsyncMock(side_effect=_hget)
    redis.hsetnx = AsyncMock(side_effect=_hsetnx)
    redis.hincrby = AsyncMock(side_effect=_hincrby)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.ping = AsyncMock(side_effect=_ping)

    redis._hashes = hashes  # Expose for assertions
    return redis


@pytest.fixture
def field_store(fake_redis):
    return RedisFieldStore(fake_redis)


@pytest.fixture
def allocator(field_store):
    return ThreadIdentityAllocator(field_store, modulus=4096)
