"""Keyed field store – hash-style get / set-if-absent / atomic increment.

Two backends implement the same :class:`FieldStore` protocol:

- :class:`RedisFieldStore` keeps each key as a Redis hash
  (``HGET`` / ``HSETNX`` / ``HINCRBY``).
- :class:`SqlFieldStore` keeps fields as rows of the ``object_fields`` table.

Backend failures surface as :class:`StoreUnavailable` so callers can degrade
without knowing which backend is configured.
"""

from __future__ import annotations

import logging
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from forum.config import settings
from forum.db.repositories.field_repo import FieldRepo

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """The field store could not complete an operation."""


class FieldStore(Protocol):
    async def get_field(self, key: str, field: str) -> str | int | None: ...

    async def set_field_if_absent(self, key: str, field: str, value: int) -> bool: ...

    async def increment_field(self, key: str, field: str, amount: int = 1) -> int: ...

    async def delete_keys(self, *keys: str) -> int: ...


class RedisFieldStore:
    """Field store backed by Redis hashes."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get_field(self, key: str, field: str) -> str | None:
        try:
            value = await self._redis.hget(key, field)
        except RedisError as exc:
            raise StoreUnavailable(f"HGET {key} {field}: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set_field_if_absent(self, key: str, field: str, value: int) -> bool:
        try:
            return bool(await self._redis.hsetnx(key, field, value))
        except RedisError as exc:
            raise StoreUnavailable(f"HSETNX {key} {field}: {exc}") from exc

    async def increment_field(self, key: str, field: str, amount: int = 1) -> int:
        try:
            return int(await self._redis.hincrby(key, field, amount))
        except RedisError as exc:
            raise StoreUnavailable(f"HINCRBY {key} {field}: {exc}") from exc

    async def delete_keys(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self._redis.delete(*keys))
        except RedisError as exc:
            raise StoreUnavailable(f"DEL {' '.join(keys)}: {exc}") from exc


class SqlFieldStore:
    """Field store backed by the ``object_fields`` Postgres table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_field(self, key: str, field: str) -> int | None:
        try:
            async with self._session_factory() as session:
                return await FieldRepo(session).get_value(key, field)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"get {key}.{field}: {exc}") from exc

    async def set_field_if_absent(self, key: str, field: str, value: int) -> bool:
        try:
            async with self._session_factory() as session:
                return await FieldRepo(session).insert_if_absent(key, field, value)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"insert {key}.{field}: {exc}") from exc

    async def increment_field(self, key: str, field: str, amount: int = 1) -> int:
        try:
            async with self._session_factory() as session:
                return await FieldRepo(session).increment(key, field, amount)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"increment {key}.{field}: {exc}") from exc

    async def delete_keys(self, *keys: str) -> int:
        try:
            async with self._session_factory() as session:
                return await FieldRepo(session).delete_keys(*keys)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"delete {keys}: {exc}") from exc


def build_field_store(redis: aioredis.Redis) -> FieldStore:
    """Return the field store selected by ``FIELD_STORE_BACKEND``."""
    backend = settings.FIELD_STORE_BACKEND.lower()
    if backend == "postgres":
        from forum.db.engine import async_session

        logger.info("Field store backend: postgres")
        return SqlFieldStore(async_session)
    if backend != "redis":
        raise ValueError(f"Unknown FIELD_STORE_BACKEND: {settings.FIELD_STORE_BACKEND!r}")
    logger.info("Field store backend: redis")
    return RedisFieldStore(redis)
