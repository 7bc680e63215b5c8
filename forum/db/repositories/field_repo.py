"""Field repository – integer hash fields in the object_fields table."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.object_field import ObjectField


class FieldRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._s = session

    async def get_value(self, key: str, field: str) -> int | None:
        """Return the value of *field* under *key*, or None if absent."""
        result = await self._s.execute(
            select(ObjectField.value).where(
                ObjectField.key == key, ObjectField.field == field
            )
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(self, key: str, field: str, value: int) -> bool:
        """Insert a field only if it does not exist yet. Returns True if inserted."""
        stmt = (
            pg_insert(ObjectField)
            .values(key=key, field=field, value=value)
            .on_conflict_do_nothing(index_elements=["key", "field"])
            .returning(ObjectField.key)
        )
        result = await self._s.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        await self._s.commit()
        return inserted

    async def increment(self, key: str, field: str, amount: int = 1) -> int:
        """Atomically add *amount* to a field (created at *amount* if absent)."""
        stmt = (
            pg_insert(ObjectField)
            .values(key=key, field=field, value=amount)
            .on_conflict_do_update(
                index_elements=["key", "field"],
                set_={"value": ObjectField.value + amount},
            )
            .returning(ObjectField.value)
        )
        result = await self._s.execute(stmt)
        value = result.scalar_one()
        await self._s.commit()
        return value

    async def delete_keys(self, *keys: str) -> int:
        """Delete every field stored under *keys*. Returns the row count."""
        if not keys:
            return 0
        result = await self._s.execute(
            delete(ObjectField).where(ObjectField.key.in_(keys))
        )
        await self._s.commit()
        return result.rowcount or 0
