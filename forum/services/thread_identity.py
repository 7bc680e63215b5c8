"""Thread identity allocator – stable per-thread alias ids for anonymous authors.

Each thread keeps two hashes in the field store:

- ``thread:{tid}:anonymous`` holds the ``nextAliasId`` counter
- ``thread:{tid}:anonymous:authors`` maps real uid → alias id

The first post by an author takes the next counter value and records it with
set-if-absent semantics. When two first posts by the same author race, the
loser adopts the winner's alias and its counter value is simply never used.
"""

from __future__ import annotations

import logging
from typing import Any

from forum.config import settings
from forum.services.alias_derivation import derive_alias_id
from forum.services.field_store import FieldStore, StoreUnavailable
from forum.utils.ids import parse_numeric_id, parse_positive_id

logger = logging.getLogger(__name__)

COUNTER_FIELD = "nextAliasId"


def counter_key(tid: int) -> str:
    return f"thread:{tid}:anonymous"


def authors_key(tid: int) -> str:
    return f"thread:{tid}:anonymous:authors"


class ThreadIdentityAllocator:
    """Assigns alias ids per (thread, real author), backed by a field store."""

    def __init__(self, store: FieldStore, modulus: int | None = None) -> None:
        self._store = store
        self._modulus = modulus if modulus is not None else settings.ANON_ALIAS_MODULUS

    def derive(self, real_uid: Any, thread_key: Any) -> int:
        return derive_alias_id(real_uid, thread_key, self._modulus)

    async def assign_alias_id(self, tid: Any, real_uid: Any) -> int:
        """Return the alias id for *real_uid* in thread *tid*, allocating on first use.

        Never raises for bad input or an unavailable store; both cases fall
        back to :func:`derive_alias_id`.
        """
        thread_id = parse_numeric_id(tid)
        uid = parse_numeric_id(real_uid)
        if thread_id is None or uid is None:
            return self.derive(real_uid, "" if tid is None else tid)

        try:
            stored = await self._lookup_or_allocate(thread_id, uid)
        except StoreUnavailable as exc:
            logger.warning(
                "Alias allocation unavailable for thread %d, deriving: %s",
                thread_id,
                exc,
            )
            return self.derive(uid, thread_id)

        alias_id = parse_positive_id(stored)
        if alias_id is None:
            logger.warning(
                "Unexpected alias value %r in thread %d, deriving", stored, thread_id
            )
            return self.derive(uid, thread_id)
        return alias_id

    async def _lookup_or_allocate(self, tid: int, uid: int) -> Any:
        existing = await self._store.get_field(authors_key(tid), str(uid))
        if existing is not None:
            return existing

        candidate = await self._store.increment_field(counter_key(tid), COUNTER_FIELD)
        if await self._store.set_field_if_absent(authors_key(tid), str(uid), candidate):
            logger.debug("Allocated alias %d in thread %d", candidate, tid)
            return candidate

        # Another request recorded an alias first – adopt it.
        winner = await self._store.get_field(authors_key(tid), str(uid))
        logger.debug(
            "Lost alias race in thread %d, counter value %d left unused", tid, candidate
        )
        return winner

    async def purge_thread(self, tid: Any) -> None:
        """Forget every alias allocated in *tid*. Later posts allocate afresh."""
        thread_id = parse_numeric_id(tid)
        if thread_id is None:
            return
        await self._store.delete_keys(counter_key(thread_id), authors_key(thread_id))
        logger.info("Purged anonymous identity map for thread %d", thread_id)
