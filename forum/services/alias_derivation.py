"""Deterministic alias ids for when the thread identity map can't be used."""

from __future__ import annotations

from typing import Any

from forum.config import settings
from forum.utils.text import sha256_hex

_PREFIX_LEN = 8  # hex chars → 32 bits


def derive_alias_id(real_uid: Any, thread_key: Any, modulus: int | None = None) -> int:
    """Return an alias id in ``[1, modulus]`` derived from author and thread.

    Same inputs always give the same id, with no persisted state involved.
    A missing thread key hashes as the empty string.
    """
    if modulus is None:
        modulus = settings.ANON_ALIAS_MODULUS
    if modulus <= 0:
        raise ValueError(f"modulus must be positive, got {modulus}")

    uid_text = "" if real_uid is None else str(real_uid)
    thread_text = "" if thread_key is None else str(thread_key)
    digest = sha256_hex(f"{uid_text}:{thread_text}")
    return int(digest[:_PREFIX_LEN], 16) % modulus + 1
