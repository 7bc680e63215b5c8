"""Text utilities – hashing."""

from __future__ import annotations

import hashlib


def sha256_hex(text: str) -> str:
    """Return the full SHA-256 hex digest of *text* (UTF-8 encoded)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
