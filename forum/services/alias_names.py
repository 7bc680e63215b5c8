"""Alias name generator – readable pseudonyms from a bounded word namespace."""

from __future__ import annotations

from typing import Any

from forum.utils.ids import parse_positive_id

ANONYMOUS_NAME = "Anonymous"

ADJECTIVES: tuple[str, ...] = (
    "Amber", "Brave", "Calm", "Clever", "Cosmic", "Curious", "Eager", "Gentle",
    "Golden", "Jolly", "Lucky", "Misty", "Noble", "Quiet", "Swift", "Witty",
)

ANIMALS: tuple[str, ...] = (
    "Badger", "Crane", "Dolphin", "Falcon", "Fox", "Heron", "Koala", "Lynx",
    "Otter", "Owl", "Panda", "Penguin", "Raven", "Tiger", "Turtle", "Wolf",
)

# Both lists must stay the same length; the namespace size is its square.
NAMESPACE_SIZE = len(ADJECTIVES) * len(ANIMALS)


def name_for(alias_id: Any) -> str:
    """Return the display name for *alias_id*, e.g. ``"Anonymous Brave Otter"``.

    The adjective cycles fastest, so ids 1..16 share the first animal.
    Names repeat every ``NAMESPACE_SIZE`` ids. Zero, negative and
    non-numeric ids yield plain ``"Anonymous"``.
    """
    parsed = parse_positive_id(alias_id)
    if parsed is None:
        return ANONYMOUS_NAME
    n = parsed - 1
    adjective = ADJECTIVES[n % len(ADJECTIVES)]
    animal = ANIMALS[(n // len(ADJECTIVES)) % len(ANIMALS)]
    return f"{ANONYMOUS_NAME} {adjective} {animal}"
