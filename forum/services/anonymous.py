"""Anonymous posting – marks records anonymous and masks their display identity.

Works on plain content records (posts and topics alike). The real author is
kept in ``real_uid`` for statistics and privileged call sites; ``uid`` is set
to the guest id 0 and the embedded ``user`` is replaced on every read.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, MutableMapping

from forum.config import settings
from forum.services.alias_derivation import derive_alias_id
from forum.services.alias_names import ANONYMOUS_NAME, name_for
from forum.services.thread_identity import ThreadIdentityAllocator
from forum.utils.ids import parse_positive_id


GUEST_UID = 0

Record = MutableMapping[str, Any]


@dataclass(frozen=True)
class DisplayIdentity:
    """Presentation-only author identity for an anonymous record."""

    uid: int = GUEST_UID
    username: str = ANONYMOUS_NAME
    userslug: str = ""
    picture: str = ""
    icon_text: str = "A"
    icon_bg_color: str = "#999"
    displayname: str = ANONYMOUS_NAME
    banned: int = 0
    status: str = "offline"
    custom_profile_info: list[Any] = field(default_factory=list)
    selected_groups: list[Any] = field(default_factory=list)
    signature: str = ""

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RenderOptions:
    use_thread_alias: bool = False
    avatar: str = ""
    modulus: int = field(default_factory=lambda: settings.ANON_ALIAS_MODULUS)

    @classmethod
    def from_settings(cls) -> RenderOptions:
        return cls(
            use_thread_alias=settings.ANON_USE_THREAD_ALIAS,
            avatar=settings.ANON_AVATAR_URL,
            modulus=settings.ANON_ALIAS_MODULUS,
        )


def anonymous_user_data(avatar: str = "") -> DisplayIdentity:
    """Return the minimal "Anonymous" identity (a new object on every call)."""
    return DisplayIdentity(picture=avatar)


def is_anonymous(record: Record | None) -> bool:
    """True only when ``is_anonymous`` is 1 (or "1" as text stores return it)."""
    if not record:
        return False
    flag = record.get("is_anonymous")
    if isinstance(flag, bool):
        return False
    return flag == 1 or flag == "1"


def mark_anonymous(record: Record, real_uid: Any) -> Record:
    """Flag *record* anonymous, remember the real author, display as guest."""
    record["is_anonymous"] = 1
    record["real_uid"] = real_uid
    record["uid"] = GUEST_UID
    return record


async def assign_thread_identity(
    record: Record,
    real_uid: Any,
    tid: Any,
    allocator: ThreadIdentityAllocator | None = None,
) -> Record:
    """Mark *record* anonymous and stamp the author's alias id for thread *tid*."""
    mark_anonymous(record, real_uid)
    record["tid"] = tid
    if allocator is not None:
        alias_id = await allocator.assign_alias_id(tid, real_uid)
    else:
        alias_id = derive_alias_id(real_uid, "" if tid is None else tid)
    record["anonymous_alias_id"] = alias_id
    return record


def _resolve_alias_id(record: Record, modulus: int) -> int:
    stamped = parse_positive_id(record.get("anonymous_alias_id"))
    if stamped is not None:
        return stamped
    real_uid = record.get("real_uid")
    if real_uid is None or real_uid == "":
        return 0
    tid = record.get("tid")
    return derive_alias_id(real_uid, "" if tid is None else tid, modulus)


def render_display_identity(
    record: Record | None, options: RenderOptions | None = None
) -> Any:
    """Return the identity to show for *record*.

    Non-anonymous records pass their existing ``user`` through untouched.
    Anonymous records get a fresh :class:`DisplayIdentity` that carries no
    data from the real author's profile.
    """
    if not is_anonymous(record):
        return record.get("user") if record else None

    options = options or RenderOptions()
    if not options.use_thread_alias:
        return anonymous_user_data(options.avatar)

    name = name_for(_resolve_alias_id(record, options.modulus))
    return DisplayIdentity(username=name, displayname=name, picture=options.avatar)


def override_user_display(record: Record, options: RenderOptions | None = None) -> None:
    """Replace the embedded ``user`` of an anonymous record with its masked identity."""
    if is_anonymous(record):
        record["user"] = render_display_identity(record, options).as_dict()


def statistics_identity(record: Record) -> Any:
    """The uid that karma and activity counters should credit."""
    return record.get("real_uid") if is_anonymous(record) else record.get("uid")


def real_author_identity(record: Record, fallback: Any = None) -> Any:
    """Best available real author id for privileged and federation call sites."""
    return record.get("real_uid") or fallback
