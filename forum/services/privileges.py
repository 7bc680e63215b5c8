"""Privilege checks for disclosing real authors of anonymous content."""

from __future__ import annotations

from typing import Any

from forum.config import settings
from forum.utils.ids import parse_positive_id


def can_view_real_identity(viewer_uid: Any) -> bool:
    """Only configured administrators may see who wrote anonymous content."""
    uid = parse_positive_id(viewer_uid)
    return uid is not None and uid in settings.admin_ids
