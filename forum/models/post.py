"""Post model – forum content records, including anonymous authorship fields."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Index, Integer, SmallInteger, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from forum.db.base import Base


class Post(Base):
    __tablename__ = "posts"

    pid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    tid: Mapped[int] = mapped_column(BigInteger, nullable=False)
    uid: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Anonymous posting – written once at creation, never updated
    is_anonymous: Mapped[int] = mapped_column(SmallInteger, default=0, nullable=False)
    real_uid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    anonymous_alias_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_posts_tid", "tid"),
    )

    def to_record(self) -> dict[str, Any]:
        """Return a plain content record for the identity façade."""
        record: dict[str, Any] = {
            "pid": self.pid,
            "tid": self.tid,
            "uid": self.uid,
            "content": self.content,
            "is_anonymous": self.is_anonymous,
        }
        if self.real_uid is not None:
            record["real_uid"] = self.real_uid
        if self.anonymous_alias_id is not None:
            record["anonymous_alias_id"] = self.anonymous_alias_id
        return record

    def __repr__(self) -> str:
        return f"<Post {self.pid} tid={self.tid} anonymous={self.is_anonymous}>"
