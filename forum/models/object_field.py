"""ObjectField model – integer hash fields for the Postgres field store."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from forum.db.base import Base


class ObjectField(Base):
    __tablename__ = "object_fields"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    field: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<ObjectField {self.key}.{self.field}={self.value}>"
