"""Database engine for posts and the Postgres field store.

Pool sizing comes from ``DB_POOL_SIZE`` / ``DB_MAX_OVERFLOW``. Sessions keep
loaded rows usable after commit so services can turn them into records.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from forum.config import Settings, settings


def build_engine(cfg: Settings = settings) -> AsyncEngine:
    return create_async_engine(
        cfg.DATABASE_URL,
        echo=cfg.DB_ECHO,
        pool_size=cfg.DB_POOL_SIZE,
        max_overflow=cfg.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session = build_session_factory(engine)
