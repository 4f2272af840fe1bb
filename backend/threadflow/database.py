from __future__ import annotations
"""SQLAlchemy 2.0 async database engine and session management.

Production runs on MySQL 8.0+ with utf8mb4; any async URL works through
``DB_URL`` (the test suite uses SQLite via aiosqlite).
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from threadflow.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """Create an async engine with pool health settings for server databases."""
    kwargs: dict[str, Any] = {"echo": settings.DEBUG}
    if url.startswith("mysql"):
        kwargs.update(
            pool_recycle=3600,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            connect_args={"connect_timeout": 30},
        )
    kwargs.update(overrides)
    return create_async_engine(url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)
async_session_factory = build_session_factory(engine)


class Base(DeclarativeBase):
    """Declarative base; MySQL tables default to utf8mb4 so thread text keeps its emoji."""

    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit when the handler returns, roll back if it raises."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables defined by Base metadata (best-effort).

    Alembic owns the schema in production; this is for local runs and tests.
    """
    import threadflow.models  # noqa: F401

    try:
        async with (bind or engine).begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.warning("Could not run create_all (tables may already exist): %s", e)


async def close_db() -> None:
    """Release pooled connections at shutdown."""
    await engine.dispose()
