"""Database engine and session factory creation."""

import os
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


def expand_sqlite_path(url: str) -> str:
    """Expand ~ in SQLite URLs and ensure the parent directory exists."""
    if not url.startswith("sqlite") or ":memory:" in url:
        return url

    prefix_end = url.index("///") + 3
    prefix = url[:prefix_end]
    abs_path = os.path.abspath(os.path.expanduser(url[prefix_end:]))
    Path(abs_path).parent.mkdir(parents=True, exist_ok=True)
    return f"{prefix}{abs_path}"


def create_db_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with SQLite or PostgreSQL pool settings."""
    url = expand_sqlite_path(url)

    if url.startswith("sqlite"):
        engine_kwargs: dict[str, Any] = {
            "echo": echo,
            # aiosqlite runs the connection on a worker thread
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        engine_kwargs = {
            "echo": echo,
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        }

    return create_async_engine(url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def dialect_name(bind: AsyncEngine | AsyncSession) -> str:
    if isinstance(bind, AsyncSession):
        return bind.get_bind().dialect.name
    return bind.dialect.name
