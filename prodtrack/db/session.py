# prodtrack/db/session.py
# async engine + session factory + FastAPI dependency
from __future__ import annotations

import re
from collections.abc import AsyncGenerator
from typing import Any, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from prodtrack.core.config import get_settings


def normalize_async_dsn(url: str) -> str:
    """
    Map sync-style DSNs onto the async drivers we ship with:
      sqlite:///x.db        -> sqlite+aiosqlite:///x.db
      postgres(ql)://...    -> postgresql+psycopg://...
    """
    url = (url or "").strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()

    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + url[len("sqlite:///") :]
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _engine_kwargs(url: str, *, echo: bool) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": echo}
    backend = make_url(url).get_backend_name()
    if backend.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    return kwargs


def create_engine_for(url: str, *, echo: bool = False) -> AsyncEngine:
    dsn = normalize_async_dsn(url)
    return create_async_engine(dsn, **_engine_kwargs(dsn, echo=echo))


_settings = get_settings()
ASYNC_URL = normalize_async_dsn(_settings.DATABASE_URL)

async_engine: AsyncEngine = create_engine_for(ASYNC_URL, echo=_settings.SQL_ECHO)

AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one AsyncSession per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def close_engines() -> None:
    await async_engine.dispose()
