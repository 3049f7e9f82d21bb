# prodtrack/api/routers/health.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.core.config import get_settings
from prodtrack.db.session import get_session

log = logging.getLogger("prodtrack.health")

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
        db = "up"
    except SQLAlchemyError as e:
        log.warning("health check: database down: %s", e)
        db = "down"
    return {"ok": db == "up", "db": db, "env": get_settings().ENV}
