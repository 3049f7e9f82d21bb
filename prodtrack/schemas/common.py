# prodtrack/schemas/common.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict

UTC = timezone.utc


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes; everything is stored as UTC
    if not isinstance(dt, datetime):
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class OrmOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
