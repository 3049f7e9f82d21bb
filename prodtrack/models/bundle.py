# prodtrack/models/bundle.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Numeric, String, false, func, text
from sqlalchemy.orm import Mapped, mapped_column

from prodtrack.db.base import Base


class Bundle(Base):
    """
    Persisted bundle (the older direct-bundle collection). WIP-derived work
    items are merged with these at read time; the checklist lives here as JSON.
    """

    __tablename__ = "bundles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    bundle_number: Mapped[Optional[str]] = mapped_column(String(64))

    article: Mapped[Optional[str]] = mapped_column(String(64))
    article_name: Mapped[Optional[str]] = mapped_column(String(255))
    color: Mapped[Optional[str]] = mapped_column(String(64))
    size: Mapped[Optional[str]] = mapped_column(String(32))
    pieces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    completed_pieces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    operation: Mapped[Optional[str]] = mapped_column(String(128))
    machine_type: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default=text("'pending'"))
    priority: Mapped[Optional[str]] = mapped_column(String(16), server_default=text("'medium'"))
    rate: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    assigned_operator: Mapped[Optional[str]] = mapped_column(String(64))
    assigned_by: Mapped[Optional[str]] = mapped_column(String(64))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    checklist: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON)
    checklist_initialized: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_bundles_status", "status"),
        Index("ix_bundles_assigned", "assigned_operator"),
        Index("ix_bundles_machine_status", "machine_type", "status"),
    )

    def __repr__(self) -> str:
        return f"<Bundle id={self.id} op={self.operation} status={self.status}>"
