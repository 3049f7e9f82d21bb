# prodtrack/models/wip_entry.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from prodtrack.db.base import Base


class WipEntry(Base):
    """
    One cut lot line (article / color / size) waiting for or going through
    sewing. Status and current_operation are free text written by the
    supervisor import and by operator actions.
    """

    __tablename__ = "wip_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    article: Mapped[Optional[str]] = mapped_column(String(64))
    article_name: Mapped[Optional[str]] = mapped_column(String(255))
    color: Mapped[Optional[str]] = mapped_column(String(64))
    size: Mapped[Optional[str]] = mapped_column(String(32))

    pieces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    completed_pieces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))

    status: Mapped[Optional[str]] = mapped_column(String(32), server_default=text("'pending'"))
    current_operation: Mapped[Optional[str]] = mapped_column(String(128))
    machine_type: Mapped[Optional[str]] = mapped_column(String(32))
    priority: Mapped[Optional[str]] = mapped_column(String(16))
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    assigned_operator: Mapped[Optional[str]] = mapped_column(String(64))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    lot_number: Mapped[Optional[str]] = mapped_column(String(64))
    roll_number: Mapped[Optional[str]] = mapped_column(String(64))
    created_by: Mapped[Optional[str]] = mapped_column(String(64))
    note: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_wip_entries_status", "status"),
        Index("ix_wip_entries_created_at", "created_at"),
        Index("ix_wip_entries_assigned", "assigned_operator"),
    )

    def __repr__(self) -> str:
        return (
            f"<WipEntry id={self.id} article={self.article} "
            f"{self.color}/{self.size} status={self.status}>"
        )
