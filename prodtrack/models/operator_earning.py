# prodtrack/models/operator_earning.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, Numeric, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from prodtrack.db.base import Base


class OperatorEarning(Base):
    """
    Piece-rate wage record for one completed piece of work.

    status: pending -> confirmed -> paid, or held by a supervisor.
    """

    __tablename__ = "operator_earnings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    operator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    operator_name: Mapped[Optional[str]] = mapped_column(String(128))
    bundle_number: Mapped[Optional[str]] = mapped_column(String(64))
    article_number: Mapped[Optional[str]] = mapped_column(String(64))
    operation: Mapped[Optional[str]] = mapped_column(String(128))
    machine_type: Mapped[Optional[str]] = mapped_column(String(32))

    pieces: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    rate_per_piece: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    base_earnings: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    damage_deduction: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, server_default=text("0")
    )
    damage_reason: Mapped[Optional[str]] = mapped_column(Text)
    earnings: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'pending'"))
    quality_notes: Mapped[Optional[str]] = mapped_column(Text)
    hold_reason: Mapped[Optional[str]] = mapped_column(Text)

    confirmed_by: Mapped[Optional[str]] = mapped_column(String(64))
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    held_by: Mapped[Optional[str]] = mapped_column(String(64))
    held_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    paid_by: Mapped[Optional[str]] = mapped_column(String(64))
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    payment_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_operator_earnings_operator", "operator_id"),
        Index("ix_operator_earnings_completed_at", "completed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<OperatorEarning id={self.id} operator={self.operator_id} "
            f"earnings={self.earnings} status={self.status}>"
        )
