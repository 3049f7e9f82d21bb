# prodtrack/schemas/earnings.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from prodtrack.schemas.common import OrmOut, to_utc


class DamageInfoIn(BaseModel):
    has_damage: bool = False
    damage_type: Optional[str] = None  # broken_stitch / wrong_measurement / fabric_damage / missing_operation
    severity: Optional[str] = None  # major / minor
    pieces: Optional[int] = Field(default=None, ge=0)
    total_pieces: Optional[int] = Field(default=None, ge=0)
    operator_fault: bool = False
    reason: Optional[str] = None


class WorkCompletionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operator_id: str = Field(..., min_length=1)
    operator_name: Optional[str] = None
    bundle_number: Optional[str] = None
    article_number: Optional[str] = None
    operation: Optional[str] = None
    machine_type: Optional[str] = None
    pieces: int = Field(..., ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    quality_notes: Optional[str] = None
    damage_info: Optional[DamageInfoIn] = None


class EarningsRecordIn(WorkCompletionIn):
    rate_per_piece: float = Field(..., ge=0)


class RateIn(BaseModel):
    operation: str
    machine_type: str
    rate_per_piece: float = Field(..., ge=0)


class AutoRecordIn(BaseModel):
    work: WorkCompletionIn
    rates: List[RateIn]


class ConfirmIn(BaseModel):
    supervisor_id: str = Field(..., min_length=1)


class HoldIn(BaseModel):
    supervisor_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class PayIn(BaseModel):
    admin_id: str = Field(..., min_length=1)
    payment_details: Optional[Dict[str, Any]] = None


class EarningOut(OrmOut):
    id: str
    operator_id: str
    operator_name: Optional[str] = None
    bundle_number: Optional[str] = None
    article_number: Optional[str] = None
    operation: Optional[str] = None
    machine_type: Optional[str] = None
    pieces: int
    rate_per_piece: float
    base_earnings: float
    damage_deduction: float = 0
    damage_reason: Optional[str] = None
    earnings: float
    status: str
    quality_notes: Optional[str] = None
    hold_reason: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    held_by: Optional[str] = None
    held_at: Optional[datetime] = None
    paid_by: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_details: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer(
        "confirmed_at", "held_at", "paid_at", "started_at", "completed_at", "created_at", "updated_at"
    )
    def _ser_dt(self, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class EarningsSummaryOut(BaseModel):
    total_earnings: float
    pending_earnings: float
    confirmed_earnings: float
    paid_earnings: float
    held_earnings: float
    total_pieces: int
    work_count: int
    damage_deductions: float
    earnings: List[EarningOut]


class OperatorEarningsOut(EarningsSummaryOut):
    operator_id: str
    operator_name: Optional[str] = None
