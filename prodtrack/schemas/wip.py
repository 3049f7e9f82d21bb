# prodtrack/schemas/wip.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from prodtrack.schemas.common import OrmOut, to_utc


class WipEntryCreateIn(BaseModel):
    """Required-field checks happen in WIPService.validate so the error body is uniform."""

    model_config = ConfigDict(extra="ignore")

    article: Optional[str] = None
    article_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    pieces: Optional[int] = None

    status: Optional[str] = None
    current_operation: Optional[str] = None
    machine_type: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[datetime] = None

    lot_number: Optional[str] = None
    roll_number: Optional[str] = None
    created_by: Optional[str] = None
    note: Optional[str] = None


class WipEntryUpdateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    article_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    pieces: Optional[int] = Field(default=None, ge=0)
    completed_pieces: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    current_operation: Optional[str] = None
    machine_type: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[datetime] = None
    lot_number: Optional[str] = None
    roll_number: Optional[str] = None
    note: Optional[str] = None

    # omitted is fine, explicit null is not: both columns are NOT NULL
    @field_validator("pieces", "completed_pieces")
    @classmethod
    def _counts_not_null(cls, v: Optional[int]) -> int:
        if v is None:
            raise ValueError("must be an integer >= 0, not null")
        return v


class WipEntryOut(OrmOut):
    id: str
    article: Optional[str] = None
    article_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    pieces: int = 0
    completed_pieces: int = 0
    status: Optional[str] = None
    current_operation: Optional[str] = None
    machine_type: Optional[str] = None
    priority: Optional[str] = None
    deadline: Optional[datetime] = None
    assigned_operator: Optional[str] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lot_number: Optional[str] = None
    roll_number: Optional[str] = None
    created_by: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("deadline", "assigned_at", "completed_at", "created_at", "updated_at")
    def _ser_dt(self, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class WorkItemOut(OrmOut):
    id: str
    wip_entry_id: str
    article: Optional[str] = None
    article_name: str
    size: Optional[str] = None
    color: Optional[str] = None
    pieces: int = 0
    completed_pieces: int = 0
    status: str
    machine_type: str
    machine_type_detected: bool
    current_operation: str
    priority: str
    deadline: Optional[datetime] = None
    assigned_operator: Optional[str] = None
    assigned_at: Optional[datetime] = None
    lot_number: Optional[str] = None
    roll_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("deadline", "assigned_at", "created_at", "updated_at")
    def _ser_dt(self, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class WipSummaryOut(BaseModel):
    total: int
    total_pieces: int
    completed_pieces: int
    status_counts: Dict[str, int]
    completion_rate: float


class AssignIn(BaseModel):
    operator_id: str = Field(..., min_length=1)
    assigned_by: Optional[str] = None


class WorkItemAssignOut(BaseModel):
    id: str
    wip_entry_id: str
    assigned_operator: str
    assigned_at: datetime


class CompleteIn(BaseModel):
    completed_pieces: int = Field(..., ge=0)


class WorkItemCompleteOut(BaseModel):
    id: str
    completed_pieces: int
    status: str


class WipImportIn(BaseModel):
    """
    Either `rows` (first row = headers) or `csv` text.
    dry_run=true parses and validates without writing.
    """

    rows: Optional[List[List[Any]]] = None
    csv: Optional[str] = None
    format: Literal["auto", "horizontal_matrix", "detailed_breakdown", "batch_summary", "generic"] = "auto"

    lot_number: Optional[str] = None
    article: Optional[str] = None
    article_name: Optional[str] = None
    current_operation: Optional[str] = None
    priority: str = "medium"
    dry_run: bool = False


class WipImportOut(BaseModel):
    parsed: Dict[str, Any]
    validation: Dict[str, Any]
    stats: Dict[str, Any]
    entries: List[WipEntryOut] = []
