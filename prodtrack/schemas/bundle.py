# prodtrack/schemas/bundle.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from prodtrack.schemas.common import to_utc


class ChecklistItemOut(BaseModel):
    id: str
    name: str
    name_np: Optional[str] = None
    estimated_time: int = 0
    completed: bool = False
    completed_at: Optional[str] = None
    completed_by: Optional[str] = None
    notes: str = ""


class BundleCreateIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    bundle_number: Optional[str] = None
    article: Optional[str] = None
    article_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    pieces: int = Field(0, ge=0)
    operation: Optional[str] = None
    machine_type: Optional[str] = None
    priority: Optional[str] = None
    rate: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None


class BundleOut(BaseModel):
    """
    Both bundle-table rows and WIP work items reshaped as bundles.

    Keys outside the declared fields (article_number, quantity,
    completion_percentage, ...) are passed through.
    """

    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: str
    bundle_number: Optional[str] = None
    article: Optional[str] = None
    article_name: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    pieces: Optional[int] = None
    completed_pieces: int = 0
    operation: Optional[str] = None
    current_operation: Optional[str] = None
    machine_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    rate: Optional[float] = None
    deadline: Optional[datetime] = None
    assigned_operator: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    wip_entry_id: Optional[str] = None
    checklist: Optional[List[ChecklistItemOut]] = None
    checklist_initialized: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("deadline", "assigned_at", "completed_at", "created_at", "updated_at")
    def _ser_dt(self, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v)


class BundleStatusIn(BaseModel):
    status: str = Field(..., min_length=1)
    completed_pieces: Optional[int] = Field(default=None, ge=0)
    extra: Optional[Dict[str, Any]] = None


class ChecklistUpdateIn(BaseModel):
    completed: bool
    user_id: str = "current_user"
