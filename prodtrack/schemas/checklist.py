# prodtrack/schemas/checklist.py
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel


class ChecklistStepOut(BaseModel):
    id: str
    name: str
    name_np: str
    estimated_time: int


class ChecklistTemplateOut(BaseModel):
    operation: str
    generic: bool
    total_time: int
    steps: List[ChecklistStepOut]


class FeatureConfigOut(BaseModel):
    steps: List[Dict[str, Any]]
    templates: Dict[str, Any]
    assignment: Dict[str, Any]
