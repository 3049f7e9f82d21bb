# prodtrack/api/routers/checklists.py
from __future__ import annotations

from fastapi import APIRouter

from prodtrack.config.production import CHECKLIST_TEMPLATES
from prodtrack.schemas.checklist import ChecklistTemplateOut
from prodtrack.services.checklist import get_work_checklist

router = APIRouter(prefix="/checklists", tags=["checklists"])


@router.get("/{operation}", response_model=ChecklistTemplateOut)
async def get_checklist(operation: str):
    """Template steps for an operation; unknown operations get the generic list."""
    steps = get_work_checklist(operation)
    return {
        "operation": operation,
        "generic": operation not in CHECKLIST_TEMPLATES,
        "total_time": sum(s["estimated_time"] for s in steps),
        "steps": steps,
    }
