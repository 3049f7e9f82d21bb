# prodtrack/services/checklist.py
"""
Per-bundle work checklists.

Pure functions over bundle dicts (the shape produced by
bundle_service.bundle_to_dict); nothing here touches the database.
Every function that "changes" a bundle returns a new dict and leaves the
argument untouched.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from prodtrack.config.production import (
    AVAILABLE_WORK_STATUSES,
    CHECKLIST_TEMPLATES,
    GENERIC_CHECKLIST,
    ChecklistStep,
)

UTC = timezone.utc

Bundle = Mapping[str, Any]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _step_dict(step: ChecklistStep) -> Dict[str, Any]:
    return {
        "id": step.id,
        "name": step.name,
        "name_np": step.name_np,
        "estimated_time": step.estimated_time,
    }


def get_work_checklist(operation: Optional[str]) -> List[Dict[str, Any]]:
    """Template steps for an operation name; unknown names get the generic 3-step list."""
    steps = CHECKLIST_TEMPLATES.get(operation or "", GENERIC_CHECKLIST)
    return [_step_dict(s) for s in steps]


def initialize_bundle_checklist(bundle: Bundle) -> Dict[str, Any]:
    if bundle.get("checklist"):
        return dict(bundle)

    operation = bundle.get("operation") or bundle.get("current_operation")
    checklist = [
        {**item, "completed": False, "completed_at": None, "completed_by": None, "notes": ""}
        for item in get_work_checklist(operation)
    ]
    return {**bundle, "checklist": checklist, "checklist_initialized": True}


def get_bundle_completion_percentage(bundle: Bundle) -> int:
    checklist = bundle.get("checklist") or []
    if not checklist:
        return 0
    done = sum(1 for item in checklist if item.get("completed"))
    return round_half_up(done / len(checklist) * 100)


def should_show_in_available_work(bundle: Bundle) -> bool:
    checklist = bundle.get("checklist") or []
    if not checklist:
        return True
    return any(not item.get("completed") for item in checklist)


def filter_available_work(bundles: Iterable[Bundle]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for b in bundles:
        b = initialize_bundle_checklist(b)
        if b.get("status") in AVAILABLE_WORK_STATUSES and should_show_in_available_work(b):
            out.append(b)
    return out


def get_bundle_status(bundle: Bundle) -> str:
    if not bundle.get("checklist"):
        return "pending"

    pct = get_bundle_completion_percentage(bundle)
    if pct == 100:
        return "completed"
    if pct > 0:
        return "in-progress"
    return "pending"


def update_checklist_item(
    bundle: Bundle,
    item_id: str,
    completed: bool,
    user_id: str = "current_user",
) -> Dict[str, Any]:
    """
    Mark one checklist item (un)completed and recompute the bundle status.

    Un-completing clears completed_at / completed_by. An unknown item_id
    leaves the checklist as it was; the status is still recomputed.
    """
    now = _now_iso()
    checklist = []
    for item in bundle.get("checklist") or []:
        if item.get("id") == item_id:
            item = {
                **item,
                "completed": completed,
                "completed_at": now if completed else None,
                "completed_by": user_id if completed else None,
            }
        checklist.append(item)

    updated = {**bundle, "checklist": checklist}
    updated["status"] = get_bundle_status(updated)
    updated["last_updated"] = now
    return updated


def get_remaining_work(bundle: Bundle) -> List[Dict[str, Any]]:
    return [item for item in bundle.get("checklist") or [] if not item.get("completed")]


def get_completed_work(bundle: Bundle) -> List[Dict[str, Any]]:
    return [item for item in bundle.get("checklist") or [] if item.get("completed")]


def get_remaining_time(bundle: Bundle) -> int:
    """Minutes of estimated work left on the bundle."""
    return sum(int(item.get("estimated_time") or 0) for item in get_remaining_work(bundle))
