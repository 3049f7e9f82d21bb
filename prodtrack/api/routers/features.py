# prodtrack/api/routers/features.py
from __future__ import annotations

from fastapi import APIRouter

from prodtrack.config import flags
from prodtrack.schemas.checklist import FeatureConfigOut

router = APIRouter(prefix="/config", tags=["config"])


@router.get("/wip-features", response_model=FeatureConfigOut)
async def wip_features():
    """Enabled WIP wizard steps (in order), procedure templates and assignment methods."""
    assignment = flags.get_feature_config("assignment") or {}
    return {
        "steps": [{"key": k, **flags.thaw(v)} for k, v in flags.get_enabled_steps()],
        "templates": flags.thaw(flags.get_enabled_templates()),
        "assignment": {
            k: flags.thaw(v) for k, v in assignment.items() if flags.is_feature_enabled(f"assignment.{k}")
        },
    }
