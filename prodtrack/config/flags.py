"""
prodtrack feature configuration
-------------------------------
Two layers:

1) env switches (read once at import):
     export ENABLE_WIP_IMPORT=false
     export ENABLE_EARNINGS=false

2) the WIP wizard / assignment-method configuration (WIP_FEATURE_CONFIG).
   It is frozen; the only way to change it at runtime is
   reload_feature_config(), which is refused outside ENV=dev.
"""

from __future__ import annotations

import logging
import os
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from prodtrack.core.config import get_settings

log = logging.getLogger("prodtrack.flags")


def _bool(name: str, default: bool = False) -> bool:
    """Read a boolean env var."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


# === HTTP surface switches ===
ENABLE_WIP_IMPORT = _bool("ENABLE_WIP_IMPORT", True)
ENABLE_EARNINGS = _bool("ENABLE_EARNINGS", True)


def _template(en: str, np: str, desc_en: str, desc_np: str, enabled: bool = True) -> Dict[str, Any]:
    return {
        "enabled": enabled,
        "name": {"en": en, "np": np},
        "description": {"en": desc_en, "np": desc_np},
    }


_DEFAULT_FEATURE_CONFIG: Dict[str, Any] = {
    "steps": {
        "basicInfo": {
            "enabled": True,
            "order": 1,
            "required": True,
            "fields": {
                "lotNumber": {"enabled": True, "required": True},
                "nepaliDate": {"enabled": True, "required": True},
                "fabricName": {"enabled": True, "required": True},
                "fabricWidth": {"enabled": True, "required": False},
                "fabricStore": {"enabled": True, "required": False},
                "rollCount": {"enabled": True, "required": True},
            },
        },
        "procedureTemplate": {
            "enabled": True,
            "order": 2,
            "required": True,
            "templates": {
                "shirt-basic": _template(
                    "Basic Shirt Procedure",
                    "आधारभूत शर्ट प्रक्रिया",
                    "Basic shirt construction with buttonholes, cuffs, collar, and hem operations.",
                    "बटन होल, कफ, कलर, र हेम सहितको आधारभूत शर्ट निर्माण प्रक्रिया।",
                ),
                "trouser-standard": _template(
                    "Standard Trouser Procedure",
                    "मानक ट्राउजर प्रक्रिया",
                    "Standard trouser construction with pocket, fly, waistband, and hem operations.",
                    "पकेट, फ्लाई, वेस्टब्यान्ड, र हेम सहितको मानक ट्राउजर निर्माण।",
                ),
                "dress-formal": _template(
                    "Formal Dress Procedure",
                    "औपचारिक ड्रेस प्रक्रिया",
                    "Formal dress with zipper, lining, and additional finishing operations.",
                    "जिपर, लाइनिंग, र अतिरिक्त फिनिशिंग सहितको औपचारिक ड्रेस।",
                ),
                "jacket-casual": _template(
                    "Casual Jacket Procedure",
                    "आकस्मिक ज्याकेट प्रक्रिया",
                    "Casual jacket with pockets, collar, and simple finishing.",
                    "पकेट, कलर, र साधारण फिनिशिंग सहितको आकस्मिक ज्याकेट।",
                    enabled=False,
                ),
                "tshirt-basic": _template(
                    "Basic T-Shirt Procedure",
                    "आधारभूत टी-शर्ट प्रक्रिया",
                    "Simple T-shirt construction with overlock and hem only.",
                    "केवल ओभरलक र हेम सहितको सरल टी-शर्ट निर्माण।",
                ),
                "custom": _template(
                    "Custom Procedure",
                    "कस्टम प्रक्रिया",
                    "Customizable procedure that can be modified as per your requirements.",
                    "तपाईंको आवश्यकता अनुसार कस्टमाइज गर्न मिल्ने प्रक्रिया।",
                ),
            },
        },
        "articlesConfig": {
            "enabled": True,
            "order": 3,
            "required": True,
            "features": {
                "multipleArticles": {"enabled": True, "maxArticles": 5},
                "sizeConfiguration": {
                    "enabled": True,
                    "separators": [":", ";", ",", "|", " "],
                    "singleSizeSupport": True,
                },
                "ratioConfiguration": {"enabled": True},
            },
        },
        "rollsData": {
            "enabled": True,
            "order": 4,
            "required": True,
            "features": {
                "dynamicRollCount": {"enabled": True},
                "autoCalculation": {"enabled": True},
                "colorTracking": {"enabled": True},
                "weightTracking": {"enabled": False},
            },
        },
        "preview": {
            "enabled": True,
            "order": 5,
            "required": True,
            "features": {
                "productionFormula": {"enabled": True},
                "detailedBreakdown": {"enabled": True},
                "exportOptions": {"enabled": False},
            },
        },
    },
    "validation": {
        "strictMode": False,
        "allowEmptyFields": True,
        "autoSave": True,
        "confirmationDialogs": True,
    },
    "integrations": {
        "database": {"enabled": True},
        "notifications": {"enabled": True},
        "analytics": {"enabled": False},
    },
    "assignment": {
        "bundleCard": {"enabled": True, "difficulty": "beginner"},
        "dragDrop": {"enabled": True, "difficulty": "intermediate"},
        "userProfile": {"enabled": True, "difficulty": "intermediate"},
        "wipBundle": {"enabled": True, "difficulty": "advanced"},
        "kanban": {"enabled": True, "difficulty": "advanced"},
        "quickAction": {"enabled": True, "difficulty": "beginner"},
        "batch": {"enabled": True, "difficulty": "expert"},
    },
}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in overrides.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


WIP_FEATURE_CONFIG: Mapping[str, Any] = _freeze(_DEFAULT_FEATURE_CONFIG)


def get_feature_config(feature_path: str) -> Optional[Any]:
    """Walk a dotted path ('steps.procedureTemplate'); None when any segment is missing."""
    current: Any = WIP_FEATURE_CONFIG
    for key in feature_path.split("."):
        if not isinstance(current, Mapping) or not current.get(key):
            return None
        current = current[key]
    return current


def is_feature_enabled(feature_path: str) -> bool:
    node = get_feature_config(feature_path)
    return isinstance(node, Mapping) and node.get("enabled") is True


def get_enabled_steps() -> List[Tuple[str, Mapping[str, Any]]]:
    steps = WIP_FEATURE_CONFIG["steps"]
    enabled = [(k, v) for k, v in steps.items() if v.get("enabled")]
    return sorted(enabled, key=lambda kv: kv[1]["order"])


def get_enabled_templates() -> Dict[str, Mapping[str, Any]]:
    templates = WIP_FEATURE_CONFIG["steps"]["procedureTemplate"]["templates"]
    return {k: v for k, v in templates.items() if v.get("enabled")}


def reload_feature_config(overrides: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
    """
    Rebuild WIP_FEATURE_CONFIG from the defaults plus `overrides`.

    Only allowed with ENV=dev (admin / dev tooling). reload_feature_config()
    without overrides restores the defaults.
    """
    global WIP_FEATURE_CONFIG

    env = get_settings().ENV
    if env != "dev":
        raise RuntimeError(f"feature config reload refused: ENV={env!r} (dev only)")

    merged = _deep_merge(thaw(_freeze(_DEFAULT_FEATURE_CONFIG)), overrides or {})
    WIP_FEATURE_CONFIG = _freeze(merged)
    log.info("WIP feature config reloaded (overrides=%s)", sorted((overrides or {}).keys()))
    return WIP_FEATURE_CONFIG
