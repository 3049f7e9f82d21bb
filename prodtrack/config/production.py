"""
Production reference tables
---------------------------
Static shop-floor data shared by the WIP, bundle and checklist services:

- per-operation checklist templates (plus the generic fallback)
- operation keyword -> machine type lookup
- machine type aliases
- status sets used for availability filtering
- priority ranks

Everything here is built once at import and is read-only (tuples, frozen
dataclasses, MappingProxyType). Changing a table means changing this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple


@dataclass(frozen=True)
class ChecklistStep:
    id: str
    name: str
    name_np: str
    estimated_time: int  # minutes


# =========================================================
# Checklist templates (round-neck t-shirt line)
# =========================================================
CHECKLIST_TEMPLATES: Mapping[str, Tuple[ChecklistStep, ...]] = MappingProxyType(
    {
        "Shoulder Join": (
            ChecklistStep("cut_check", "Cutting Quality Check", "काटन गुणस्तर जाँच", 5),
            ChecklistStep("alignment", "Shoulder Alignment", "काँध मिलान", 8),
            ChecklistStep("seam_stitch", "Seam Stitching", "सिलाई सिम", 12),
            ChecklistStep("overlock_finish", "Overlock Finishing", "ओभरलक फिनिशिङ", 10),
            ChecklistStep("quality_check", "Final Quality Check", "अन्तिम गुणस्तर जाँच", 5),
        ),
        "Neck Join": (
            ChecklistStep("neck_prep", "Neck Preparation", "नेक तयारी", 8),
            ChecklistStep("binding_cut", "Binding Cutting", "बाइन्डिङ काटना", 6),
            ChecklistStep("neck_attach", "Neck Attachment", "नेक जोडना", 15),
            ChecklistStep("stretch_check", "Stretch Test", "स्ट्रेच जाँच", 5),
            ChecklistStep("finish_trim", "Finish & Trim", "फिनिश र ट्रिम", 6),
        ),
        "Bottom Fold": (
            ChecklistStep("measure_hem", "Measure Hem Width", "हेम चौडाई नाप", 4),
            ChecklistStep("fold_press", "Fold & Press", "फोल्ड र प्रेस", 8),
            ChecklistStep("flatlock_stitch", "Flatlock Stitching", "फ्ल्यालक सिलाई", 12),
            ChecklistStep("hem_quality", "Hem Quality Check", "हेम गुणस्तर जाँच", 6),
        ),
        "Sleeve Fold": (
            ChecklistStep("sleeve_prep", "Sleeve Preparation", "स्लिभ तयारी", 6),
            ChecklistStep("fold_mark", "Fold Marking", "फोल्ड मार्किङ", 5),
            ChecklistStep("sleeve_stitch", "Sleeve Stitching", "स्लिभ सिलाई", 15),
            ChecklistStep("sleeve_finish", "Sleeve Finishing", "स्लिभ फिनिशिङ", 9),
        ),
        "Neck Band": (
            ChecklistStep("band_cut", "Band Cutting", "ब्यान्ड काटना", 8),
            ChecklistStep("band_prep", "Band Preparation", "ब्यान्ड तयारी", 7),
            ChecklistStep("single_stitch", "Single Needle Stitch", "एकल सुई सिलाई", 20),
            ChecklistStep("band_attach", "Band Attachment", "ब्यान्ड जोडना", 10),
            ChecklistStep("final_press", "Final Pressing", "अन्तिम प्रेसिङ", 5),
        ),
    }
)

GENERIC_CHECKLIST: Tuple[ChecklistStep, ...] = (
    ChecklistStep("general_prep", "Preparation", "तयारी", 10),
    ChecklistStep("general_work", "Main Work", "मुख्य काम", 20),
    ChecklistStep("general_check", "Quality Check", "गुणस्तर जाँच", 5),
)


# =========================================================
# Machine types
# =========================================================
UNKNOWN_MACHINE_TYPE = "unknown"

# Checked in order against the lower-cased operation name; first hit wins.
OPERATION_MACHINE_TABLE: Tuple[Tuple[str, str], ...] = (
    ("overlock", "overlock"),
    ("shoulder", "overlock"),
    ("side", "overlock"),
    ("flatlock", "flatlock"),
    ("hem", "flatlock"),
    ("collar", "singleNeedle"),
    ("button", "singleNeedle"),
)

MACHINE_TYPE_ALIASES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "single-needle": ("single-needle", "singleneedle", "single_needle", "sn", "single needle"),
        "overlock": ("overlock", "over-lock", "over_lock", "ol", "over lock"),
        "flatlock": ("flatlock", "flat-lock", "flat_lock", "fl", "flat lock"),
        "kansai": ("kansai", "kansai-special", "kansai_special", "ks"),
        "buttonhole": ("buttonhole", "button-hole", "button_hole", "bh", "button hole"),
        "double-needle": ("double-needle", "doubleneedle", "double_needle", "dn", "double needle"),
        "cutting": ("cutting", "cutter", "cut", "knife"),
        "pressing": ("pressing", "press", "iron", "steam"),
        "inspection": ("inspection", "quality", "qc", "check"),
        "manual": ("manual", "hand", "finishing", "trim"),
        "multi-skill": ("multi-skill", "multiskill", "multi_skill", "all", "universal"),
    }
)

MULTI_SKILL = "multi-skill"


# =========================================================
# Status sets
# =========================================================
# bundle listing: WIP work items never offered in these states
WORK_ITEM_EXCLUDED_STATUSES = frozenset({"operator_completed", "completed", "in_progress", "assigned"})
SELF_ASSIGNED_STATUS = "self_assigned"

# legacy bundle collection fallback / WIP available-work query
OPEN_BUNDLE_STATUSES = frozenset({"pending", "ready", "waiting"})

# checklist-driven "Available Work" pool
AVAILABLE_WORK_STATUSES = frozenset({"pending", "ready", "in-progress"})

EARNING_STATUSES = ("pending", "confirmed", "paid", "held")


# =========================================================
# Priorities
# =========================================================
PRIORITY_RANK: Mapping[str, int] = MappingProxyType({"high": 3, "medium": 2, "low": 1})
DEFAULT_PRIORITY = "medium"


# =========================================================
# Work item defaults
# =========================================================
WORK_ITEM_ID_SUFFIX = "-work-item"
DEFAULT_OPERATION = "sideSeam"
