# prodtrack/services/machine_types.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from prodtrack.config.production import (
    MACHINE_TYPE_ALIASES,
    MULTI_SKILL,
    OPERATION_MACHINE_TABLE,
    UNKNOWN_MACHINE_TYPE,
)

DEFAULT_MACHINE_TYPE = "overlock"

_SEP_RE = re.compile(r"[-_\s]")


@dataclass(frozen=True)
class MachineMatch:
    machine_type: str
    detected: bool  # False -> default substituted for an unknown operation


def lookup_machine_type(operation: Optional[str]) -> str:
    """
    Machine type for an operation name, or UNKNOWN_MACHINE_TYPE.

    Keywords are matched as substrings of the lower-cased name in table order.
    """
    op = (operation or "").lower()
    if not op:
        return UNKNOWN_MACHINE_TYPE
    for keyword, machine_type in OPERATION_MACHINE_TABLE:
        if keyword in op:
            return machine_type
    return UNKNOWN_MACHINE_TYPE


def infer_machine_type(operation: Optional[str], default: str = DEFAULT_MACHINE_TYPE) -> MachineMatch:
    found = lookup_machine_type(operation)
    if found == UNKNOWN_MACHINE_TYPE:
        return MachineMatch(default, False)
    return MachineMatch(found, True)


def detect_machine_type(operation: Optional[str], default: str = DEFAULT_MACHINE_TYPE) -> str:
    return infer_machine_type(operation, default).machine_type


# ---------------------------------------------------------------------------
# aliases / operator compatibility
# ---------------------------------------------------------------------------
def _squash(s: str) -> str:
    return _SEP_RE.sub("", s.strip().lower())


_ALIAS_INDEX = {
    _squash(alias): standard
    for standard, aliases in MACHINE_TYPE_ALIASES.items()
    for alias in aliases
}


def normalize_machine_type(raw: Optional[str]) -> Optional[str]:
    """'Over-Lock' -> 'overlock', 'SN' -> 'single-needle'; unknown spellings come back squashed."""
    if not raw:
        return None
    squashed = _squash(raw)
    return _ALIAS_INDEX.get(squashed, squashed)


def check_compatibility(operator_machine: Optional[str], work_machine: Optional[str]) -> tuple[bool, str]:
    op_m = normalize_machine_type(operator_machine)
    work_m = normalize_machine_type(work_machine)

    if op_m == MULTI_SKILL:
        return True, "Multi-skill operator can handle any work type"
    if not op_m:
        return False, "Operator machine type not specified"
    if not work_m:
        return False, "Work item machine type not specified"
    if op_m == work_m:
        return True, f"Exact machine match: {op_m}"
    return False, f"Machine mismatch: operator has {op_m}, work requires {work_m}"
