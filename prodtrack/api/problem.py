# prodtrack/api/problem.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, NoReturn, Optional

from fastapi import HTTPException

from prodtrack.services.result import ServiceResult

# service error_type -> HTTP status; retryable store errors map to 503
_STATUS_BY_TYPE: Dict[str, int] = {
    "NOT_FOUND": 404,
    "NOT_FOUND_ERROR": 404,
    "ALREADY_ASSIGNED": 409,
    "VALIDATION_ERROR": 422,
    "IMPORT_ERROR": 422,
    "PRECONDITION_ERROR": 409,
    "PERMISSION_ERROR": 403,
}


@dataclass(frozen=True)
class Problem:
    error_code: str
    message: str
    http_status: int
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        if self.context:
            out["context"] = self.context
        return out


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return Problem(
        error_code=str(error_code),
        message=str(message),
        http_status=int(status_code),
        context=context,
    ).to_dict()


def raise_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> NoReturn:
    raise HTTPException(
        status_code=int(status_code),
        detail=make_problem(
            status_code=int(status_code),
            error_code=error_code,
            message=message,
            context=context,
        ),
    )


def raise_422(error_code: str, message: str, *, context: Optional[Dict[str, Any]] = None) -> NoReturn:
    raise_problem(status_code=422, error_code=error_code, message=message, context=context)


def status_for(res: ServiceResult) -> int:
    etype = res.error_type or "UNKNOWN_ERROR"
    if etype in _STATUS_BY_TYPE:
        return _STATUS_BY_TYPE[etype]
    return 503 if res.can_retry else 500


def raise_for_result(res: ServiceResult, *, context: Optional[Dict[str, Any]] = None) -> NoReturn:
    """Translate a failed ServiceResult into the Problem body."""
    ctx = dict(context or {})
    if res.can_retry:
        ctx["can_retry"] = True
    raise_problem(
        status_code=status_for(res),
        error_code=res.error_type or "UNKNOWN_ERROR",
        message=res.error or "unknown error",
        context=ctx or None,
    )


def unwrap(res: ServiceResult, *, context: Optional[Dict[str, Any]] = None) -> Any:
    if not res.success:
        raise_for_result(res, context=context)
    return res.data
