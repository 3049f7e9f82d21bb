# prodtrack/services/result.py
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Generic, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.obs.metrics import store_errors_total
from prodtrack.services.errors import ErrorInfo, ServiceError, classify_store_error

log = logging.getLogger("prodtrack.services")

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Flat outcome of every service call:
      success=True  -> data
      success=False -> error (+ error_type / can_retry)
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    can_retry: bool = False

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        *,
        error_type: str = "UNKNOWN_ERROR",
        can_retry: bool = False,
        data: Any = None,
    ) -> "ServiceResult":
        return cls(success=False, data=data, error=error, error_type=error_type, can_retry=can_retry)

    @classmethod
    def from_service_error(cls, exc: ServiceError, *, data: Any = None) -> "ServiceResult":
        return cls.fail(exc.message, error_type=exc.code, data=data)

    @classmethod
    def from_error_info(cls, info: ErrorInfo, *, data: Any = None) -> "ServiceResult":
        return cls.fail(info.message, error_type=info.type, can_retry=info.can_retry, data=data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.success:
            out["data"] = self.data
        else:
            out["error"] = self.error
            out["error_type"] = self.error_type
            out["can_retry"] = self.can_retry
        return out


async def fail_from(session: AsyncSession, exc: Exception, operation: str) -> ServiceResult:
    """
    Roll back the session and turn `exc` into a failure result.

    ServiceError keeps its own code; anything from SQLAlchemy goes through
    classify_store_error() and is counted in store_errors_total.
    """
    if session.in_transaction():
        await session.rollback()

    if isinstance(exc, ServiceError):
        log.info("%s rejected: %s (%s)", operation, exc.message, exc.code)
        return ServiceResult.from_service_error(exc)

    info = classify_store_error(exc, operation)
    store_errors_total.labels(info.type).inc()
    return ServiceResult.from_error_info(info)
