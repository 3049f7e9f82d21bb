# prodtrack/services/errors.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    NoResultFound,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

log = logging.getLogger("prodtrack.errors")


class ServiceError(Exception):
    code = "SERVICE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code
        self.message = message


class NotFoundError(ServiceError):
    code = "NOT_FOUND"


class AlreadyAssignedError(ServiceError):
    code = "ALREADY_ASSIGNED"


class ValidationError(ServiceError):
    code = "VALIDATION_ERROR"


class WipValidationError(ValidationError):
    pass


class WipImportError(ServiceError):
    code = "IMPORT_ERROR"


@dataclass(frozen=True)
class ErrorInfo:
    type: str
    message: str
    can_retry: bool
    fallback_strategy: bool


def classify_store_error(exc: BaseException, operation: str = "store operation") -> ErrorInfo:
    """
    Coarse classification of persistence failures.

    can_retry is advisory only; nothing in the services retries.
    """
    log.error("%s failed: %s: %s", operation, type(exc).__name__, exc)

    text = str(exc).lower()

    if isinstance(exc, NoResultFound):
        return ErrorInfo(
            "NOT_FOUND_ERROR", "Requested document or collection not found", False, True
        )

    if "permission denied" in text or "insufficient privilege" in text:
        return ErrorInfo(
            "PERMISSION_ERROR", "Access denied - check database credentials and grants", False, False
        )

    if isinstance(exc, (OperationalError, DisconnectionError, PoolTimeoutError)):
        if "no such table" in text or "does not exist" in text:
            return ErrorInfo("SCHEMA_ERROR", "Database schema missing - run migrations", False, False)
        return ErrorInfo(
            "NETWORK_ERROR", "Database unavailable - check network connection", True, True
        )

    if isinstance(exc, IntegrityError):
        return ErrorInfo(
            "PRECONDITION_ERROR", "Write rejected by a database constraint", False, False
        )

    if isinstance(exc, ProgrammingError):
        if "index" in text:
            return ErrorInfo("INDEX_ERROR", "Database index required", True, True)
        return ErrorInfo("SCHEMA_ERROR", "Database schema mismatch - run migrations", False, False)

    if isinstance(exc, SQLAlchemyError):
        return ErrorInfo("UNKNOWN_ERROR", str(exc) or "Unknown database error occurred", True, True)

    return ErrorInfo("UNKNOWN_ERROR", str(exc) or "Unknown error occurred", True, True)
