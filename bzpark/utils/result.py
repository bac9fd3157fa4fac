# bzpark/utils/result.py
"""
Tagged service results.

Every service function returns a ServiceResult instead of raising. Routers pick
the HTTP status from `kind`, never from the message text.
"""

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from bzpark.utils.logger import get_logger

logger = get_logger(__name__)

INFRA_MESSAGE = "Database operation failed"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INFRA = "infra"


@dataclass
class ServiceResult:
    success: bool
    data: Any = None
    message: str = ""
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    retryable: bool = False
    count: Optional[int] = None

    @classmethod
    def ok(cls, data=None, message: str = "", count: Optional[int] = None) -> "ServiceResult":
        return cls(success=True, data=data, message=message, count=count)

    @classmethod
    def listing(cls, rows: list, message: str = "") -> "ServiceResult":
        return cls(success=True, data=rows, message=message, count=len(rows))

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, data=None, retryable: bool = False) -> "ServiceResult":
        return cls(success=False, kind=kind, error=error, data=data, retryable=retryable)


def validation_error(error: str) -> ServiceResult:
    return ServiceResult.fail(ErrorKind.VALIDATION, error)


def not_found(error: str) -> ServiceResult:
    return ServiceResult.fail(ErrorKind.NOT_FOUND, error)


def conflict(error: str, data=None) -> ServiceResult:
    return ServiceResult.fail(ErrorKind.CONFLICT, error, data=data)


def infra_error(exc: Exception, operation: str) -> ServiceResult:
    """Log the raw store error and return a sanitized, tagged failure."""
    logger.error(f"{operation} failed: {exc}", exc_info=True)
    retryable = isinstance(exc, (OperationalError, PoolTimeoutError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    return ServiceResult.fail(ErrorKind.INFRA, INFRA_MESSAGE, retryable=retryable)


def handles_store_errors(operation: str):
    """
    Wrap an async service function taking `db` as first argument. Store errors
    roll the session back and come out as an INFRA result.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db, *args, **kwargs):
            try:
                return await func(db, *args, **kwargs)
            except SQLAlchemyError as exc:
                db.rollback()
                return infra_error(exc, operation)
        return wrapper
    return decorator
