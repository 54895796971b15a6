"""
Typed errors and the result envelope returned by every public operation.

Services raise ``BookingError`` subclasses internally (so that the surrounding
``UnitOfWork`` rolls back), and convert them to an ``OperationResult`` before
returning; nothing raises across the service boundary.
"""

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Error kinds reported to callers"""
    SEAT_UNAVAILABLE = "seat_unavailable"
    QUOTA_EXCEEDED = "quota_exceeded"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    STATE_CONFLICT = "state_conflict"
    TRANSIENT_FAILURE = "transient_failure"


class BookingError(Exception):
    """Base exception for booking engine failures"""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, seat_numbers: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.seat_numbers = seat_numbers or []


class SeatUnavailable(BookingError):
    kind = ErrorKind.SEAT_UNAVAILABLE


class QuotaExceeded(BookingError):
    kind = ErrorKind.QUOTA_EXCEEDED


class ValidationError(BookingError):
    kind = ErrorKind.VALIDATION_ERROR


class NotFound(BookingError):
    kind = ErrorKind.NOT_FOUND


class Unauthorized(BookingError):
    kind = ErrorKind.UNAUTHORIZED


class StateConflict(BookingError):
    kind = ErrorKind.STATE_CONFLICT


class TransientFailure(BookingError):
    kind = ErrorKind.TRANSIENT_FAILURE

    def __init__(self, message: str = "Temporary storage failure, please try again"):
        super().__init__(message)


class ErrorDetail(BaseModel):
    """Error payload of a failed operation"""
    kind: ErrorKind
    message: str
    seat_numbers: List[str] = Field(default_factory=list)


class OperationResult(BaseModel, Generic[T]):
    """Success-or-typed-error result of a service operation"""
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: BookingError) -> "OperationResult":
        return cls(
            success=False,
            error=ErrorDetail(kind=exc.kind, message=exc.message, seat_numbers=exc.seat_numbers)
        )

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None


HTTP_STATUS_BY_KIND = {
    ErrorKind.SEAT_UNAVAILABLE: 409,
    ErrorKind.QUOTA_EXCEEDED: 409,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.TRANSIENT_FAILURE: 503,
}
