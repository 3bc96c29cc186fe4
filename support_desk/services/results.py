"""
Operation outcomes returned by the synchronization controller

Store failures never escape the controller; each operation returns an
``OperationResult`` describing what happened.
"""
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why an operation did not succeed"""
    NOT_FOUND = "not_found"
    STORE_WRITE_FAILURE = "store_write_failure"
    VALIDATION_FAILURE = "validation_failure"
    TRANSPORT_FAILURE = "transport_failure"
    INVALID_TRANSITION = "invalid_transition"
    ALREADY_SUBMITTED = "already_submitted"
    PRECONDITION_FAILED = "precondition_failed"
    IN_FLIGHT = "in_flight"
    VIEW_CLOSED = "view_closed"


RETRYABLE_ERRORS = frozenset({
    ErrorKind.STORE_WRITE_FAILURE,
    ErrorKind.TRANSPORT_FAILURE,
    ErrorKind.IN_FLIGHT,
})


class OperationError(BaseModel):
    """Failure detail shown to the user"""
    kind: ErrorKind
    message: str
    field_errors: Optional[dict] = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_ERRORS


class OperationResult(BaseModel, Generic[T]):
    """Success flag plus either data or an error"""
    success: bool
    data: Optional[T] = None
    error: Optional[OperationError] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> "OperationResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        field_errors: Optional[dict] = None
    ) -> "OperationResult[T]":
        return cls(
            success=False,
            error=OperationError(kind=kind, message=message, field_errors=field_errors),
        )

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable
