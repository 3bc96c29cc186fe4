"""
Exceptions raised by the ticket store and lifecycle model
"""
from typing import Optional


class StoreError(Exception):
    """Base class for ticket store failures (network or store side)."""

    def __init__(self, operation: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.cause = cause


class StoreReadError(StoreError):
    """A list or point read could not be completed."""


class StoreWriteError(StoreError):
    """A create, status update or feedback insert was not persisted."""


class IllegalTransitionError(ValueError):
    """Raised when code asks the lifecycle model for a forbidden transition."""

    def __init__(self, current, target):
        super().__init__(f"Illegal ticket transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target
