"""
Engine Error Types

Every failure the order engine reports belongs to one of a closed set of
kinds. Callers branch on ``error.kind`` rather than on exception subclasses;
the request layer maps kinds to HTTP status codes.

    NOT_FOUND   referenced business, item, option, variant or order is missing
    VALIDATION  bad input, illegal transition, overpayment, unavailable catalog entry
    CONFLICT    uniqueness or concurrent-modification violation at the aggregate boundary
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of engine failure kinds."""
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"


class OrderEngineError(Exception):
    """
    Typed failure raised by the order engine and its components.

    Attributes:
        kind: Failure category
        message: Human readable description
        field: Optional name of the input field the failure refers to
    """

    def __init__(self, kind: ErrorKind, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field

    @classmethod
    def not_found(cls, resource: str, field: Optional[str] = None) -> "OrderEngineError":
        return cls(ErrorKind.NOT_FOUND, f"{resource} not found", field)

    @classmethod
    def validation(cls, message: str, field: Optional[str] = None) -> "OrderEngineError":
        return cls(ErrorKind.VALIDATION, message, field)

    @classmethod
    def conflict(cls, message: str, field: Optional[str] = None) -> "OrderEngineError":
        return cls(ErrorKind.CONFLICT, message, field)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "field": self.field,
        }

    def __repr__(self) -> str:
        return f"<OrderEngineError {self.kind.value}: {self.message}>"
