"""Explicit success/failure results returned by every use-case handler.

Business-rule failures (empty cart, no stock, wrong owner, wrong status)
come back as ``Err`` with a status code rather than as exceptions, so a
caller can branch on ``result.kind`` without a generic handler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from storefront.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainException,
    InsufficientStockError,
    InternalError,
    NotFoundError,
    ValidationError,
)

T = TypeVar("T")


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    NO_STOCK_AVAILABLE = "no_stock_available"
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    INTERNAL = "internal"


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INSUFFICIENT_STOCK: 409,
    ErrorKind.NO_STOCK_AVAILABLE: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.INTERNAL: 500,
}

# Most specific first: InsufficientStockError is not a ConflictError, but
# keep the ordering explicit anyway.
_EXCEPTION_KINDS: list[tuple[type[DomainException], ErrorKind]] = [
    (InsufficientStockError, ErrorKind.INSUFFICIENT_STOCK),
    (ValidationError, ErrorKind.VALIDATION),
    (NotFoundError, ErrorKind.NOT_FOUND),
    (ConflictError, ErrorKind.CONFLICT),
    (AuthorizationError, ErrorKind.AUTHORIZATION),
    (InternalError, ErrorKind.INTERNAL),
]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    status_code: int = 200
    message: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    status_code: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.status_code:
            object.__setattr__(self, "status_code", _STATUS_CODES[self.kind])

    @property
    def ok(self) -> bool:
        return False

    @staticmethod
    def from_exception(exc: DomainException, **details: Any) -> Err:
        for exc_type, kind in _EXCEPTION_KINDS:
            if isinstance(exc, exc_type):
                return Err(kind=kind, message=str(exc), details=details)
        return Err(kind=ErrorKind.INTERNAL, message=str(exc), details=details)


Result = Union[Ok[T], Err]
