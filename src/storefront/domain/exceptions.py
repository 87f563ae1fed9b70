"""Domain-level exceptions.

Aggregates and ledgers raise these; application handlers translate them
into ``Err`` results so callers never need a generic exception handler.
Each class carries the HTTP-style status code the handler layer reports.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    status_code = 500


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    status_code = 400


class NotFoundError(DomainException):
    """A requested user, product, ticket, cart or order does not exist."""

    status_code = 404


class InsufficientStockError(DomainException):
    """A stock decrement was refused because too few units remain."""

    status_code = 409

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product '{product_id}' "
            f"(requested {requested}, available {available})"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ConflictError(DomainException):
    """A uniqueness constraint or an expected state was not met."""

    status_code = 409


class AuthorizationError(DomainException):
    """The acting principal may not touch this record."""

    status_code = 403


class InternalError(DomainException):
    """Unexpected persistence failure or exhausted retries."""

    status_code = 500
