"""Ticket aggregate: the record produced by the partial-fulfillment checkout.

A ticket is persisted ``pending`` before any stock moves, then finalized
in place once every fulfillable line has been debited (or lost to a
concurrent purchase).  Its amount is always derived from its line items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money, Quantity


class TicketStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class LineItemStatus(Enum):
    AVAILABLE = "available"
    OUT_OF_STOCK = "out_of_stock"
    INSUFFICIENT_STOCK = "insufficient_stock"


class FailureReason(Enum):
    OUT_OF_STOCK = "out_of_stock"
    INSUFFICIENT_STOCK = "insufficient_stock"
    PRODUCT_NOT_FOUND = "product_not_found"


TICKET_PAYMENT_METHODS = frozenset(
    {"cash", "credit_card", "debit_card", "paypal", "bank_transfer"}
)
DEFAULT_PAYMENT_METHOD = "cash"
MAX_NOTES_LENGTH = 500


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PurchaseLineItem:
    """A successfully debited cart line, with its price snapshot."""

    product_id: str
    title: str
    unit_price: Money  # locked at purchase time
    quantity: Quantity
    status: LineItemStatus = LineItemStatus.AVAILABLE

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class FailedLineItem:
    """A cart line that could not be honored against live stock."""

    product_id: str | None
    title: str
    requested_quantity: int
    available_stock: int
    reason: FailureReason


@dataclass
class Ticket:
    """Aggregate root for purchase tickets.

    Use ``Ticket.open()`` for new tickets; ``__init__`` stays simple so
    ledgers can reconstitute persisted tickets without re-validating.
    """

    id: int | None
    code: str
    purchaser_id: str
    purchaser_email: str
    payment_method: str = DEFAULT_PAYMENT_METHOD
    status: TicketStatus = TicketStatus.PENDING
    line_items: list[PurchaseLineItem] = field(default_factory=list)
    failed_items: list[FailedLineItem] = field(default_factory=list)
    notes: str = ""
    purchase_datetime: datetime = field(default_factory=_now)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    version: int = 0  # bumped by the ledger on every write

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def open(
        code: str,
        purchaser_id: str,
        purchaser_email: str,
        payment_method: str,
        notes: str = "",
        failed_items: list[FailedLineItem] | None = None,
    ) -> Ticket:
        """Create a ``pending`` ticket carrying the already-known failures."""
        validate_payment_method(payment_method)
        notes = notes or ""
        if len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
        return Ticket(
            id=None,
            code=code,
            purchaser_id=purchaser_id,
            purchaser_email=purchaser_email,
            payment_method=payment_method,
            notes=notes,
            failed_items=list(failed_items or []),
        )

    # --- State transitions ----------------------------------------------------

    def record_line(self, item: PurchaseLineItem) -> None:
        """Record a debited line while the ticket is still pending.

        Keeping progress on the pending ticket means an interrupted
        purchase can still be cancelled for exactly the stock it took.
        """
        self._require_pending("record a line on")
        self.line_items.append(item)
        self.updated_at = _now()

    def finalize(
        self,
        line_items: list[PurchaseLineItem],
        failed_items: list[FailedLineItem],
    ) -> None:
        """Transition PENDING -> COMPLETED | PARTIALLY_COMPLETED | FAILED.

        FAILED only happens when every fulfillable line was lost to a
        concurrent purchase between validation and debit.
        """
        self._require_pending("finalize")
        self.line_items = list(line_items)
        self.failed_items = list(failed_items)
        if not self.line_items:
            self.status = TicketStatus.FAILED
        elif self.failed_items:
            self.status = TicketStatus.PARTIALLY_COMPLETED
        else:
            self.status = TicketStatus.COMPLETED
        self.updated_at = _now()

    def cancel(self, reason: str = "") -> None:
        """Transition PENDING -> CANCELLED, recording the reason in the notes.

        Stock restoration is coordinated by the cancellation handler.
        """
        self._require_pending("cancel")
        entry = f"Cancelled: {reason}"
        self.notes = f"{self.notes}\n{entry}" if self.notes else entry
        self.status = TicketStatus.CANCELLED
        self.updated_at = _now()

    # --- Computed properties --------------------------------------------------

    @property
    def amount(self) -> Money:
        return Money.sum(item.subtotal for item in self.line_items)

    @property
    def is_successful(self) -> bool:
        return self.status == TicketStatus.COMPLETED and not self.failed_items

    @property
    def is_partial(self) -> bool:
        return self.status == TicketStatus.PARTIALLY_COMPLETED and bool(self.failed_items)

    def _require_pending(self, action: str) -> None:
        if self.status != TicketStatus.PENDING:
            raise ValidationError(
                f"Cannot {action} ticket {self.code}: current status is "
                f"{self.status.value}, expected pending"
            )


def validate_payment_method(payment_method: str | None) -> None:
    if not payment_method:
        raise ValidationError("Payment method is required")
    if payment_method not in TICKET_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}' "
            f"(expected one of {', '.join(sorted(TICKET_PAYMENT_METHODS))})"
        )
