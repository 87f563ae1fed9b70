"""Order aggregate: the record produced by the all-or-nothing checkout.

Orders carry shipping and delivery metadata.  Status changes go through
an explicit transition table; free-form status writes are not possible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import (
    Money,
    PaymentDetails,
    Quantity,
    ShippingAddress,
)


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Timestamp key recorded when an order enters each status.
_STATUS_TIMESTAMP_KEYS = {
    OrderStatus.PROCESSING: "processed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

ORDER_PAYMENT_METHODS = frozenset(
    {"credit_card", "debit_card", "bank_transfer", "cash_on_delivery"}
)
DEFAULT_DELIVERY_DAYS = 3


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderLineItem:
    """Captures the name and price snapshot of a product at order time."""

    product_id: str
    name: str
    unit_price: Money  # locked at order-creation time
    quantity: Quantity

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Aggregate root for shipped orders.

    Use the ``Order.create()`` factory for new orders.  The order number
    is allocated by the application layer right before persistence.
    """

    id: int | None
    order_number: str | None
    purchaser_id: str
    purchaser_email: str
    items: list[OrderLineItem]
    shipping_address: ShippingAddress
    payment_method: str
    payment_details: PaymentDetails = field(default_factory=PaymentDetails)
    shipping_cost: Money = field(default_factory=Money.zero)
    status: OrderStatus = OrderStatus.PENDING
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None
    notes: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    status_timestamps: dict[str, datetime] = field(default_factory=dict)

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        purchaser_id: str,
        purchaser_email: str,
        items: list[OrderLineItem],
        shipping_address: ShippingAddress,
        payment_method: str,
        payment_details: PaymentDetails | None = None,
        shipping_cost: Money | None = None,
        delivery_days: int = DEFAULT_DELIVERY_DAYS,
        now: datetime | None = None,
    ) -> Order:
        """Create a new pending order, enforcing all invariants."""
        if not items:
            raise ValidationError("Order must contain at least one product")
        validate_order_payment_method(payment_method)
        if delivery_days < 0:
            raise ValidationError("Delivery days cannot be negative")

        created = now or _now()
        return Order(
            id=None,
            order_number=None,
            purchaser_id=purchaser_id,
            purchaser_email=purchaser_email,
            items=list(items),
            shipping_address=shipping_address,
            payment_method=payment_method,
            payment_details=payment_details or PaymentDetails(),
            shipping_cost=shipping_cost or Money.zero(),
            estimated_delivery=created + timedelta(days=delivery_days),
            created_at=created,
            updated_at=created,
        )

    # --- State transitions ----------------------------------------------------

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def advance_to(
        self,
        new_status: OrderStatus,
        tracking_number: str | None = None,
        at: datetime | None = None,
    ) -> None:
        """Move the order forward along the transition table."""
        if not self.can_transition_to(new_status):
            raise ValidationError(
                f"Cannot move order {self.order_number} from "
                f"{self.status.value} to {new_status.value}"
            )
        when = at or _now()
        self.status = new_status
        if tracking_number:
            self.tracking_number = tracking_number
        key = _STATUS_TIMESTAMP_KEYS.get(new_status)
        if key:
            self.status_timestamps[key] = when
        if new_status == OrderStatus.DELIVERED:
            self.actual_delivery = when
        self.updated_at = when

    # --- Computed properties --------------------------------------------------

    @property
    def items_total(self) -> Money:
        return Money.sum(item.subtotal for item in self.items)

    @property
    def total_amount(self) -> Money:
        return self.items_total + self.shipping_cost

    @property
    def total_items(self) -> int:
        return sum(item.quantity.value for item in self.items)

    def summary(self) -> dict:
        return {
            "order_number": self.order_number,
            "total_items": self.total_items,
            "total_amount": str(self.total_amount),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "estimated_delivery": (
                self.estimated_delivery.isoformat() if self.estimated_delivery else None
            ),
        }


def validate_order_payment_method(payment_method: str | None) -> None:
    if not payment_method:
        raise ValidationError("Payment method is required")
    if payment_method not in ORDER_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}' "
            f"(expected one of {', '.join(sorted(ORDER_PAYMENT_METHODS))})"
        )
