"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from storefront.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Prices are captured into tickets and orders as Money snapshots, so
    later catalog price changes never alter a persisted subtotal.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    def __add__(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    def averaged_over(self, count: int) -> Money:
        """Split evenly across *count* records, rounded half-up to cents."""
        if count <= 0:
            return Money.zero(self.currency)
        share = (self.amount / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return Money(share, self.currency)

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = "USD") -> Money:
        return Money(Decimal("0"), currency)

    @staticmethod
    def sum(values: Iterable[Money]) -> Money:
        total = Money.zero()
        for value in values:
            total = total + value
        return total


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity."""

    value: int

    def __post_init__(self) -> None:
        # bool is an int subclass; True is not a quantity
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ShippingAddress:
    """Where an order ships to. Every field is required."""

    name: str
    address: str
    city: str
    postal_code: str
    phone: str

    def __post_init__(self) -> None:
        for field_name in ("name", "address", "city", "postal_code", "phone"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Shipping address field '{field_name}' is required")
            object.__setattr__(self, field_name, value.strip())


CARD_TYPES = frozenset({"visa", "mastercard", "amex", "other"})
_LAST_FOUR = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class PaymentDetails:
    """Opaque payment metadata kept on an order. No gateway is involved."""

    card_last_four: str | None = None
    card_type: str | None = None

    def __post_init__(self) -> None:
        if self.card_type is not None and self.card_type not in CARD_TYPES:
            raise ValidationError(
                f"Unknown card type '{self.card_type}' "
                f"(expected one of {', '.join(sorted(CARD_TYPES))})"
            )
        if self.card_last_four is not None and not _LAST_FOUR.match(self.card_last_four):
            raise ValidationError("Card last four must be exactly 4 digits")
