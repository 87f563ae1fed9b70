"""Cart aggregate: the user's pending line items.

Cart mutation is owned by the storefront's cart endpoints; the
fulfillment engine reads a cart and clears it when a purchase completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from storefront.domain.exceptions import ValidationError


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CartLine:
    product_id: str
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValidationError("Cart line quantity must be at least 1")


@dataclass
class Cart:
    owner_id: str
    lines: list[CartLine] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @staticmethod
    def empty(owner_id: str) -> Cart:
        """Carts are created lazily the first time a user's cart is read."""
        return Cart(owner_id=owner_id)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    def add(self, product_id: str, quantity: int) -> None:
        """Add units of a product, merging with an existing line."""
        if quantity < 1:
            raise ValidationError("Cart line quantity must be at least 1")
        for line in self.lines:
            if line.product_id == product_id:
                line.quantity += quantity
                break
        else:
            self.lines.append(CartLine(product_id=product_id, quantity=quantity))
        self.updated_at = _now()

    def retain(self, product_ids: set[str]) -> None:
        """Drop every line whose product is not in *product_ids*."""
        self.lines = [line for line in self.lines if line.product_id in product_ids]
        self.updated_at = _now()

    def clear(self) -> None:
        self.lines = []
        self.updated_at = _now()
