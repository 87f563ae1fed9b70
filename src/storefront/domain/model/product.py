"""Product aggregate.

The catalog owns products; the fulfillment engine only reads them and
moves their stock counter through a StockLedger.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money


@dataclass
class Product:
    """A product in the catalog together with its stock counter.

    Invariant: ``stock`` is never negative.
    """

    id: str
    name: str
    price: Money
    stock: int = 0

    def __post_init__(self) -> None:
        if self.stock < 0:
            raise ValidationError(f"Stock for {self.name} cannot be negative")

    def set_stock(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError(f"Stock for {self.name} cannot be negative")
        self.stock = quantity
