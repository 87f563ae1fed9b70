"""Abstract store for Product aggregates.

Read access for the fulfillment engine; stock mutation goes through
StockLedger instead of ``save``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.product import Product


class CatalogStore(ABC):

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product."""
