"""Abstract ledger for the per-product stock counter.

Every call is atomic with respect to a single product.  ``decrement`` is
the only way stock goes down and it re-checks availability itself, so a
caller's earlier read is advisory.  No multi-product atomicity is given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StockLedger(ABC):

    @abstractmethod
    def get_stock(self, product_id: str) -> int:
        """Return current stock. Raises NotFoundError for unknown products."""

    @abstractmethod
    def decrement(self, product_id: str, quantity: int) -> int:
        """Atomically remove *quantity* units if at least that many remain.

        Returns the new stock.  Raises InsufficientStockError (carrying the
        observed stock) when ``quantity`` exceeds it, and NotFoundError for
        unknown products.
        """

    @abstractmethod
    def increment(self, product_id: str, quantity: int) -> int:
        """Atomically add *quantity* units back. Returns the new stock."""

    @abstractmethod
    def set_stock(self, product_id: str, quantity: int) -> int:
        """Atomically overwrite the counter with an absolute level.

        Raises ValidationError for a negative level and NotFoundError for
        unknown products.  Returns the new stock.
        """
