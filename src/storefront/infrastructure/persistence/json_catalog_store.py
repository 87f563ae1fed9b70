"""JSON-file-backed catalog that is also the authoritative StockLedger.

Stock lives on the product record, so the ledger operations are
conditional updates of a single record done under the file lock.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from storefront.domain.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.stock_ledger import StockLedger
from storefront.infrastructure.persistence.json_file import JsonFile


class JsonCatalogStore(CatalogStore, StockLedger):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- CatalogStore interface -----------------------------------------------

    def get_product(self, product_id: str) -> Product | None:
        for raw in self._file.load():
            if raw["id"] == product_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._file.load()]

    def save(self, product: Product) -> None:
        with self._file.locked():
            records = self._file.load()
            for i, raw in enumerate(records):
                if raw["id"] == product.id:
                    records[i] = self._to_raw(product)
                    break
            else:
                records.append(self._to_raw(product))
            self._file.persist(records)

    # --- StockLedger interface ------------------------------------------------

    def get_stock(self, product_id: str) -> int:
        product = self.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product '{product_id}' not found")
        return product.stock

    def decrement(self, product_id: str, quantity: int) -> int:
        return self._adjust(product_id, -_positive(quantity))

    def increment(self, product_id: str, quantity: int) -> int:
        return self._adjust(product_id, _positive(quantity))

    def set_stock(self, product_id: str, quantity: int) -> int:
        with self._file.locked():
            records = self._file.load()
            for raw in records:
                if raw["id"] == product_id:
                    product = self._to_domain(raw)
                    product.set_stock(quantity)
                    raw["stock"] = product.stock
                    self._file.persist(records)
                    return product.stock
        raise NotFoundError(f"Product '{product_id}' not found")

    def _adjust(self, product_id: str, delta: int) -> int:
        with self._file.locked():
            records = self._file.load()
            for raw in records:
                if raw["id"] == product_id:
                    current = raw["stock"]
                    if current + delta < 0:
                        raise InsufficientStockError(product_id, -delta, current)
                    raw["stock"] = current + delta
                    self._file.persist(records)
                    return raw["stock"]
        raise NotFoundError(f"Product '{product_id}' not found")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "price": str(product.price.amount),
            "currency": product.price.currency,
            "stock": product.stock,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            price=Money(Decimal(raw["price"]), raw.get("currency", "USD")),
            stock=raw.get("stock", 0),
        )


def _positive(quantity: int) -> int:
    if quantity <= 0:
        raise ValidationError("Stock adjustment quantity must be positive")
    return quantity
