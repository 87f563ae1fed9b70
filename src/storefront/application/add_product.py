"""Application service: Add Product (catalog seeding for the CLI)."""

from __future__ import annotations

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.catalog_store import CatalogStore


class AddProductHandler:

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def handle(self, name: str, price: str, stock: int = 0) -> Product:
        """Add a new product with an initial stock level."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        all_products = self._catalog.list_all()
        if any(p.name.lower() == name.strip().lower() for p in all_products):
            raise ValidationError(f"Product '{name}' already exists")

        # Auto-assign ID based on existing products
        numeric_ids = [int(p.id) for p in all_products if p.id.isdigit()]
        next_id = str(max(numeric_ids, default=0) + 1)

        product = Product(id=next_id, name=name.strip(), price=Money.of(price), stock=stock)
        self._catalog.save(product)
        return product
