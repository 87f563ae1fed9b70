"""JSON-file-backed implementation of CartStore."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from storefront.domain.model.cart import Cart, CartLine
from storefront.domain.repository.cart_store import CartStore
from storefront.infrastructure.persistence.json_file import JsonFile


class JsonCartStore(CartStore):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_cart(self, owner_id: str) -> Cart:
        with self._file.locked():
            for raw in self._file.load():
                if raw["owner_id"] == owner_id:
                    return self._to_domain(raw)
            cart = Cart.empty(owner_id)
            self.save(cart)
            return cart

    def save(self, cart: Cart) -> None:
        with self._file.locked():
            records = self._file.load()
            for i, raw in enumerate(records):
                if raw["owner_id"] == cart.owner_id:
                    records[i] = self._to_raw(cart)
                    break
            else:
                records.append(self._to_raw(cart))
            self._file.persist(records)

    def clear(self, owner_id: str) -> None:
        with self._file.locked():
            cart = self.get_cart(owner_id)
            cart.clear()
            self.save(cart)

    @staticmethod
    def _to_raw(cart: Cart) -> dict:
        return {
            "owner_id": cart.owner_id,
            "lines": [
                {"product_id": line.product_id, "quantity": line.quantity}
                for line in cart.lines
            ],
            "created_at": cart.created_at.isoformat(),
            "updated_at": cart.updated_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Cart:
        return Cart(
            owner_id=raw["owner_id"],
            lines=[CartLine(product_id=l["product_id"], quantity=l["quantity"]) for l in raw["lines"]],
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )
