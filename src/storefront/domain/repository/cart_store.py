"""Abstract store for user carts, keyed by owner."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.cart import Cart


class CartStore(ABC):

    @abstractmethod
    def get_cart(self, owner_id: str) -> Cart:
        """Return the owner's cart, creating an empty one on first access."""

    @abstractmethod
    def save(self, cart: Cart) -> None:
        """Persist the cart's current lines."""

    @abstractmethod
    def clear(self, owner_id: str) -> None:
        """Drop every line from the owner's cart."""
