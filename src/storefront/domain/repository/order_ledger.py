"""Abstract ledger for Order aggregates."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.order import Order, OrderStatus


class OrderLedger(ABC):

    @abstractmethod
    def add(self, order: Order) -> None:
        """Insert a new order and assign its ID.

        Raises ConflictError if the order number is already taken.
        """

    @abstractmethod
    def save(self, order: Order) -> None:
        """Overwrite an existing order."""

    @abstractmethod
    def transition_status(
        self, order_id: int, expected: OrderStatus, order: Order
    ) -> bool:
        """Write *order* only if the stored status still equals *expected*."""

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None."""

    @abstractmethod
    def get_by_number(self, order_number: str) -> Order | None:
        """Return an order by its unique number, or None."""

    @abstractmethod
    def list_by_purchaser(self, purchaser_id: str) -> list[Order]:
        """Return every order placed by the purchaser (unsorted)."""

    @abstractmethod
    def list_all(self) -> list[Order]:
        """Return every order, newest first."""

    @abstractmethod
    def latest_number_with_prefix(self, prefix: str) -> str | None:
        """Return the highest order number starting with *prefix*, or None."""
