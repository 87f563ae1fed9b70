"""In-memory fake stores and ledgers for testing.

These implement the same abstract interfaces as the JSON stores but keep
everything in dicts. No file I/O, no side effects.  Aggregates are
copied on the way in and out, like a real store would serialize them.
"""

from __future__ import annotations

import copy
import threading
from concurrent.futures import Executor, Future
from typing import Callable

from storefront.application.notifications import (
    DeliveryReceipt,
    DetachedNotifier,
    NotificationDispatcher,
)
from storefront.domain.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.model.cart import Cart
from storefront.domain.model.order import Order, OrderStatus
from storefront.domain.model.product import Product
from storefront.domain.model.ticket import Ticket, TicketStatus
from storefront.domain.repository.cart_store import CartStore
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.order_ledger import OrderLedger
from storefront.domain.repository.stock_ledger import StockLedger
from storefront.domain.repository.ticket_ledger import PurchaseLedger


class FakeCatalogStore(CatalogStore, StockLedger):
    """Catalog plus stock ledger.

    ``before_decrement`` runs right before each decrement and lets a test
    play the part of a concurrent buyer.
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._store: dict[str, Product] = {}
        self._lock = threading.Lock()
        self.before_decrement: Callable[[str, int], None] | None = None
        for p in products or []:
            self._store[p.id] = copy.deepcopy(p)

    def get_product(self, product_id: str) -> Product | None:
        product = self._store.get(product_id)
        return copy.deepcopy(product) if product else None

    def list_all(self) -> list[Product]:
        return [copy.deepcopy(p) for p in self._store.values()]

    def save(self, product: Product) -> None:
        self._store[product.id] = copy.deepcopy(product)

    def remove(self, product_id: str) -> None:
        del self._store[product_id]

    def get_stock(self, product_id: str) -> int:
        if product_id not in self._store:
            raise NotFoundError(f"Product '{product_id}' not found")
        return self._store[product_id].stock

    def decrement(self, product_id: str, quantity: int) -> int:
        if self.before_decrement is not None:
            self.before_decrement(product_id, quantity)
        return self._adjust(product_id, -quantity)

    def increment(self, product_id: str, quantity: int) -> int:
        return self._adjust(product_id, quantity)

    def set_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            product = self._store.get(product_id)
            if product is None:
                raise NotFoundError(f"Product '{product_id}' not found")
            product.set_stock(quantity)
            return product.stock

    def _adjust(self, product_id: str, delta: int) -> int:
        if delta == 0:
            raise ValidationError("Stock adjustment quantity must be positive")
        with self._lock:
            product = self._store.get(product_id)
            if product is None:
                raise NotFoundError(f"Product '{product_id}' not found")
            if product.stock + delta < 0:
                raise InsufficientStockError(product_id, -delta, product.stock)
            product.stock += delta
            return product.stock


class FakeCartStore(CartStore):

    def __init__(self) -> None:
        self._store: dict[str, Cart] = {}

    def get_cart(self, owner_id: str) -> Cart:
        if owner_id not in self._store:
            self._store[owner_id] = Cart.empty(owner_id)
        return copy.deepcopy(self._store[owner_id])

    def save(self, cart: Cart) -> None:
        self._store[cart.owner_id] = copy.deepcopy(cart)

    def clear(self, owner_id: str) -> None:
        self._store[owner_id] = Cart.empty(owner_id)

    def fill(self, owner_id: str, *lines: tuple[str, int]) -> None:
        cart = self.get_cart(owner_id)
        for product_id, quantity in lines:
            cart.add(product_id, quantity)
        self.save(cart)


class FakeTicketLedger(PurchaseLedger):
    """Ticket ledger; codes listed in ``taken_codes`` collide on ``add``."""

    def __init__(self, taken_codes: set[str] | None = None) -> None:
        self._store: dict[int, Ticket] = {}
        self._next_id = 1
        self.taken_codes = set(taken_codes or ())
        self._lock = threading.Lock()

    def add(self, ticket: Ticket) -> None:
        if ticket.code in self.taken_codes or any(
            t.code == ticket.code for t in self._store.values()
        ):
            raise ConflictError(f"Ticket code {ticket.code} already exists")
        ticket.id = self._next_id
        self._next_id += 1
        self._store[ticket.id] = copy.deepcopy(ticket)

    def save(self, ticket: Ticket) -> None:
        if ticket.id not in self._store:
            raise NotFoundError(f"Ticket #{ticket.id} not found")
        ticket.version += 1
        self._store[ticket.id] = copy.deepcopy(ticket)

    def transition_status(
        self, ticket_id: int, expected: TicketStatus, ticket: Ticket
    ) -> bool:
        with self._lock:
            stored = self._store.get(ticket_id)
            if stored is None:
                raise NotFoundError(f"Ticket #{ticket_id} not found")
            if stored.status != expected or stored.version != ticket.version:
                return False
            ticket.version += 1
            self._store[ticket_id] = copy.deepcopy(ticket)
            return True

    def get_by_id(self, ticket_id: int) -> Ticket | None:
        ticket = self._store.get(ticket_id)
        return copy.deepcopy(ticket) if ticket else None

    def get_by_code(self, code: str) -> Ticket | None:
        for t in self._store.values():
            if t.code == code:
                return copy.deepcopy(t)
        return None

    def list_by_purchaser(self, purchaser_id: str) -> list[Ticket]:
        return [t for t in self.list_all() if t.purchaser_id == purchaser_id]

    def list_all(self) -> list[Ticket]:
        tickets = [copy.deepcopy(t) for t in self._store.values()]
        tickets.sort(key=lambda t: t.purchase_datetime, reverse=True)
        return tickets


class FakeOrderLedger(OrderLedger):

    def __init__(self) -> None:
        self._store: dict[int, Order] = {}
        self._next_id = 1
        self.fail_on_add: Exception | None = None

    def add(self, order: Order) -> None:
        if self.fail_on_add is not None:
            raise self.fail_on_add
        if any(o.order_number == order.order_number for o in self._store.values()):
            raise ConflictError(f"Order number {order.order_number} already exists")
        order.id = self._next_id
        self._next_id += 1
        self._store[order.id] = copy.deepcopy(order)

    def save(self, order: Order) -> None:
        self._store[order.id] = copy.deepcopy(order)

    def transition_status(
        self, order_id: int, expected: OrderStatus, order: Order
    ) -> bool:
        stored = self._store.get(order_id)
        if stored is None:
            raise NotFoundError(f"Order #{order_id} not found")
        if stored.status != expected:
            return False
        self._store[order_id] = copy.deepcopy(order)
        return True

    def get_by_id(self, order_id: int) -> Order | None:
        order = self._store.get(order_id)
        return copy.deepcopy(order) if order else None

    def get_by_number(self, order_number: str) -> Order | None:
        for o in self._store.values():
            if o.order_number == order_number:
                return copy.deepcopy(o)
        return None

    def list_by_purchaser(self, purchaser_id: str) -> list[Order]:
        return [copy.deepcopy(o) for o in self._store.values() if o.purchaser_id == purchaser_id]

    def list_all(self) -> list[Order]:
        orders = [copy.deepcopy(o) for o in self._store.values()]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def latest_number_with_prefix(self, prefix: str) -> str | None:
        numbers = [
            o.order_number
            for o in self._store.values()
            if o.order_number and o.order_number.startswith(prefix)
        ]
        return max(numbers, key=lambda n: int(n.rsplit("-", 1)[1]), default=None)


# --- Notifications ------------------------------------------------------------


class RecordingDispatcher(NotificationDispatcher):
    """Remembers every message; raises *error* instead when given one."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self._error = error

    def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        if self._error is not None:
            raise self._error
        self.sent.append((to_address, subject, html_body))
        return DeliveryReceipt(success=True, message_id=f"msg-{len(self.sent)}")


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


def inline_notifier(dispatcher: NotificationDispatcher | None = None) -> DetachedNotifier:
    return DetachedNotifier(dispatcher or RecordingDispatcher(), executor=InlineExecutor())
