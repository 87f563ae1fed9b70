"""Application service: Create Order From Cart use case (all-or-nothing).

Unlike the purchase flow, a single short line aborts the whole order
before anything is persisted or debited.  Stock is debited line by line
with the atomic ledger decrement; if a concurrent purchase wins a race
half-way through, the lines already debited are credited back.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from storefront.application.dto import Principal
from storefront.application.notifications import DetachedNotifier, order_confirmation
from storefront.application.order_numbers import OrderNumberAllocator
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.domain.exceptions import (
    DomainException,
    InsufficientStockError,
    NotFoundError,
)
from storefront.domain.model.order import (
    DEFAULT_DELIVERY_DAYS,
    Order,
    OrderLineItem,
    validate_order_payment_method,
)
from storefront.domain.model.value_objects import (
    Money,
    PaymentDetails,
    Quantity,
    ShippingAddress,
)
from storefront.domain.repository.cart_store import CartStore
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CreateOrderFromCartHandler:

    def __init__(
        self,
        cart_store: CartStore,
        catalog: CatalogStore,
        stock_ledger: StockLedger,
        allocator: OrderNumberAllocator,
        notifier: DetachedNotifier,
        shipping_cost: Money | None = None,
        delivery_days: int = DEFAULT_DELIVERY_DAYS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cart_store = cart_store
        self._catalog = catalog
        self._stock_ledger = stock_ledger
        self._allocator = allocator
        self._notifier = notifier
        self._shipping_cost = shipping_cost or Money.zero()
        self._delivery_days = delivery_days
        self._clock = clock

    def handle(
        self,
        principal: Principal,
        shipping_address: ShippingAddress | dict[str, Any] | None,
        payment_method: str | None,
        payment_details: PaymentDetails | dict[str, Any] | None = None,
    ) -> Result[Order]:
        with structlog.contextvars.bound_contextvars(user_id=principal.user_id):
            try:
                return self._create(principal, shipping_address, payment_method, payment_details)
            except DomainException as exc:
                logger.warning("order.rejected", error=str(exc))
                return Err.from_exception(exc)
            except Exception:
                logger.exception("order.internal_error")
                return Err(ErrorKind.INTERNAL, "Internal error while creating the order")

    def _create(self, principal, shipping_address, payment_method, payment_details) -> Result[Order]:
        if not shipping_address or not payment_method:
            return Err(ErrorKind.VALIDATION, "Shipping address and payment method are required")
        validate_order_payment_method(payment_method)
        address = _as_address(shipping_address)
        details = _as_payment_details(payment_details)

        cart = self._cart_store.get_cart(principal.user_id)
        if cart.is_empty:
            return Err(ErrorKind.VALIDATION, "The cart is empty")

        items: list[OrderLineItem] = []
        for line in cart.lines:
            product = self._catalog.get_product(line.product_id)
            if product is None:
                return Err(ErrorKind.NOT_FOUND, f"Product {line.product_id} not found")
            if product.stock < line.quantity:
                return Err(
                    ErrorKind.INSUFFICIENT_STOCK,
                    f"Insufficient stock for {product.name}. "
                    f"Available: {product.stock}, requested: {line.quantity}",
                    details={
                        "product_id": product.id,
                        "requested": line.quantity,
                        "available": product.stock,
                    },
                )
            items.append(
                OrderLineItem(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.price,  # <-- price snapshot
                    quantity=Quantity(line.quantity),
                )
            )

        order = Order.create(
            purchaser_id=principal.user_id,
            purchaser_email=principal.email,
            items=items,
            shipping_address=address,
            payment_method=payment_method,
            payment_details=details,
            shipping_cost=self._shipping_cost,
            delivery_days=self._delivery_days,
            now=self._clock(),
        )

        debited: list[OrderLineItem] = []
        try:
            for item in order.items:
                self._stock_ledger.decrement(item.product_id, item.quantity.value)
                debited.append(item)
        except (InsufficientStockError, NotFoundError) as exc:
            self._restore(debited)
            logger.info("order.lost_race", error=str(exc))
            return Err.from_exception(exc)

        try:
            self._allocator.persist_new(order)
        except Exception:
            self._restore(debited)
            raise

        self._cart_store.clear(principal.user_id)
        self._send_confirmation(order)

        logger.info(
            "order.created",
            order_number=order.order_number,
            total_amount=str(order.total_amount),
            items=len(order.items),
        )
        return Ok(order, status_code=201, message="Order created")

    def _restore(self, debited: list[OrderLineItem]) -> None:
        for item in debited:
            try:
                self._stock_ledger.increment(item.product_id, item.quantity.value)
            except Exception:
                logger.exception(
                    "order.restock_failed",
                    product_id=item.product_id,
                    quantity=item.quantity.value,
                )

    def _send_confirmation(self, order: Order) -> None:
        try:
            subject, html_body = order_confirmation(order)
            self._notifier.notify(order.purchaser_email, subject, html_body)
        except Exception:
            logger.exception("order.notification_not_sent", order_number=order.order_number)


def _as_address(raw: ShippingAddress | dict[str, Any]) -> ShippingAddress:
    if isinstance(raw, ShippingAddress):
        return raw
    return ShippingAddress(
        name=raw.get("name", ""),
        address=raw.get("address", ""),
        city=raw.get("city", ""),
        postal_code=raw.get("postal_code", raw.get("postalCode", "")),
        phone=raw.get("phone", ""),
    )


def _as_payment_details(raw: PaymentDetails | dict[str, Any] | None) -> PaymentDetails:
    if raw is None:
        return PaymentDetails()
    if isinstance(raw, PaymentDetails):
        return raw
    return PaymentDetails(
        card_last_four=raw.get("card_last_four"),
        card_type=raw.get("card_type"),
    )
