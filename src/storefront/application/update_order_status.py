"""Application service: Update Order Status use case (admin only).

Transitions are checked against the order's transition table and
written with a compare-and-swap on the previous status.  Cancelling an
order credits its stock back.
"""

from __future__ import annotations

import structlog

from storefront.application.dto import Principal
from storefront.application.notifications import DetachedNotifier, order_status_update
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.domain.exceptions import NotFoundError, ValidationError
from storefront.domain.model.order import Order, OrderStatus
from storefront.domain.repository.order_ledger import OrderLedger
from storefront.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)


class UpdateOrderStatusHandler:

    def __init__(
        self,
        order_ledger: OrderLedger,
        stock_ledger: StockLedger,
        notifier: DetachedNotifier,
    ) -> None:
        self._order_ledger = order_ledger
        self._stock_ledger = stock_ledger
        self._notifier = notifier

    def handle(
        self,
        order_id: int,
        new_status: str,
        principal: Principal,
        tracking_number: str | None = None,
    ) -> Result[Order]:
        with structlog.contextvars.bound_contextvars(
            user_id=principal.user_id, order_id=order_id
        ):
            try:
                return self._update(order_id, new_status, principal, tracking_number)
            except Exception:
                logger.exception("order.status_update_failed")
                return Err(ErrorKind.INTERNAL, "Internal error while updating the order status")

    def _update(
        self,
        order_id: int,
        new_status: str,
        principal: Principal,
        tracking_number: str | None,
    ) -> Result[Order]:
        if not principal.is_admin:
            return Err(ErrorKind.AUTHORIZATION, "Only administrators can update order status")

        try:
            target = OrderStatus(new_status)
        except ValueError:
            return Err(ErrorKind.VALIDATION, f"Unknown order status '{new_status}'")

        order = self._order_ledger.get_by_id(order_id)
        if order is None:
            return Err(ErrorKind.NOT_FOUND, f"Order #{order_id} not found")

        previous = order.status
        try:
            order.advance_to(target, tracking_number=tracking_number)
        except ValidationError as exc:
            return Err.from_exception(exc)

        if not self._order_ledger.transition_status(order_id, previous, order):
            return Err(
                ErrorKind.CONFLICT,
                f"Order {order.order_number} was updated concurrently; reload and retry",
            )

        if target == OrderStatus.CANCELLED:
            self._restock(order)

        logger.info(
            "order.status_changed",
            order_number=order.order_number,
            previous=previous.value,
            status=target.value,
        )
        try:
            subject, html_body = order_status_update(order)
            self._notifier.notify(order.purchaser_email, subject, html_body)
        except Exception:
            logger.exception("order.notification_not_sent", order_number=order.order_number)

        return Ok(order, message=f"Status updated to {target.value}")

    def _restock(self, order: Order) -> None:
        for item in order.items:
            try:
                self._stock_ledger.increment(item.product_id, item.quantity.value)
            except NotFoundError:
                logger.warning("order.restock_skipped", product_id=item.product_id)
