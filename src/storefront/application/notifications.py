"""Confirmation messaging, detached from the transactional result.

Handlers hand a rendered message to ``DetachedNotifier.notify`` and move
on.  Delivery runs on a worker pool; a failed or raising dispatcher is
logged and never reaches the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from html import escape

import structlog

from storefront.domain.model.order import Order, OrderStatus
from storefront.domain.model.ticket import Ticket, TicketStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryReceipt:
    success: bool
    message_id: str | None = None
    error: str | None = None


class NotificationDispatcher(ABC):

    @abstractmethod
    def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        """Deliver one message. May block; always called off the request path."""


class DetachedNotifier:
    """Fire-and-forget front for a NotificationDispatcher."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        executor: Executor | None = None,
        max_workers: int = 2,
    ) -> None:
        self._dispatcher = dispatcher
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notify"
        )

    def notify(self, to_address: str, subject: str, html_body: str) -> Future | None:
        if not to_address:
            logger.warning("notification.skipped", reason="no recipient", subject=subject)
            return None
        try:
            return self._executor.submit(self._deliver, to_address, subject, html_body)
        except RuntimeError:
            # executor already shut down
            logger.exception("notification.not_scheduled", to=to_address, subject=subject)
            return None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _deliver(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        try:
            receipt = self._dispatcher.send(to_address, subject, html_body)
        except Exception as exc:
            logger.exception("notification.failed", to=to_address, subject=subject)
            return DeliveryReceipt(success=False, error=str(exc))
        if receipt.success:
            logger.info("notification.sent", to=to_address, message_id=receipt.message_id)
        else:
            logger.warning("notification.rejected", to=to_address, error=receipt.error)
        return receipt


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

_STATUS_MESSAGES = {
    OrderStatus.PAID: "Your payment has been confirmed",
    OrderStatus.PROCESSING: "Your order is being processed",
    OrderStatus.SHIPPED: "Your order has been shipped",
    OrderStatus.DELIVERED: "Your order has been delivered",
    OrderStatus.CANCELLED: "Your order has been cancelled",
}


def purchase_confirmation(first_name: str, ticket: Ticket) -> tuple[str, str]:
    """Return (subject, html) for a finalized ticket."""
    is_partial = ticket.status == TicketStatus.PARTIALLY_COMPLETED
    heading = "Purchase partially completed" if is_partial else "Purchase successful"

    rows = "".join(
        "<tr>"
        f"<td>{escape(item.title)}</td>"
        f"<td style=\"text-align:center\">{item.quantity.value}</td>"
        f"<td style=\"text-align:right\">{item.unit_price}</td>"
        f"<td style=\"text-align:right\">{item.subtotal}</td>"
        "</tr>"
        for item in ticket.line_items
    )

    failed = ""
    if ticket.failed_items:
        entries = "".join(
            f"<p>{escape(item.title)} (requested: {item.requested_quantity}, "
            f"available: {item.available_stock})</p>"
            for item in ticket.failed_items
        )
        failed = f"<div class=\"unavailable\"><h3>Unavailable products</h3>{entries}</div>"

    html_body = (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto\">"
        f"<h1>{heading}</h1>"
        f"<p>Hello <strong>{escape(first_name or 'there')}</strong>!</p>"
        f"<p>Ticket: <strong>{escape(ticket.code)}</strong></p>"
        f"<p>Date: {ticket.purchase_datetime.strftime('%Y-%m-%d %H:%M UTC')}</p>"
        f"{failed}"
        "<table style=\"width:100%\">"
        "<thead><tr><th>Product</th><th>Qty</th><th>Price</th><th>Subtotal</th></tr></thead>"
        f"<tbody>{rows}</tbody>"
        f"<tfoot><tr><td colspan=\"3\">TOTAL:</td><td>{ticket.amount}</td></tr></tfoot>"
        "</table>"
        "<p>Thank you for your purchase. Keep this email as your receipt.</p>"
        "</div>"
    )
    return f"Purchase confirmation - Ticket {ticket.code}", html_body


def order_confirmation(order: Order) -> tuple[str, str]:
    items = "".join(
        f"<li>{escape(item.name)} x{item.quantity.value} - {item.subtotal}</li>"
        for item in order.items
    )
    delivery = (
        order.estimated_delivery.strftime("%Y-%m-%d") if order.estimated_delivery else "-"
    )
    html_body = (
        "<h2>Thank you for your order!</h2>"
        f"<p>Hello {escape(order.shipping_address.name)},</p>"
        f"<p>Your order <strong>{escape(order.order_number or '')}</strong> "
        "has been confirmed.</p>"
        f"<h3>Order summary:</h3><ul>{items}</ul>"
        f"<p><strong>Total: {order.total_amount}</strong></p>"
        f"<p><strong>Estimated delivery:</strong> {delivery}</p>"
    )
    return f"Order confirmation {order.order_number}", html_body


def order_status_update(order: Order) -> tuple[str, str]:
    message = _STATUS_MESSAGES.get(order.status, "Your order status has been updated")
    tracking = (
        f"<p><strong>Tracking number:</strong> {escape(order.tracking_number)}</p>"
        if order.tracking_number
        else ""
    )
    html_body = (
        "<h2>Order update</h2>"
        f"<p>Hello {escape(order.shipping_address.name)},</p>"
        f"<p>{message}.</p>"
        f"<p><strong>Order number:</strong> {escape(order.order_number or '')}</p>"
        f"<p><strong>Current status:</strong> {order.status.value}</p>"
        f"{tracking}"
    )
    return f"Order update {order.order_number}", html_body
