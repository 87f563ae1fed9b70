"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from storefront.application.cancel_ticket import CancelTicketHandler
from storefront.application.create_order import CreateOrderFromCartHandler
from storefront.application.notifications import DetachedNotifier, NotificationDispatcher
from storefront.application.order_numbers import OrderNumberAllocator
from storefront.application.process_purchase import CartClearPolicy, ProcessPurchaseHandler
from storefront.application.update_order_status import UpdateOrderStatusHandler
from storefront.domain.model.value_objects import Money
from storefront.infrastructure.config import Settings
from storefront.infrastructure.notification.log_dispatcher import LogNotificationDispatcher
from storefront.infrastructure.notification.smtp_dispatcher import SmtpNotificationDispatcher
from storefront.infrastructure.persistence.json_cart_store import JsonCartStore
from storefront.infrastructure.persistence.json_catalog_store import JsonCatalogStore
from storefront.infrastructure.persistence.json_order_ledger import JsonOrderLedger
from storefront.infrastructure.persistence.json_ticket_ledger import JsonTicketLedger


def catalog_store(settings: Settings) -> JsonCatalogStore:
    return JsonCatalogStore(settings.data_dir / "products.json")


def cart_store(settings: Settings) -> JsonCartStore:
    return JsonCartStore(settings.data_dir / "carts.json")


def ticket_ledger(settings: Settings) -> JsonTicketLedger:
    return JsonTicketLedger(settings.data_dir / "tickets.json")


def order_ledger(settings: Settings) -> JsonOrderLedger:
    return JsonOrderLedger(settings.data_dir / "orders.json")


def notification_dispatcher(settings: Settings) -> NotificationDispatcher:
    if not settings.smtp_enabled:
        return LogNotificationDispatcher()
    return SmtpNotificationDispatcher(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.smtp_from,
        username=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
    )


def detached_notifier(settings: Settings) -> DetachedNotifier:
    return DetachedNotifier(
        notification_dispatcher(settings), max_workers=settings.notify_workers
    )


# --- Use-case handlers --------------------------------------------------------


def process_purchase_handler(
    settings: Settings, notifier: DetachedNotifier
) -> ProcessPurchaseHandler:
    catalog = catalog_store(settings)
    return ProcessPurchaseHandler(
        cart_store=cart_store(settings),
        catalog=catalog,
        stock_ledger=catalog,
        ticket_ledger=ticket_ledger(settings),
        notifier=notifier,
        clear_policy=CartClearPolicy(settings.cart_clear_policy),
        max_code_attempts=settings.ticket_code_max_attempts,
    )


def cancel_ticket_handler(settings: Settings) -> CancelTicketHandler:
    return CancelTicketHandler(
        ticket_ledger=ticket_ledger(settings),
        stock_ledger=catalog_store(settings),
    )


def create_order_handler(
    settings: Settings, notifier: DetachedNotifier
) -> CreateOrderFromCartHandler:
    catalog = catalog_store(settings)
    return CreateOrderFromCartHandler(
        cart_store=cart_store(settings),
        catalog=catalog,
        stock_ledger=catalog,
        allocator=OrderNumberAllocator(
            order_ledger(settings),
            max_attempts=settings.order_number_max_attempts,
        ),
        notifier=notifier,
        shipping_cost=Money.of(settings.shipping_cost),
        delivery_days=settings.delivery_days,
    )


def update_order_status_handler(
    settings: Settings, notifier: DetachedNotifier
) -> UpdateOrderStatusHandler:
    return UpdateOrderStatusHandler(
        order_ledger=order_ledger(settings),
        stock_ledger=catalog_store(settings),
        notifier=notifier,
    )
