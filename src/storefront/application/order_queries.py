"""Application services: order queries (paged listing, lookup by number, stats)."""

from __future__ import annotations

import structlog

from storefront.application.dto import (
    OrderPage,
    OrderStats,
    OrderStatusTotals,
    Pagination,
    Principal,
)
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.domain.model.order import Order, OrderStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.order_ledger import OrderLedger

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100

_SORT_KEYS = {
    "created_at": lambda order: order.created_at,
    "total_amount": lambda order: order.total_amount.amount,
    "order_number": lambda order: order.order_number or "",
    "status": lambda order: order.status.value,
}


def _internal_error(event: str) -> Err:
    logger.exception(event)
    return Err(ErrorKind.INTERNAL, "Internal error while reading orders")


class GetUserOrdersHandler:

    def __init__(self, order_ledger: OrderLedger) -> None:
        self._order_ledger = order_ledger

    def handle(
        self,
        principal: Principal,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Result[OrderPage]:
        if page < 1:
            return Err(ErrorKind.VALIDATION, "Page must be 1 or greater")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            return Err(ErrorKind.VALIDATION, f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if sort_by not in _SORT_KEYS:
            return Err(
                ErrorKind.VALIDATION,
                f"Cannot sort by '{sort_by}' (expected one of {', '.join(sorted(_SORT_KEYS))})",
            )
        if sort_order not in ("asc", "desc"):
            return Err(ErrorKind.VALIDATION, "Sort order must be 'asc' or 'desc'")
        wanted = None
        if status:
            try:
                wanted = OrderStatus(status)
            except ValueError:
                return Err(ErrorKind.VALIDATION, f"Unknown order status '{status}'")

        try:
            orders = self._order_ledger.list_by_purchaser(principal.user_id)
        except Exception:
            return _internal_error("order.list_failed")

        if wanted is not None:
            orders = [o for o in orders if o.status == wanted]
        orders.sort(key=_SORT_KEYS[sort_by], reverse=sort_order == "desc")

        start = (page - 1) * limit
        return Ok(
            OrderPage(
                orders=orders[start:start + limit],
                pagination=Pagination.for_page(page, limit, len(orders)),
            )
        )


class GetOrderByNumberHandler:

    def __init__(self, order_ledger: OrderLedger) -> None:
        self._order_ledger = order_ledger

    def handle(self, order_number: str, principal: Principal) -> Result[Order]:
        try:
            order = self._order_ledger.get_by_number(order_number.strip().upper())
        except Exception:
            return _internal_error("order.lookup_failed")
        if order is None:
            return Err(ErrorKind.NOT_FOUND, f"Order {order_number} not found")
        if not principal.may_access(order.purchaser_id):
            return Err(ErrorKind.AUTHORIZATION, "You are not allowed to view this order")
        return Ok(order)


class GetOrderStatsHandler:

    def __init__(self, order_ledger: OrderLedger) -> None:
        self._order_ledger = order_ledger

    def handle(self, principal: Principal, all_users: bool = False) -> Result[OrderStats]:
        """Totals for the principal's orders, or for everyone's (admins only)."""
        if all_users and not principal.is_admin:
            return Err(ErrorKind.AUTHORIZATION, "Only administrators can see every order")
        try:
            if all_users:
                orders = self._order_ledger.list_all()
            else:
                orders = self._order_ledger.list_by_purchaser(principal.user_id)
        except Exception:
            return _internal_error("order.stats_failed")
        return Ok(order_stats(orders))


def order_stats(orders: list[Order]) -> OrderStats:
    """Overall totals plus one entry per status present, in lifecycle order."""
    total = Money.sum(o.total_amount for o in orders)
    by_status = []
    for status in OrderStatus:
        matching = [o for o in orders if o.status == status]
        if matching:
            by_status.append(
                OrderStatusTotals(
                    status=status.value,
                    count=len(matching),
                    total_amount=str(Money.sum(o.total_amount for o in matching)),
                )
            )
    return OrderStats(
        total_orders=len(orders),
        total_amount=str(total),
        average_amount=str(total.averaged_over(len(orders))),
        by_status=by_status,
    )
