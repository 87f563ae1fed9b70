"""Data Transfer Objects: plain containers that cross layer boundaries.

The ``Principal`` is the explicit caller identity passed into every
handler; nothing reads identity from ambient request state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from storefront.domain.model.order import Order
from storefront.domain.model.ticket import Ticket


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    user_id: str
    email: str
    first_name: str = ""
    is_admin: bool = False

    def owns(self, owner_id: str) -> bool:
        return str(self.user_id) == str(owner_id)

    def may_access(self, owner_id: str) -> bool:
        return self.is_admin or self.owns(owner_id)


@dataclass(frozen=True)
class PurchaseSummary:
    total_amount: str  # formatted, e.g. "$45.00"
    successful_products: int
    failed_products: int
    is_partial: bool


@dataclass(frozen=True)
class PurchaseOutcome:
    ticket: Ticket
    summary: PurchaseSummary


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

    @staticmethod
    def for_page(page: int, limit: int, total: int) -> Pagination:
        total_pages = math.ceil(total / limit)
        return Pagination(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


@dataclass(frozen=True)
class OrderPage:
    orders: list[Order]
    pagination: Pagination


@dataclass(frozen=True)
class TicketPage:
    tickets: list[Ticket]
    pagination: Pagination


@dataclass(frozen=True)
class PurchaseStats:
    total_tickets: int
    total_amount: str
    avg_amount: str
    completed_tickets: int
    partial_tickets: int
    failed_tickets: int
    cancelled_tickets: int
    success_rate: str  # e.g. "66.67%"
    first_purchase: str | None
    last_purchase: str | None


@dataclass(frozen=True)
class ProductSales:
    """How one product sold across completed and partial tickets."""

    product_id: str
    title: str
    total_quantity: int
    total_revenue: str
    times_sold: int  # number of tickets carrying the product


@dataclass(frozen=True)
class MonthlySales:
    month: int  # 1-12
    month_name: str
    total_sales: str
    total_tickets: int
    avg_ticket: str


@dataclass(frozen=True)
class OrderStatusTotals:
    status: str
    count: int
    total_amount: str


@dataclass(frozen=True)
class OrderStats:
    total_orders: int
    total_amount: str
    average_amount: str
    by_status: list[OrderStatusTotals]
