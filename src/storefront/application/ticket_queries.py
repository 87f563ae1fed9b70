"""Application services: ticket queries.

Owners read their own tickets; the reporting queries (every ticket, top
sellers, monthly sales) are reserved for administrators.  Each handler
turns an unexpected ledger failure into an ``INTERNAL`` result.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog

from storefront.application.dto import (
    MonthlySales,
    Pagination,
    Principal,
    ProductSales,
    PurchaseStats,
    TicketPage,
)
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.domain.model.ticket import Ticket, TicketStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.ticket_ledger import PurchaseLedger

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_TOP_PRODUCTS = 10

# Tickets that actually moved stock and money.
SOLD_STATUSES = frozenset({TicketStatus.COMPLETED, TicketStatus.PARTIALLY_COMPLETED})


def _internal_error(event: str) -> Err:
    logger.exception(event)
    return Err(ErrorKind.INTERNAL, "Internal error while reading tickets")


def _admins_only(principal: Principal) -> Err | None:
    if not principal.is_admin:
        return Err(ErrorKind.AUTHORIZATION, "Only administrators can run ticket reports")
    return None


class GetUserTicketsHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(self, principal: Principal) -> Result[list[Ticket]]:
        try:
            return Ok(self._ticket_ledger.list_by_purchaser(principal.user_id))
        except Exception:
            return _internal_error("ticket.list_failed")


class GetTicketByCodeHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(self, code: str, principal: Principal | None = None) -> Result[Ticket]:
        """Look a ticket up by code.

        Without a principal the lookup is unrestricted (internal callers);
        with one, only the owner or an admin may read it.
        """
        try:
            ticket = self._ticket_ledger.get_by_code(code.strip().upper())
        except Exception:
            return _internal_error("ticket.lookup_failed")
        if ticket is None:
            return Err(ErrorKind.NOT_FOUND, f"Ticket {code} not found")
        if principal is not None and not principal.may_access(ticket.purchaser_id):
            return Err(ErrorKind.AUTHORIZATION, "You are not allowed to view this ticket")
        return Ok(ticket)


class GetAllTicketsHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(
        self,
        principal: Principal,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Result[TicketPage]:
        """Every purchaser's tickets, newest first, one page at a time."""
        denied = _admins_only(principal)
        if denied is not None:
            return denied
        if page < 1:
            return Err(ErrorKind.VALIDATION, "Page must be 1 or greater")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            return Err(ErrorKind.VALIDATION, f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        wanted = None
        if status:
            try:
                wanted = TicketStatus(status)
            except ValueError:
                return Err(ErrorKind.VALIDATION, f"Unknown ticket status '{status}'")

        try:
            tickets = self._ticket_ledger.list_all()
        except Exception:
            return _internal_error("ticket.list_all_failed")

        if wanted is not None:
            tickets = [t for t in tickets if t.status == wanted]
        start = (page - 1) * limit
        return Ok(
            TicketPage(
                tickets=tickets[start:start + limit],
                pagination=Pagination.for_page(page, limit, len(tickets)),
            )
        )


class GetTicketsByDateRangeHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(
        self,
        principal: Principal,
        start: datetime,
        end: datetime,
        purchaser_id: str | None = None,
    ) -> Result[list[Ticket]]:
        """Tickets purchased within ``[start, end]``, newest first.

        Naive datetimes are read as UTC.  Admins see every purchaser (or
        the one named by *purchaser_id*); anyone else only sees their own.
        """
        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            return Err(ErrorKind.VALIDATION, "Start date must not be after end date")
        if purchaser_id is None and not principal.is_admin:
            purchaser_id = principal.user_id
        if purchaser_id is not None and not principal.may_access(purchaser_id):
            return Err(ErrorKind.AUTHORIZATION, "You are not allowed to view these tickets")

        try:
            if purchaser_id is None:
                tickets = self._ticket_ledger.list_all()
            else:
                tickets = self._ticket_ledger.list_by_purchaser(purchaser_id)
        except Exception:
            return _internal_error("ticket.range_failed")

        return Ok([t for t in tickets if start <= t.purchase_datetime <= end])


class GetPurchaseStatsHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(self, principal: Principal | None = None) -> Result[PurchaseStats]:
        """Aggregate the principal's tickets, or every ticket when None."""
        try:
            if principal is None:
                tickets = self._ticket_ledger.list_all()
            else:
                tickets = self._ticket_ledger.list_by_purchaser(principal.user_id)
        except Exception:
            return _internal_error("ticket.stats_failed")
        return Ok(summarize(tickets))


class GetTopSellingProductsHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(
        self, principal: Principal, limit: int = DEFAULT_TOP_PRODUCTS
    ) -> Result[list[ProductSales]]:
        denied = _admins_only(principal)
        if denied is not None:
            return denied
        if limit < 1:
            return Err(ErrorKind.VALIDATION, "Limit must be 1 or greater")
        try:
            tickets = self._ticket_ledger.list_all()
        except Exception:
            return _internal_error("ticket.top_products_failed")
        return Ok(top_selling(tickets, limit))


class GetSalesByMonthHandler:

    def __init__(self, ticket_ledger: PurchaseLedger) -> None:
        self._ticket_ledger = ticket_ledger

    def handle(self, principal: Principal, year: int) -> Result[list[MonthlySales]]:
        denied = _admins_only(principal)
        if denied is not None:
            return denied
        if not 1 <= year <= 9999:
            return Err(ErrorKind.VALIDATION, f"Invalid year {year}")
        try:
            tickets = self._ticket_ledger.list_all()
        except Exception:
            return _internal_error("ticket.sales_by_month_failed")
        return Ok(sales_by_month(tickets, year))


# --- Aggregations -------------------------------------------------------------


def summarize(tickets: list[Ticket]) -> PurchaseStats:
    def count(status: TicketStatus) -> int:
        return sum(1 for t in tickets if t.status == status)

    total = len(tickets)
    amount = Money.sum(t.amount for t in tickets)
    completed = count(TicketStatus.COMPLETED)
    rate = (
        Decimal(completed * 100) / Decimal(total)
    ).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) if total else None
    dates = sorted(t.purchase_datetime for t in tickets)

    return PurchaseStats(
        total_tickets=total,
        total_amount=str(amount),
        avg_amount=str(amount.averaged_over(total)),
        completed_tickets=completed,
        partial_tickets=count(TicketStatus.PARTIALLY_COMPLETED),
        failed_tickets=count(TicketStatus.FAILED),
        cancelled_tickets=count(TicketStatus.CANCELLED),
        success_rate=f"{rate}%" if rate is not None else "0%",
        first_purchase=dates[0].isoformat() if dates else None,
        last_purchase=dates[-1].isoformat() if dates else None,
    )


def top_selling(tickets: list[Ticket], limit: int) -> list[ProductSales]:
    """Rank products by units sold; ties go to the smaller product id."""
    totals: dict[str, dict] = {}
    for ticket in tickets:
        if ticket.status not in SOLD_STATUSES:
            continue
        for item in ticket.line_items:
            entry = totals.setdefault(
                item.product_id,
                {"title": item.title, "quantity": 0, "revenue": Money.zero(), "tickets": 0},
            )
            entry["quantity"] += item.quantity.value
            entry["revenue"] = entry["revenue"] + item.subtotal
            entry["tickets"] += 1

    ranked = sorted(totals.items(), key=lambda kv: (-kv[1]["quantity"], kv[0]))
    return [
        ProductSales(
            product_id=product_id,
            title=entry["title"],
            total_quantity=entry["quantity"],
            total_revenue=str(entry["revenue"]),
            times_sold=entry["tickets"],
        )
        for product_id, entry in ranked[:limit]
    ]


def sales_by_month(tickets: list[Ticket], year: int) -> list[MonthlySales]:
    """Twelve entries, January first; months without sales report zeros."""
    by_month: dict[int, list[Ticket]] = {month: [] for month in range(1, 13)}
    for ticket in tickets:
        when = _as_utc(ticket.purchase_datetime)
        if ticket.status in SOLD_STATUSES and when.year == year:
            by_month[when.month].append(ticket)

    result = []
    for month, sold in by_month.items():
        total = Money.sum(t.amount for t in sold)
        result.append(
            MonthlySales(
                month=month,
                month_name=calendar.month_name[month],
                total_sales=str(total),
                total_tickets=len(sold),
                avg_ticket=str(total.averaged_over(len(sold))),
            )
        )
    return result


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
