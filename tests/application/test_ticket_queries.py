"""Tests for ticket listing, lookup by code and purchase statistics."""

from datetime import datetime, timedelta, timezone

import pytest

from storefront.application.dto import Principal
from storefront.application.result import ErrorKind
from storefront.application.ticket_queries import (
    GetAllTicketsHandler,
    GetPurchaseStatsHandler,
    GetSalesByMonthHandler,
    GetTicketByCodeHandler,
    GetTicketsByDateRangeHandler,
    GetTopSellingProductsHandler,
    GetUserTicketsHandler,
    summarize,
)
from storefront.domain.model.ticket import (
    FailedLineItem,
    FailureReason,
    PurchaseLineItem,
    Ticket,
)
from storefront.domain.model.value_objects import Money, Quantity
from tests.fakes import FakeTicketLedger

ANA = Principal(user_id="u1", email="ana@example.com")
BOB = Principal(user_id="u2", email="bob@example.com")
ADMIN = Principal(user_id="root", email="root@example.com", is_admin=True)

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(ledger, code, owner, price, days, failed=False) -> Ticket:
    ticket = Ticket.open(code=code, purchaser_id=owner, purchaser_email="x@example.com",
                         payment_method="cash")
    ticket.purchase_datetime = T0 + timedelta(days=days)
    ledger.add(ticket)
    failures = [
        FailedLineItem("Z", "Zucchini", 1, 0, FailureReason.OUT_OF_STOCK)
    ] if failed else []
    ticket.finalize(
        [PurchaseLineItem("A", "Apple", Money.of(price), Quantity(1))], failures
    )
    ledger.save(ticket)
    return ticket


def _ledger() -> FakeTicketLedger:
    ledger = FakeTicketLedger()
    _ticket(ledger, "TICKET-1-AAAAAA", "u1", "10.00", days=0)
    _ticket(ledger, "TICKET-2-BBBBBB", "u1", "20.00", days=2, failed=True)
    _ticket(ledger, "TICKET-3-CCCCCC", "u1", "5.00", days=1)
    _ticket(ledger, "TICKET-4-DDDDDD", "u2", "99.00", days=3)
    return ledger


class TestGetUserTickets:

    def test_newest_first_and_only_own(self):
        result = GetUserTicketsHandler(_ledger()).handle(ANA)
        assert [t.code for t in result.value] == [
            "TICKET-2-BBBBBB", "TICKET-3-CCCCCC", "TICKET-1-AAAAAA",
        ]

    def test_no_tickets(self):
        assert GetUserTicketsHandler(FakeTicketLedger()).handle(ANA).value == []


class TestGetTicketByCode:

    def test_lookup_is_case_insensitive(self):
        result = GetTicketByCodeHandler(_ledger()).handle("ticket-1-aaaaaa", ANA)
        assert result.ok
        assert result.value.code == "TICKET-1-AAAAAA"

    def test_other_user_is_refused(self):
        result = GetTicketByCodeHandler(_ledger()).handle("TICKET-1-AAAAAA", BOB)
        assert result.kind == ErrorKind.AUTHORIZATION

    def test_admin_may_read_any(self):
        assert GetTicketByCodeHandler(_ledger()).handle("TICKET-1-AAAAAA", ADMIN).ok

    def test_internal_lookup_without_principal(self):
        assert GetTicketByCodeHandler(_ledger()).handle("TICKET-4-DDDDDD").ok

    def test_missing(self):
        result = GetTicketByCodeHandler(_ledger()).handle("TICKET-0-000000", ANA)
        assert result.kind == ErrorKind.NOT_FOUND
        assert result.status_code == 404


class TestPurchaseStats:

    def test_user_stats(self):
        stats = GetPurchaseStatsHandler(_ledger()).handle(ANA).value

        assert stats.total_tickets == 3
        assert stats.total_amount == "$35.00"
        assert stats.avg_amount == "$11.67"
        assert stats.completed_tickets == 2
        assert stats.partial_tickets == 1
        assert stats.success_rate == "66.67%"
        assert stats.first_purchase == T0.isoformat()
        assert stats.last_purchase == (T0 + timedelta(days=2)).isoformat()

    def test_global_stats(self):
        stats = GetPurchaseStatsHandler(_ledger()).handle(None).value
        assert stats.total_tickets == 4
        assert stats.total_amount == "$134.00"

    def test_empty(self):
        stats = summarize([])
        assert stats.total_tickets == 0
        assert stats.total_amount == "$0.00"
        assert stats.avg_amount == "$0.00"
        assert stats.success_rate == "0%"
        assert stats.first_purchase is None


class TestGetAllTickets:

    def test_admin_sees_every_ticket_newest_first(self):
        page = GetAllTicketsHandler(_ledger()).handle(ADMIN).value

        assert [t.code for t in page.tickets] == [
            "TICKET-4-DDDDDD", "TICKET-2-BBBBBB", "TICKET-3-CCCCCC", "TICKET-1-AAAAAA",
        ]
        assert page.pagination.total_items == 4

    def test_paging_and_status_filter(self):
        handler = GetAllTicketsHandler(_ledger())

        second = handler.handle(ADMIN, page=2, limit=3).value
        partial = handler.handle(ADMIN, status="partially_completed").value

        assert [t.code for t in second.tickets] == ["TICKET-1-AAAAAA"]
        assert second.pagination.has_prev_page and not second.pagination.has_next_page
        assert [t.code for t in partial.tickets] == ["TICKET-2-BBBBBB"]

    def test_non_admin_refused(self):
        result = GetAllTicketsHandler(_ledger()).handle(ANA)
        assert result.kind == ErrorKind.AUTHORIZATION
        assert result.status_code == 403

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 101}, {"status": "lost"}])
    def test_invalid_parameters(self, kwargs):
        result = GetAllTicketsHandler(_ledger()).handle(ADMIN, **kwargs)
        assert result.kind == ErrorKind.VALIDATION


class TestTicketsByDateRange:

    def test_user_only_sees_own_tickets_in_range(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(
            ANA, T0, T0 + timedelta(days=1)
        )
        assert [t.code for t in result.value] == ["TICKET-3-CCCCCC", "TICKET-1-AAAAAA"]

    def test_admin_sees_everyone_in_range(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(
            ADMIN, T0 + timedelta(days=1), T0 + timedelta(days=3)
        )
        assert [t.code for t in result.value] == [
            "TICKET-4-DDDDDD", "TICKET-2-BBBBBB", "TICKET-3-CCCCCC",
        ]

    def test_admin_may_narrow_to_one_purchaser(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(
            ADMIN, T0, T0 + timedelta(days=5), purchaser_id="u2"
        )
        assert [t.code for t in result.value] == ["TICKET-4-DDDDDD"]

    def test_naive_bounds_are_utc(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(
            ANA, datetime(2024, 3, 1), datetime(2024, 3, 1, 23, 59, 59)
        )
        assert [t.code for t in result.value] == ["TICKET-1-AAAAAA"]

    def test_other_purchaser_refused(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(
            ANA, T0, T0 + timedelta(days=5), purchaser_id="u2"
        )
        assert result.kind == ErrorKind.AUTHORIZATION

    def test_reversed_range(self):
        result = GetTicketsByDateRangeHandler(_ledger()).handle(ANA, T0 + timedelta(days=1), T0)
        assert result.kind == ErrorKind.VALIDATION


def _sold(ledger, code, *lines, cancel=False) -> None:
    ticket = Ticket.open(code=code, purchaser_id="u1", purchaser_email="x@example.com",
                         payment_method="cash")
    ledger.add(ticket)
    items = [
        PurchaseLineItem(pid, title, Money.of(price), Quantity(qty))
        for pid, title, price, qty in lines
    ]
    if cancel:
        for item in items:
            ticket.record_line(item)
        ticket.cancel("changed mind")
    else:
        ticket.finalize(items, [])
    ledger.save(ticket)


class TestTopSellingProducts:

    def _ledger(self) -> FakeTicketLedger:
        ledger = FakeTicketLedger()
        _sold(ledger, "TICKET-1-AAAAAA", ("A", "Apple", "10.00", 2), ("C", "Cherry", "7.50", 1))
        _sold(ledger, "TICKET-2-BBBBBB", ("C", "Cherry", "7.50", 4))
        _sold(ledger, "TICKET-3-CCCCCC", ("A", "Apple", "10.00", 9), cancel=True)
        return ledger

    def test_ranked_by_units_sold(self):
        top = GetTopSellingProductsHandler(self._ledger()).handle(ADMIN).value

        assert [(p.product_id, p.total_quantity, p.total_revenue, p.times_sold) for p in top] == [
            ("C", 5, "$37.50", 2),
            ("A", 2, "$20.00", 1),
        ]
        assert top[0].title == "Cherry"

    def test_limit(self):
        top = GetTopSellingProductsHandler(self._ledger()).handle(ADMIN, limit=1).value
        assert [p.product_id for p in top] == ["C"]

    def test_non_admin_refused(self):
        result = GetTopSellingProductsHandler(self._ledger()).handle(ANA)
        assert result.kind == ErrorKind.AUTHORIZATION

    def test_limit_must_be_positive(self):
        result = GetTopSellingProductsHandler(self._ledger()).handle(ADMIN, limit=0)
        assert result.kind == ErrorKind.VALIDATION


class TestSalesByMonth:

    def test_twelve_months_with_zeros(self):
        months = GetSalesByMonthHandler(_ledger()).handle(ADMIN, 2024).value

        assert [m.month for m in months] == list(range(1, 13))
        assert months[0].month_name == "January"
        assert (months[0].total_sales, months[0].total_tickets, months[0].avg_ticket) == (
            "$0.00", 0, "$0.00",
        )
        march = months[2]
        assert march.month_name == "March"
        assert (march.total_sales, march.total_tickets, march.avg_ticket) == ("$134.00", 4, "$33.50")

    def test_other_year_is_empty(self):
        months = GetSalesByMonthHandler(_ledger()).handle(ADMIN, 2023).value
        assert all(m.total_tickets == 0 for m in months)

    def test_non_admin_refused(self):
        result = GetSalesByMonthHandler(_ledger()).handle(ANA, 2024)
        assert result.kind == ErrorKind.AUTHORIZATION


class BrokenTicketLedger(FakeTicketLedger):
    """Every read fails the way a corrupt ledger file would."""

    def get_by_code(self, code):
        raise OSError("disk unreadable")

    def list_by_purchaser(self, purchaser_id):
        raise OSError("disk unreadable")

    def list_all(self):
        raise OSError("disk unreadable")


class TestTicketQueryFailures:

    @pytest.mark.parametrize(
        "query",
        [
            lambda ledger: GetUserTicketsHandler(ledger).handle(ANA),
            lambda ledger: GetTicketByCodeHandler(ledger).handle("TICKET-1-AAAAAA", ANA),
            lambda ledger: GetAllTicketsHandler(ledger).handle(ADMIN),
            lambda ledger: GetTicketsByDateRangeHandler(ledger).handle(ADMIN, T0, T0),
            lambda ledger: GetPurchaseStatsHandler(ledger).handle(ANA),
            lambda ledger: GetTopSellingProductsHandler(ledger).handle(ADMIN),
            lambda ledger: GetSalesByMonthHandler(ledger).handle(ADMIN, 2024),
        ],
    )
    def test_ledger_failure_is_internal_error(self, query):
        result = query(BrokenTicketLedger())

        assert result.kind == ErrorKind.INTERNAL
        assert result.status_code == 500
        assert result.message == "Internal error while reading tickets"
