"""Integration tests for the Cancel Ticket use case."""

from storefront.application.cancel_ticket import CancelTicketHandler
from storefront.application.dto import Principal
from storefront.application.result import ErrorKind
from storefront.domain.model.product import Product
from storefront.domain.model.ticket import PurchaseLineItem, Ticket, TicketStatus
from storefront.domain.model.value_objects import Money, Quantity
from tests.fakes import FakeCatalogStore, FakeTicketLedger

ANA = Principal(user_id="u1", email="ana@example.com")
BOB = Principal(user_id="u2", email="bob@example.com")


def _setup():
    catalog = FakeCatalogStore([
        Product(id="A", name="Apple", price=Money.of("10.00"), stock=5),
        Product(id="C", name="Cherry", price=Money.of("7.50"), stock=2),
    ])
    tickets = FakeTicketLedger()
    return catalog, tickets, CancelTicketHandler(tickets, catalog)


def _pending_ticket(catalog, tickets, owner="u1", *lines) -> Ticket:
    """A ticket that debited *lines* and was never finalized."""
    ticket = Ticket.open(
        code=f"TICKET-TEST-{len(tickets.list_all()):06d}",
        purchaser_id=owner,
        purchaser_email="ana@example.com",
        payment_method="cash",
    )
    tickets.add(ticket)
    for product_id, qty in lines:
        product = catalog.get_product(product_id)
        catalog.decrement(product_id, qty)
        ticket.record_line(
            PurchaseLineItem(product_id, product.name, product.price, Quantity(qty))
        )
    tickets.save(ticket)
    return ticket


class TestCancelTicket:

    def test_cancel_restores_stock(self):
        catalog, tickets, handler = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 3), ("C", 2))
        assert catalog.get_stock("A") == 2

        result = handler.handle(ticket.id, ANA, "wrong size")

        assert result.ok
        assert result.message == "Ticket cancelled"
        assert result.value.status == TicketStatus.CANCELLED
        assert catalog.get_stock("A") == 5
        assert catalog.get_stock("C") == 2
        stored = tickets.get_by_id(ticket.id)
        assert stored.status == TicketStatus.CANCELLED
        assert stored.notes == "Cancelled: wrong size"

    def test_second_cancel_does_not_restock_twice(self):
        catalog, tickets, handler = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 3))

        handler.handle(ticket.id, ANA)
        result = handler.handle(ticket.id, ANA)

        assert result.kind == ErrorKind.VALIDATION
        assert result.message == "Only pending tickets can be cancelled"
        assert catalog.get_stock("A") == 5

    def test_finalized_ticket_cannot_be_cancelled(self):
        catalog, tickets, handler = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 1))
        ticket.finalize(ticket.line_items, [])
        tickets.save(ticket)

        result = handler.handle(ticket.id, ANA)

        assert result.kind == ErrorKind.VALIDATION
        assert result.status_code == 400
        assert catalog.get_stock("A") == 4

    def test_only_owner_may_cancel(self):
        catalog, tickets, handler = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 1))

        result = handler.handle(ticket.id, BOB)

        assert result.kind == ErrorKind.AUTHORIZATION
        assert result.status_code == 403
        assert tickets.get_by_id(ticket.id).status == TicketStatus.PENDING

    def test_missing_ticket(self):
        _, _, handler = _setup()

        result = handler.handle(999, ANA)

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.message == "Ticket #999 not found"

    def test_lost_race_restores_nothing(self):
        catalog, tickets, _ = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 2))

        class RacingLedger(FakeTicketLedger):
            """Another cancellation lands between our read and our write."""

            def transition_status(self, ticket_id, expected, ticket):
                rival = tickets.get_by_id(ticket_id)
                rival.cancel("rival")
                tickets.save(rival)
                return tickets.transition_status(ticket_id, expected, ticket)

            def get_by_id(self, ticket_id):
                return tickets.get_by_id(ticket_id)

        result = CancelTicketHandler(RacingLedger(), catalog).handle(ticket.id, ANA)

        assert result.kind == ErrorKind.VALIDATION
        assert catalog.get_stock("A") == 3

    def test_deleted_product_is_skipped(self):
        catalog, tickets, handler = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 1), ("C", 1))
        catalog.remove("C")

        result = handler.handle(ticket.id, ANA)

        assert result.ok
        assert catalog.get_stock("A") == 5

    def test_line_recorded_during_cancel_is_restored_too(self):
        catalog, tickets, _ = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 2))
        landed = []

        class PurchaseLandsFirst(FakeTicketLedger):
            """A purchase records another line between our read and our write."""

            def transition_status(self, ticket_id, expected, ticket):
                if not landed:
                    landed.append(ticket_id)
                    progress = tickets.get_by_id(ticket_id)
                    catalog.decrement("C", 1)
                    progress.record_line(
                        PurchaseLineItem("C", "Cherry", Money.of("7.50"), Quantity(1))
                    )
                    assert tickets.transition_status(ticket_id, TicketStatus.PENDING, progress)
                return tickets.transition_status(ticket_id, expected, ticket)

            def get_by_id(self, ticket_id):
                return tickets.get_by_id(ticket_id)

        result = CancelTicketHandler(PurchaseLandsFirst(), catalog).handle(ticket.id, ANA)

        assert result.ok
        assert [i.product_id for i in result.value.line_items] == ["A", "C"]
        assert catalog.get_stock("A") == 5
        assert catalog.get_stock("C") == 2

    def test_gives_up_when_the_ticket_never_settles(self):
        catalog, tickets, _ = _setup()
        ticket = _pending_ticket(catalog, tickets, "u1", ("A", 1))

        class AlwaysStale(FakeTicketLedger):
            def get_by_id(self, ticket_id):
                return tickets.get_by_id(ticket_id)

            def transition_status(self, ticket_id, expected, ticket):
                return False

        result = CancelTicketHandler(AlwaysStale(), catalog, max_attempts=3).handle(ticket.id, ANA)

        assert result.kind == ErrorKind.CONFLICT
        assert catalog.get_stock("A") == 4
        assert tickets.get_by_id(ticket.id).status == TicketStatus.PENDING
