"""Tests for the admin-only order status workflow."""

from storefront.application.dto import Principal
from storefront.application.result import ErrorKind
from storefront.application.update_order_status import UpdateOrderStatusHandler
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money, Quantity, ShippingAddress
from tests.fakes import FakeCatalogStore, FakeOrderLedger, RecordingDispatcher, inline_notifier

ADMIN = Principal(user_id="root", email="root@example.com", is_admin=True)
ANA = Principal(user_id="u1", email="ana@example.com")


def _setup():
    catalog = FakeCatalogStore([
        Product(id="A", name="Apple", price=Money.of("10.00"), stock=3),
    ])
    orders = FakeOrderLedger()
    order = Order.create(
        purchaser_id="u1",
        purchaser_email="ana@example.com",
        items=[OrderLineItem("A", "Apple", Money.of("10.00"), Quantity(2))],
        shipping_address=ShippingAddress("Ana", "Main St 1", "Lima", "15001", "555"),
        payment_method="credit_card",
    )
    order.order_number = "ORD-20240309-001"
    orders.add(order)
    dispatcher = RecordingDispatcher()
    handler = UpdateOrderStatusHandler(orders, catalog, inline_notifier(dispatcher))
    return handler, catalog, orders, order.id, dispatcher


class TestUpdateOrderStatus:

    def test_admin_moves_order_forward(self):
        handler, _, orders, order_id, dispatcher = _setup()

        result = handler.handle(order_id, "paid", ADMIN)

        assert result.ok
        assert result.message == "Status updated to paid"
        assert orders.get_by_id(order_id).status == OrderStatus.PAID
        assert dispatcher.sent[0][1] == "Order update ORD-20240309-001"

    def test_shipping_records_tracking_number(self):
        handler, _, orders, order_id, _ = _setup()
        handler.handle(order_id, "processing", ADMIN)

        handler.handle(order_id, "shipped", ADMIN, tracking_number="TRK-42")

        stored = orders.get_by_id(order_id)
        assert stored.status == OrderStatus.SHIPPED
        assert stored.tracking_number == "TRK-42"
        assert "shipped_at" in stored.status_timestamps

    def test_non_admin_refused(self):
        handler, _, orders, order_id, _ = _setup()

        result = handler.handle(order_id, "paid", ANA)

        assert result.kind == ErrorKind.AUTHORIZATION
        assert orders.get_by_id(order_id).status == OrderStatus.PENDING

    def test_unknown_status(self):
        handler, _, _, order_id, _ = _setup()
        assert handler.handle(order_id, "lost", ADMIN).kind == ErrorKind.VALIDATION

    def test_illegal_transition(self):
        handler, _, _, order_id, _ = _setup()

        result = handler.handle(order_id, "delivered", ADMIN)

        assert result.kind == ErrorKind.VALIDATION
        assert "from pending to delivered" in result.message

    def test_missing_order(self):
        handler, _, _, _, _ = _setup()
        assert handler.handle(42, "paid", ADMIN).kind == ErrorKind.NOT_FOUND

    def test_cancel_restocks(self):
        handler, catalog, _, order_id, _ = _setup()

        handler.handle(order_id, "cancelled", ADMIN)

        assert catalog.get_stock("A") == 5

    def test_cancelled_order_stays_cancelled(self):
        handler, catalog, _, order_id, _ = _setup()
        handler.handle(order_id, "cancelled", ADMIN)

        result = handler.handle(order_id, "cancelled", ADMIN)

        assert result.kind == ErrorKind.VALIDATION
        assert catalog.get_stock("A") == 5

    def test_concurrent_update_is_a_conflict(self):
        handler, catalog, orders, order_id, _ = _setup()
        stale = orders.get_by_id(order_id)
        handler.handle(order_id, "paid", ADMIN)

        class StaleReads(FakeOrderLedger):
            def get_by_id(self, _order_id):
                return stale

            def transition_status(self, oid, expected, order):
                return orders.transition_status(oid, expected, order)

        result = UpdateOrderStatusHandler(StaleReads(), catalog, inline_notifier()).handle(
            order_id, "cancelled", ADMIN
        )

        assert result.kind == ErrorKind.CONFLICT
        assert orders.get_by_id(order_id).status == OrderStatus.PAID
        assert catalog.get_stock("A") == 3

    def test_ledger_failure_is_internal_error(self):
        handler, catalog, orders, order_id, dispatcher = _setup()

        class BrokenWrites(FakeOrderLedger):
            def get_by_id(self, oid):
                return orders.get_by_id(oid)

            def transition_status(self, oid, expected, order):
                raise OSError("disk full")

        result = UpdateOrderStatusHandler(BrokenWrites(), catalog, inline_notifier(dispatcher)).handle(
            order_id, "cancelled", ADMIN
        )

        assert result.kind == ErrorKind.INTERNAL
        assert result.message == "Internal error while updating the order status"
        assert orders.get_by_id(order_id).status == OrderStatus.PENDING
        assert catalog.get_stock("A") == 3
        assert dispatcher.sent == []
