"""JSON-file-backed implementation of OrderLedger."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from storefront.domain.exceptions import ConflictError, NotFoundError
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.value_objects import (
    Money,
    PaymentDetails,
    Quantity,
    ShippingAddress,
)
from storefront.domain.repository.order_ledger import OrderLedger
from storefront.domain.service.identifiers import parse_order_sequence
from storefront.infrastructure.persistence.json_file import JsonFile


def _date(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class JsonOrderLedger(OrderLedger):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- OrderLedger interface ------------------------------------------------

    def add(self, order: Order) -> None:
        with self._file.locked():
            records = self._file.load()
            if any(raw["order_number"] == order.order_number for raw in records):
                raise ConflictError(f"Order number {order.order_number} already exists")
            order.id = max((raw["id"] for raw in records), default=0) + 1
            records.append(self._to_raw(order))
            self._file.persist(records)

    def save(self, order: Order) -> None:
        with self._file.locked():
            records = self._file.load()
            records[self._index_of(records, order.id)] = self._to_raw(order)
            self._file.persist(records)

    def transition_status(
        self, order_id: int, expected: OrderStatus, order: Order
    ) -> bool:
        with self._file.locked():
            records = self._file.load()
            index = self._index_of(records, order_id)
            if records[index]["status"] != expected.value:
                return False
            records[index] = self._to_raw(order)
            self._file.persist(records)
            return True

    def get_by_id(self, order_id: int) -> Order | None:
        for raw in self._file.load():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def get_by_number(self, order_number: str) -> Order | None:
        for raw in self._file.load():
            if raw["order_number"] == order_number:
                return self._to_domain(raw)
        return None

    def list_by_purchaser(self, purchaser_id: str) -> list[Order]:
        return [
            self._to_domain(raw)
            for raw in self._file.load()
            if raw["purchaser_id"] == purchaser_id
        ]

    def list_all(self) -> list[Order]:
        orders = [self._to_domain(raw) for raw in self._file.load()]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def latest_number_with_prefix(self, prefix: str) -> str | None:
        numbers = [
            raw["order_number"]
            for raw in self._file.load()
            if raw["order_number"].startswith(prefix)
        ]
        return max(numbers, key=parse_order_sequence, default=None)

    @staticmethod
    def _index_of(records: list[dict], order_id: int | None) -> int:
        for i, raw in enumerate(records):
            if raw["id"] == order_id:
                return i
        raise NotFoundError(f"Order #{order_id} not found")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        address = order.shipping_address
        return {
            "id": order.id,
            "order_number": order.order_number,
            "purchaser_id": order.purchaser_id,
            "purchaser_email": order.purchaser_email,
            "status": order.status.value,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "price": str(item.unit_price.amount),
                    "currency": item.unit_price.currency,
                    "quantity": item.quantity.value,
                    "subtotal": str(item.subtotal.amount),
                }
                for item in order.items
            ],
            "shipping_address": {
                "name": address.name,
                "address": address.address,
                "city": address.city,
                "postal_code": address.postal_code,
                "phone": address.phone,
            },
            "payment_method": order.payment_method,
            "payment_details": {
                "card_last_four": order.payment_details.card_last_four,
                "card_type": order.payment_details.card_type,
            },
            "shipping_cost": str(order.shipping_cost.amount),
            "total_amount": str(order.total_amount.amount),
            "tracking_number": order.tracking_number,
            "estimated_delivery": (
                order.estimated_delivery.isoformat() if order.estimated_delivery else None
            ),
            "actual_delivery": (
                order.actual_delivery.isoformat() if order.actual_delivery else None
            ),
            "notes": order.notes,
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
            "status_timestamps": {
                key: value.isoformat() for key, value in order.status_timestamps.items()
            },
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        return Order(
            id=raw["id"],
            order_number=raw["order_number"],
            purchaser_id=raw["purchaser_id"],
            purchaser_email=raw.get("purchaser_email", ""),
            items=[
                OrderLineItem(
                    product_id=i["product_id"],
                    name=i["name"],
                    unit_price=Money(Decimal(i["price"]), i.get("currency", "USD")),
                    quantity=Quantity(i["quantity"]),
                )
                for i in raw["items"]
            ],
            shipping_address=ShippingAddress(**raw["shipping_address"]),
            payment_method=raw["payment_method"],
            payment_details=PaymentDetails(**raw.get("payment_details", {})),
            shipping_cost=Money(Decimal(raw.get("shipping_cost", "0"))),
            status=OrderStatus(raw["status"]),
            tracking_number=raw.get("tracking_number"),
            estimated_delivery=_date(raw.get("estimated_delivery")),
            actual_delivery=_date(raw.get("actual_delivery")),
            notes=raw.get("notes", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            status_timestamps={
                key: datetime.fromisoformat(value)
                for key, value in raw.get("status_timestamps", {}).items()
            },
        )
