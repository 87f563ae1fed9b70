"""JSON-file-backed implementation of PurchaseLedger."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from storefront.domain.exceptions import ConflictError, NotFoundError
from storefront.domain.model.ticket import (
    FailedLineItem,
    FailureReason,
    LineItemStatus,
    PurchaseLineItem,
    Ticket,
    TicketStatus,
)
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.repository.ticket_ledger import PurchaseLedger
from storefront.infrastructure.persistence.json_file import JsonFile


class JsonTicketLedger(PurchaseLedger):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- PurchaseLedger interface ---------------------------------------------

    def add(self, ticket: Ticket) -> None:
        with self._file.locked():
            records = self._file.load()
            if any(raw["code"] == ticket.code for raw in records):
                raise ConflictError(f"Ticket code {ticket.code} already exists")
            ticket.id = max((raw["id"] for raw in records), default=0) + 1
            records.append(self._to_raw(ticket))
            self._file.persist(records)

    def save(self, ticket: Ticket) -> None:
        with self._file.locked():
            records = self._file.load()
            index = self._index_of(records, ticket.id)
            ticket.version += 1
            records[index] = self._to_raw(ticket)
            self._file.persist(records)

    def transition_status(
        self, ticket_id: int, expected: TicketStatus, ticket: Ticket
    ) -> bool:
        with self._file.locked():
            records = self._file.load()
            index = self._index_of(records, ticket_id)
            stored = records[index]
            if (
                stored["status"] != expected.value
                or stored.get("version", 0) != ticket.version
            ):
                return False
            ticket.version += 1
            records[index] = self._to_raw(ticket)
            self._file.persist(records)
            return True

    def get_by_id(self, ticket_id: int) -> Ticket | None:
        for raw in self._file.load():
            if raw["id"] == ticket_id:
                return self._to_domain(raw)
        return None

    def get_by_code(self, code: str) -> Ticket | None:
        for raw in self._file.load():
            if raw["code"] == code:
                return self._to_domain(raw)
        return None

    def list_by_purchaser(self, purchaser_id: str) -> list[Ticket]:
        return [t for t in self.list_all() if t.purchaser_id == purchaser_id]

    def list_all(self) -> list[Ticket]:
        tickets = [self._to_domain(raw) for raw in self._file.load()]
        tickets.sort(key=lambda t: t.purchase_datetime, reverse=True)
        return tickets

    @staticmethod
    def _index_of(records: list[dict], ticket_id: int | None) -> int:
        for i, raw in enumerate(records):
            if raw["id"] == ticket_id:
                return i
        raise NotFoundError(f"Ticket #{ticket_id} not found")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(ticket: Ticket) -> dict:
        return {
            "id": ticket.id,
            "code": ticket.code,
            "purchaser_id": ticket.purchaser_id,
            "purchaser_email": ticket.purchaser_email,
            "payment_method": ticket.payment_method,
            "status": ticket.status.value,
            "amount": str(ticket.amount.amount),
            "notes": ticket.notes,
            "purchase_datetime": ticket.purchase_datetime.isoformat(),
            "created_at": ticket.created_at.isoformat(),
            "updated_at": ticket.updated_at.isoformat(),
            "version": ticket.version,
            "products": [
                {
                    "product_id": item.product_id,
                    "title": item.title,
                    "price": str(item.unit_price.amount),
                    "currency": item.unit_price.currency,
                    "quantity": item.quantity.value,
                    "subtotal": str(item.subtotal.amount),
                    "status": item.status.value,
                }
                for item in ticket.line_items
            ],
            "failed_products": [
                {
                    "product_id": item.product_id,
                    "title": item.title,
                    "requested_quantity": item.requested_quantity,
                    "available_stock": item.available_stock,
                    "reason": item.reason.value,
                }
                for item in ticket.failed_items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Ticket:
        return Ticket(
            id=raw["id"],
            code=raw["code"],
            purchaser_id=raw["purchaser_id"],
            purchaser_email=raw.get("purchaser_email", ""),
            payment_method=raw["payment_method"],
            status=TicketStatus(raw["status"]),
            notes=raw.get("notes", ""),
            purchase_datetime=datetime.fromisoformat(raw["purchase_datetime"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            version=raw.get("version", 0),
            line_items=[
                PurchaseLineItem(
                    product_id=i["product_id"],
                    title=i["title"],
                    unit_price=Money(Decimal(i["price"]), i.get("currency", "USD")),
                    quantity=Quantity(i["quantity"]),
                    status=LineItemStatus(i.get("status", "available")),
                )
                for i in raw["products"]
            ],
            failed_items=[
                FailedLineItem(
                    product_id=f.get("product_id"),
                    title=f["title"],
                    requested_quantity=f["requested_quantity"],
                    available_stock=f["available_stock"],
                    reason=FailureReason(f["reason"]),
                )
                for f in raw["failed_products"]
            ],
        )
