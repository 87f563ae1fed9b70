"""Abstract ledger for Ticket aggregates."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.ticket import Ticket, TicketStatus


class PurchaseLedger(ABC):

    @abstractmethod
    def add(self, ticket: Ticket) -> None:
        """Insert a new ticket and assign its ID.

        Raises ConflictError if another ticket already uses the same code.
        """

    @abstractmethod
    def save(self, ticket: Ticket) -> None:
        """Overwrite an existing ticket and bump its version."""

    @abstractmethod
    def transition_status(
        self, ticket_id: int, expected: TicketStatus, ticket: Ticket
    ) -> bool:
        """Write *ticket* only if the stored copy is still the one it was read from.

        The stored status must equal *expected* and the stored version must
        equal ``ticket.version``; on success the version is bumped on both.
        Returns False (and writes nothing) when another writer got there
        first.  Purchase progress and cancellation both write through here.
        """

    @abstractmethod
    def get_by_id(self, ticket_id: int) -> Ticket | None:
        """Return a ticket by its ID, or None."""

    @abstractmethod
    def get_by_code(self, code: str) -> Ticket | None:
        """Return a ticket by its unique code, or None."""

    @abstractmethod
    def list_by_purchaser(self, purchaser_id: str) -> list[Ticket]:
        """Return the purchaser's tickets, newest first."""

    @abstractmethod
    def list_all(self) -> list[Ticket]:
        """Return every ticket, newest first."""
