"""Application service: Cancel Ticket use case.

Only the owner may cancel, and only while the ticket is ``pending``.  The
status change is claimed with a compare-and-swap on the ticket's version
before any stock is credited, so two racing cancellations restore stock at
most once and a purchase still recording lines never has a debited line
left out of the restock.
"""

from __future__ import annotations

import structlog

from storefront.application.dto import Principal
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.domain.exceptions import NotFoundError
from storefront.domain.model.ticket import Ticket, TicketStatus
from storefront.domain.repository.stock_ledger import StockLedger
from storefront.domain.repository.ticket_ledger import PurchaseLedger

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CANCEL_ATTEMPTS = 5


class CancelTicketHandler:

    def __init__(
        self,
        ticket_ledger: PurchaseLedger,
        stock_ledger: StockLedger,
        max_attempts: int = DEFAULT_MAX_CANCEL_ATTEMPTS,
    ) -> None:
        self._ticket_ledger = ticket_ledger
        self._stock_ledger = stock_ledger
        self._max_attempts = max_attempts

    def handle(self, ticket_id: int, principal: Principal, reason: str = "") -> Result[Ticket]:
        with structlog.contextvars.bound_contextvars(
            user_id=principal.user_id, ticket_id=ticket_id
        ):
            try:
                for attempt in range(1, self._max_attempts + 1):
                    result = self._cancel(ticket_id, principal, reason)
                    if result is not None:
                        return result
                    logger.info("ticket.cancel_retry", attempt=attempt)
            except Exception:
                logger.exception("ticket.cancel_failed")
                return Err(ErrorKind.INTERNAL, "Internal error while cancelling the ticket")

            logger.warning("ticket.cancel_gave_up", attempts=self._max_attempts)
            return Err(
                ErrorKind.CONFLICT,
                f"Ticket #{ticket_id} kept changing while it was cancelled; retry later",
            )

    def _cancel(
        self, ticket_id: int, principal: Principal, reason: str
    ) -> Result[Ticket] | None:
        """One read-check-swap round; None means the ticket changed under us."""
        ticket = self._ticket_ledger.get_by_id(ticket_id)
        if ticket is None:
            return Err(ErrorKind.NOT_FOUND, f"Ticket #{ticket_id} not found")

        if not principal.owns(ticket.purchaser_id):
            return Err(ErrorKind.AUTHORIZATION, "You are not allowed to cancel this ticket")

        if ticket.status != TicketStatus.PENDING:
            return Err(ErrorKind.VALIDATION, "Only pending tickets can be cancelled")

        ticket.cancel(reason)
        if not self._ticket_ledger.transition_status(ticket_id, TicketStatus.PENDING, ticket):
            return None

        # The swap froze exactly these lines: later purchase writes will fail.
        for item in ticket.line_items:
            try:
                self._stock_ledger.increment(item.product_id, item.quantity.value)
            except NotFoundError:
                logger.warning("ticket.restock_skipped", product_id=item.product_id)

        logger.info("ticket.cancelled", code=ticket.code, restored=len(ticket.line_items))
        return Ok(ticket, message="Ticket cancelled")
