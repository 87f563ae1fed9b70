"""Application service: Process Purchase use case (partial fulfillment).

Turns the caller's cart into a ticket.  Lines that cannot be honored are
recorded as failures instead of aborting the whole purchase.

Mutation order is: persist the pending ticket, debit stock line by line
(recording each debited line on the pending ticket), finalize the ticket,
clear the cart, then notify detached from the result.  Every ticket write
after the first is a compare-and-swap against the pending ticket, so a
cancellation that lands mid-purchase stops the debiting; the one line
debited but not yet recorded is given back here.
"""

from __future__ import annotations

import random
import time
from enum import Enum
from typing import Callable

import structlog

from storefront.application.dto import Principal, PurchaseOutcome, PurchaseSummary
from storefront.application.notifications import DetachedNotifier, purchase_confirmation
from storefront.application.result import Err, ErrorKind, Ok, Result
from storefront.application.retry import DEFAULT_MAX_ATTEMPTS, retry_on_conflict
from storefront.domain.exceptions import (
    DomainException,
    InsufficientStockError,
    NotFoundError,
)
from storefront.domain.model.cart import Cart
from storefront.domain.model.ticket import (
    DEFAULT_PAYMENT_METHOD,
    FailedLineItem,
    FailureReason,
    PurchaseLineItem,
    Ticket,
    TicketStatus,
    validate_payment_method,
)
from storefront.domain.model.value_objects import Quantity
from storefront.domain.repository.cart_store import CartStore
from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.stock_ledger import StockLedger
from storefront.domain.repository.ticket_ledger import PurchaseLedger
from storefront.domain.service.identifiers import generate_ticket_code
from storefront.domain.service.purchase_validator import (
    UNKNOWN_PRODUCT_TITLE,
    FulfillableLine,
    PurchaseValidator,
)

logger = structlog.get_logger(__name__)


class CartClearPolicy(Enum):
    """What happens to the cart once a ticket is finalized."""

    CLEAR_ALL = "clear_all"  # inventory is the source of truth; cart intent is transient
    KEEP_UNFULFILLED = "keep_unfulfilled"


class ProcessPurchaseHandler:

    def __init__(
        self,
        cart_store: CartStore,
        catalog: CatalogStore,
        stock_ledger: StockLedger,
        ticket_ledger: PurchaseLedger,
        notifier: DetachedNotifier,
        clear_policy: CartClearPolicy = CartClearPolicy.CLEAR_ALL,
        max_code_attempts: int = DEFAULT_MAX_ATTEMPTS,
        code_factory: Callable[[], str] = generate_ticket_code,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._cart_store = cart_store
        self._catalog = catalog
        self._stock_ledger = stock_ledger
        self._ticket_ledger = ticket_ledger
        self._notifier = notifier
        self._clear_policy = clear_policy
        self._max_code_attempts = max_code_attempts
        self._code_factory = code_factory
        self._sleep = sleep
        self._rng = rng

    def handle(
        self,
        principal: Principal,
        payment_method: str = DEFAULT_PAYMENT_METHOD,
        notes: str = "",
    ) -> Result[PurchaseOutcome]:
        with structlog.contextvars.bound_contextvars(user_id=principal.user_id):
            try:
                return self._process(principal, payment_method, notes)
            except DomainException as exc:
                logger.warning("purchase.rejected", error=str(exc))
                return Err.from_exception(exc)
            except Exception:
                logger.exception("purchase.internal_error")
                return Err(ErrorKind.INTERNAL, "Internal error while processing the purchase")

    # --- Workflow -------------------------------------------------------------

    def _process(
        self, principal: Principal, payment_method: str, notes: str
    ) -> Result[PurchaseOutcome]:
        validate_payment_method(payment_method)

        cart = self._cart_store.get_cart(principal.user_id)
        if cart.is_empty:
            return Err(ErrorKind.VALIDATION, "The cart is empty")

        classification = PurchaseValidator(self._catalog).classify(cart.lines)
        if not classification.has_fulfillable:
            logger.info(
                "purchase.no_stock",
                failed_products=len(classification.unfulfillable),
            )
            return Err(
                ErrorKind.NO_STOCK_AVAILABLE,
                "No product in the cart has stock available",
                details={"failed_products": classification.unfulfillable},
            )

        ticket = self._open_ticket(principal, payment_method, notes, classification.unfulfillable)

        with structlog.contextvars.bound_contextvars(ticket_code=ticket.code):
            failed = list(classification.unfulfillable)
            try:
                for line in classification.fulfillable:
                    item = self._debit(line, failed)
                    if item is None:
                        continue
                    ticket.record_line(item)
                    if not self._commit(ticket):
                        self._give_back(item)
                        return self._cancelled_in_flight(ticket)
            except Exception:
                logger.error(
                    "purchase.left_pending",
                    ticket_id=ticket.id,
                    debited=[item.product_id for item in ticket.line_items],
                )
                raise

            ticket.finalize(ticket.line_items, failed)
            if not self._commit(ticket):
                return self._cancelled_in_flight(ticket)

            if ticket.status == TicketStatus.FAILED:
                logger.warning("purchase.lost_all_lines", ticket_id=ticket.id)
                return Err(
                    ErrorKind.CONFLICT,
                    "Every product was sold out while the purchase was processed",
                    details={"failed_products": failed, "ticket_code": ticket.code},
                )

            self._clear_cart(cart, failed)
            self._send_confirmation(principal, ticket)

            logger.info(
                "purchase.completed",
                status=ticket.status.value,
                amount=str(ticket.amount),
                successful=len(ticket.line_items),
                failed=len(failed),
            )

        summary = PurchaseSummary(
            total_amount=str(ticket.amount),
            successful_products=len(ticket.line_items),
            failed_products=len(ticket.failed_items),
            is_partial=ticket.status == TicketStatus.PARTIALLY_COMPLETED,
        )
        message = (
            "Purchase completed successfully"
            if ticket.status == TicketStatus.COMPLETED
            else "Purchase partially completed"
        )
        return Ok(PurchaseOutcome(ticket=ticket, summary=summary), status_code=201, message=message)

    # --- Steps ----------------------------------------------------------------

    def _open_ticket(
        self,
        principal: Principal,
        payment_method: str,
        notes: str,
        failed: list[FailedLineItem],
    ) -> Ticket:
        def attempt(_: int) -> Ticket:
            ticket = Ticket.open(
                code=self._code_factory(),
                purchaser_id=principal.user_id,
                purchaser_email=principal.email,
                payment_method=payment_method,
                notes=notes,
                failed_items=failed,
            )
            self._ticket_ledger.add(ticket)
            return ticket

        return retry_on_conflict(
            attempt,
            what="ticket code",
            max_attempts=self._max_code_attempts,
            sleep=self._sleep,
            rng=self._rng,
        )

    def _debit(
        self, line: FulfillableLine, failed: list[FailedLineItem]
    ) -> PurchaseLineItem | None:
        """Atomically take stock for one line, or move it to *failed*.

        The decrement is the authoritative check: a line that passed
        validation but lost a race here is reported as insufficient stock.
        """
        product = line.product
        try:
            self._stock_ledger.decrement(product.id, line.quantity)
        except InsufficientStockError as exc:
            logger.info(
                "purchase.line_lost_race",
                product_id=product.id,
                requested=line.quantity,
                available=exc.available,
            )
            failed.append(
                FailedLineItem(
                    product_id=product.id,
                    title=product.name,
                    requested_quantity=line.quantity,
                    available_stock=exc.available,
                    reason=FailureReason.INSUFFICIENT_STOCK,
                )
            )
            return None
        except NotFoundError:
            failed.append(
                FailedLineItem(
                    product_id=product.id,
                    title=UNKNOWN_PRODUCT_TITLE,
                    requested_quantity=line.quantity,
                    available_stock=0,
                    reason=FailureReason.PRODUCT_NOT_FOUND,
                )
            )
            return None

        return PurchaseLineItem(
            product_id=product.id,
            title=product.name,
            unit_price=product.price,
            quantity=Quantity(line.quantity),
        )

    def _commit(self, ticket: Ticket) -> bool:
        """Write purchase progress unless the ticket was cancelled meanwhile."""
        return self._ticket_ledger.transition_status(ticket.id, TicketStatus.PENDING, ticket)

    def _give_back(self, item: PurchaseLineItem) -> None:
        """Return stock debited for a line the stored ticket never recorded."""
        try:
            self._stock_ledger.increment(item.product_id, item.quantity.value)
        except NotFoundError:
            logger.warning("purchase.give_back_skipped", product_id=item.product_id)

    def _cancelled_in_flight(self, ticket: Ticket) -> Result[PurchaseOutcome]:
        # Whatever the stored ticket recorded was already restocked by the
        # cancellation; the cart is left untouched.
        logger.warning("purchase.cancelled_in_flight", ticket_id=ticket.id)
        return Err(
            ErrorKind.CONFLICT,
            f"Ticket {ticket.code} was cancelled while the purchase was processed",
            details={"ticket_code": ticket.code},
        )

    def _clear_cart(self, cart: Cart, failed: list[FailedLineItem]) -> None:
        if self._clear_policy == CartClearPolicy.KEEP_UNFULFILLED and failed:
            keep = {item.product_id for item in failed if item.product_id}
            cart.retain(keep)
            self._cart_store.save(cart)
        else:
            self._cart_store.clear(cart.owner_id)

    def _send_confirmation(self, principal: Principal, ticket: Ticket) -> None:
        try:
            subject, html_body = purchase_confirmation(principal.first_name, ticket)
            self._notifier.notify(principal.email, subject, html_body)
        except Exception:
            logger.exception("purchase.notification_not_sent")
