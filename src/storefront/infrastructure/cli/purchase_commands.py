"""CLI commands for purchases and their tickets."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import click

from storefront.application.dto import Principal
from storefront.application.result import Err
from storefront.application.ticket_queries import (
    DEFAULT_TOP_PRODUCTS,
    GetAllTicketsHandler,
    GetPurchaseStatsHandler,
    GetSalesByMonthHandler,
    GetTicketByCodeHandler,
    GetTicketsByDateRangeHandler,
    GetTopSellingProductsHandler,
    GetUserTicketsHandler,
)
from storefront.domain.model.ticket import (
    DEFAULT_PAYMENT_METHOD,
    TICKET_PAYMENT_METHODS,
    Ticket,
    TicketStatus,
)
from storefront.infrastructure.bootstrap import (
    cancel_ticket_handler,
    process_purchase_handler,
    ticket_ledger,
)
from storefront.infrastructure.cli.common import AppContext, principal_options, unwrap


def _list_tickets(tickets: list[Ticket], with_purchaser: bool = False) -> None:
    if not tickets:
        click.echo("No tickets found.")
        return

    owner = f" {'Purchaser':<12}" if with_purchaser else ""
    click.echo(f"{'ID':<5} {'Code':<30}{owner} {'Status':<20} {'Amount':>10}")
    click.echo("-" * (68 + len(owner)))
    for t in tickets:
        owner = f" {t.purchaser_id:<12}" if with_purchaser else ""
        click.echo(f"{t.id:<5} {t.code:<30}{owner} {t.status.value:<20} {str(t.amount):>10}")


def _display_ticket(ticket: Ticket) -> None:
    """Shared formatting for displaying a ticket."""
    click.echo(f"Ticket {ticket.code}  (status={ticket.status.value})")
    click.echo(f"Purchaser: {ticket.purchaser_id}")
    click.echo(f"Date:      {ticket.purchase_datetime.strftime('%Y-%m-%d %H:%M UTC')}")
    click.echo(f"Payment:   {ticket.payment_method}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Subtotal':>10}")
    click.echo(f"  {'-'*47}")
    for item in ticket.line_items:
        click.echo(
            f"  {item.title:<20} {item.quantity.value:>5} {str(item.unit_price):>10} {str(item.subtotal):>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Total':<27} {str(ticket.amount):>20}")

    if ticket.failed_items:
        click.echo()
        click.echo("  Not purchased:")
        for failed in ticket.failed_items:
            click.echo(
                f"    {failed.title} (requested {failed.requested_quantity}, "
                f"available {failed.available_stock}): {failed.reason.value}"
            )
    if ticket.notes:
        click.echo()
        click.echo(f"Notes: {ticket.notes}")


@click.command("purchase")
@principal_options
@click.option(
    "--payment",
    default=DEFAULT_PAYMENT_METHOD,
    type=click.Choice(sorted(TICKET_PAYMENT_METHODS)),
    help="Payment method label.",
)
@click.option("--notes", default="", help="Free-text notes for the ticket.")
@click.pass_obj
def purchase(app: AppContext, principal: Principal, payment: str, notes: str) -> None:
    """Buy everything in the user's cart that is in stock."""
    handler = process_purchase_handler(app.settings, app.notifier)
    result = handler.handle(principal, payment_method=payment, notes=notes)

    if isinstance(result, Err):
        for failed in result.details.get("failed_products", []):
            click.echo(f"  {failed.title}: {failed.reason.value}", err=True)
    outcome = unwrap(result)

    _display_ticket(outcome.ticket)
    summary = outcome.summary
    click.echo()
    click.echo(
        f"{summary.successful_products} product(s) purchased, "
        f"{summary.failed_products} unavailable, total {summary.total_amount}"
    )


@click.command("list")
@principal_options
@click.pass_obj
def ticket_list(app: AppContext, principal: Principal) -> None:
    """List the user's tickets, newest first."""
    tickets = unwrap(GetUserTicketsHandler(ticket_ledger(app.settings)).handle(principal))

    _list_tickets(tickets)


@click.command("show")
@click.option("--code", required=True, help="Ticket code.")
@principal_options
@click.pass_obj
def ticket_show(app: AppContext, code: str, principal: Principal) -> None:
    """Show a ticket by its code."""
    ticket = unwrap(GetTicketByCodeHandler(ticket_ledger(app.settings)).handle(code, principal))
    _display_ticket(ticket)


@click.command("cancel")
@click.option("--id", "ticket_id", required=True, type=int, help="Ticket ID.")
@click.option("--reason", default="", help="Why the ticket is cancelled.")
@principal_options
@click.pass_obj
def ticket_cancel(app: AppContext, ticket_id: int, reason: str, principal: Principal) -> None:
    """Cancel a pending ticket and restore its stock."""
    ticket = unwrap(cancel_ticket_handler(app.settings).handle(ticket_id, principal, reason))
    click.echo(f"Ticket {ticket.code} cancelled.")


@click.command("stats")
@principal_options
@click.option("--all", "all_users", is_flag=True, default=False, help="Every user (admin only).")
@click.pass_obj
def ticket_stats(app: AppContext, principal: Principal, all_users: bool) -> None:
    """Show purchase statistics."""
    if all_users and not principal.is_admin:
        raise click.ClickException("[403] Only administrators can see every user's statistics")
    handler = GetPurchaseStatsHandler(ticket_ledger(app.settings))
    stats = unwrap(handler.handle(None if all_users else principal))

    click.echo(f"Tickets:       {stats.total_tickets}")
    click.echo(f"Total amount:  {stats.total_amount}")
    click.echo(f"Average:       {stats.avg_amount}")
    click.echo(f"Completed:     {stats.completed_tickets}")
    click.echo(f"Partial:       {stats.partial_tickets}")
    click.echo(f"Failed:        {stats.failed_tickets}")
    click.echo(f"Cancelled:     {stats.cancelled_tickets}")
    click.echo(f"Success rate:  {stats.success_rate}")


@click.command("all")
@principal_options
@click.option("--status", default=None, type=click.Choice([s.value for s in TicketStatus]))
@click.option("--page", default=1, type=int)
@click.option("--limit", default=20, type=int)
@click.pass_obj
def ticket_all(
    app: AppContext, principal: Principal, status: str | None, page: int, limit: int
) -> None:
    """List every user's tickets (admin only)."""
    handler = GetAllTicketsHandler(ticket_ledger(app.settings))
    result = unwrap(handler.handle(principal, status=status, page=page, limit=limit))

    _list_tickets(result.tickets, with_purchaser=True)
    p = result.pagination
    click.echo(f"\nPage {p.current_page}/{p.total_pages} ({p.total_items} tickets)")


@click.command("range")
@principal_options
@click.option("--from", "start", required=True, type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--to", "end", required=True, type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--purchaser", default=None, help="Only this purchaser (admins may pick anyone).")
@click.pass_obj
def ticket_range(
    app: AppContext,
    principal: Principal,
    start: datetime,
    end: datetime,
    purchaser: str | None,
) -> None:
    """List tickets purchased between two dates, both days included."""
    handler = GetTicketsByDateRangeHandler(ticket_ledger(app.settings))
    tickets = unwrap(
        handler.handle(
            principal,
            datetime.combine(start.date(), time.min, tzinfo=timezone.utc),
            datetime.combine(end.date(), time.max, tzinfo=timezone.utc),
            purchaser_id=purchaser,
        )
    )
    _list_tickets(tickets, with_purchaser=principal.is_admin)


@click.command("top-products")
@principal_options
@click.option("--limit", default=DEFAULT_TOP_PRODUCTS, type=int)
@click.pass_obj
def ticket_top_products(app: AppContext, principal: Principal, limit: int) -> None:
    """Best-selling products by units sold (admin only)."""
    handler = GetTopSellingProductsHandler(ticket_ledger(app.settings))
    top = unwrap(handler.handle(principal, limit=limit))

    if not top:
        click.echo("No sales yet.")
        return
    click.echo(f"{'Product':<12} {'Title':<20} {'Units':>6} {'Revenue':>12} {'Tickets':>8}")
    click.echo("-" * 62)
    for p in top:
        click.echo(
            f"{p.product_id:<12} {p.title:<20} {p.total_quantity:>6} "
            f"{p.total_revenue:>12} {p.times_sold:>8}"
        )


@click.command("sales-by-month")
@principal_options
@click.option("--year", default=lambda: date.today().year, type=int, show_default="current year")
@click.pass_obj
def ticket_sales_by_month(app: AppContext, principal: Principal, year: int) -> None:
    """Monthly sales for one year (admin only)."""
    handler = GetSalesByMonthHandler(ticket_ledger(app.settings))
    months = unwrap(handler.handle(principal, year))

    click.echo(f"Sales in {year}")
    click.echo(f"{'Month':<10} {'Tickets':>8} {'Sales':>12} {'Average':>12}")
    click.echo("-" * 45)
    for m in months:
        click.echo(f"{m.month_name:<10} {m.total_tickets:>8} {m.total_sales:>12} {m.avg_ticket:>12}")
