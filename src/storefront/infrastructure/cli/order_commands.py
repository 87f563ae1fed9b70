"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from storefront.application.dto import Principal
from storefront.application.order_queries import (
    GetOrderByNumberHandler,
    GetOrderStatsHandler,
    GetUserOrdersHandler,
)
from storefront.domain.model.order import ORDER_PAYMENT_METHODS, Order, OrderStatus
from storefront.domain.model.value_objects import CARD_TYPES
from storefront.infrastructure.bootstrap import (
    create_order_handler,
    order_ledger,
    update_order_status_handler,
)
from storefront.infrastructure.cli.common import AppContext, principal_options, unwrap


def _display_order(order: Order) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {order.order_number}  (status={order.status.value})")
    click.echo(f"Ship to:  {order.shipping_address.name}, {order.shipping_address.address}, "
               f"{order.shipping_address.city} {order.shipping_address.postal_code}")
    click.echo(f"Created:  {order.created_at.strftime('%Y-%m-%d %H:%M UTC')}")
    if order.estimated_delivery:
        click.echo(f"ETA:      {order.estimated_delivery.strftime('%Y-%m-%d')}")
    if order.tracking_number:
        click.echo(f"Tracking: {order.tracking_number}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>10} {'Subtotal':>10}")
    click.echo(f"  {'-'*47}")
    for item in order.items:
        click.echo(
            f"  {item.name:<20} {item.quantity.value:>5} {str(item.unit_price):>10} {str(item.subtotal):>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Shipping':<27} {str(order.shipping_cost):>20}")
    click.echo(f"  {'Order Total':<27} {str(order.total_amount):>20}")


@click.command("create")
@principal_options
@click.option("--ship-name", required=True, help="Recipient name.")
@click.option("--ship-address", required=True, help="Street address.")
@click.option("--ship-city", required=True, help="City.")
@click.option("--ship-postal-code", required=True, help="Postal code.")
@click.option("--ship-phone", required=True, help="Contact phone.")
@click.option("--payment", required=True, type=click.Choice(sorted(ORDER_PAYMENT_METHODS)))
@click.option("--card-last-four", default=None, help="Last four digits of the card.")
@click.option("--card-type", default=None, type=click.Choice(sorted(CARD_TYPES)))
@click.pass_obj
def order_create(
    app: AppContext,
    principal: Principal,
    ship_name: str,
    ship_address: str,
    ship_city: str,
    ship_postal_code: str,
    ship_phone: str,
    payment: str,
    card_last_four: str | None,
    card_type: str | None,
) -> None:
    """Create an order from the whole cart (all or nothing)."""
    handler = create_order_handler(app.settings, app.notifier)
    order = unwrap(
        handler.handle(
            principal,
            shipping_address={
                "name": ship_name,
                "address": ship_address,
                "city": ship_city,
                "postal_code": ship_postal_code,
                "phone": ship_phone,
            },
            payment_method=payment,
            payment_details={"card_last_four": card_last_four, "card_type": card_type},
        )
    )
    _display_order(order)


@click.command("list")
@principal_options
@click.option("--page", default=1, type=int)
@click.option("--limit", default=10, type=int)
@click.option("--status", default=None, type=click.Choice([s.value for s in OrderStatus]))
@click.option("--sort-by", default="created_at")
@click.option("--sort-order", default="desc", type=click.Choice(["asc", "desc"]))
@click.pass_obj
def order_list(
    app: AppContext,
    principal: Principal,
    page: int,
    limit: int,
    status: str | None,
    sort_by: str,
    sort_order: str,
) -> None:
    """List the user's orders, one page at a time."""
    handler = GetUserOrdersHandler(order_ledger(app.settings))
    result = unwrap(
        handler.handle(principal, page=page, limit=limit, status=status,
                       sort_by=sort_by, sort_order=sort_order)
    )

    if not result.orders:
        click.echo("No orders found.")
        return

    click.echo(f"{'Number':<18} {'Status':<12} {'Items':>6} {'Total':>12}")
    click.echo("-" * 51)
    for o in result.orders:
        click.echo(f"{o.order_number:<18} {o.status.value:<12} {o.total_items:>6} {str(o.total_amount):>12}")
    p = result.pagination
    click.echo(f"Page {p.current_page}/{p.total_pages} ({p.total_items} orders)")


@click.command("show")
@click.option("--number", required=True, help="Order number.")
@principal_options
@click.pass_obj
def order_show(app: AppContext, number: str, principal: Principal) -> None:
    """Show an order by its number."""
    order = unwrap(GetOrderByNumberHandler(order_ledger(app.settings)).handle(number, principal))
    _display_order(order)


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--to", "new_status", required=True, type=click.Choice([s.value for s in OrderStatus]))
@click.option("--tracking", default=None, help="Tracking number (when shipping).")
@principal_options
@click.pass_obj
def order_status(
    app: AppContext,
    order_id: int,
    new_status: str,
    tracking: str | None,
    principal: Principal,
) -> None:
    """Move an order to a new status (admin only)."""
    handler = update_order_status_handler(app.settings, app.notifier)
    order = unwrap(handler.handle(order_id, new_status, principal, tracking_number=tracking))
    click.echo(f"Order {order.order_number} is now {order.status.value}.")


@click.command("stats")
@principal_options
@click.option("--all", "all_users", is_flag=True, default=False, help="Every user (admin only).")
@click.pass_obj
def order_stats(app: AppContext, principal: Principal, all_users: bool) -> None:
    """Show order totals, broken down by status."""
    handler = GetOrderStatsHandler(order_ledger(app.settings))
    stats = unwrap(handler.handle(principal, all_users=all_users))

    click.echo(f"Orders:        {stats.total_orders}")
    click.echo(f"Total amount:  {stats.total_amount}")
    click.echo(f"Average:       {stats.average_amount}")
    for entry in stats.by_status:
        click.echo(f"  {entry.status:<12} {entry.count:>5} {entry.total_amount:>12}")
