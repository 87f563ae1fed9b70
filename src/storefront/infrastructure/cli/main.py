import click

from storefront.infrastructure.cli.cart_commands import cart_add, cart_show
from storefront.infrastructure.cli.catalog_commands import (
    product_add,
    product_list,
    stock_set,
    stock_show,
)
from storefront.infrastructure.cli.common import AppContext
from storefront.infrastructure.cli.order_commands import (
    order_create,
    order_list,
    order_show,
    order_stats,
    order_status,
)
from storefront.infrastructure.cli.purchase_commands import (
    purchase,
    ticket_all,
    ticket_cancel,
    ticket_list,
    ticket_range,
    ticket_sales_by_month,
    ticket_show,
    ticket_stats,
    ticket_top_products,
)
from storefront.infrastructure.config import load_settings
from storefront.infrastructure.log_config import configure_logging


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Storefront: purchase & order fulfillment"""
    settings = load_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    app = AppContext(settings=settings)
    ctx.obj = app
    ctx.call_on_close(app.close)


@cli.group()
def product() -> None:
    """Seed the catalog."""


@cli.group()
def stock() -> None:
    """Inspect and set stock."""


@cli.group()
def cart() -> None:
    """Fill carts."""


@cli.group()
def ticket() -> None:
    """Inspect, cancel and report on purchase tickets."""


@cli.group()
def order() -> None:
    """Create and manage orders."""


# Register subcommands
cli.add_command(purchase)
product.add_command(product_add)
product.add_command(product_list)
stock.add_command(stock_set)
stock.add_command(stock_show)
cart.add_command(cart_add)
cart.add_command(cart_show)
ticket.add_command(ticket_list)
ticket.add_command(ticket_show)
ticket.add_command(ticket_cancel)
ticket.add_command(ticket_stats)
ticket.add_command(ticket_all)
ticket.add_command(ticket_range)
ticket.add_command(ticket_top_products)
ticket.add_command(ticket_sales_by_month)
order.add_command(order_create)
order.add_command(order_list)
order.add_command(order_show)
order.add_command(order_status)
order.add_command(order_stats)
