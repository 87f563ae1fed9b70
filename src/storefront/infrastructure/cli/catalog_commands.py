"""CLI commands for seeding products and stock."""

from __future__ import annotations

import click

from storefront.application.add_product import AddProductHandler
from storefront.application.set_stock import SetStockHandler
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import catalog_store
from storefront.infrastructure.cli.common import AppContext


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--stock", default=0, type=int, help="Initial stock.")
@click.pass_obj
def product_add(app: AppContext, name: str, price: str, stock: int) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(catalog=catalog_store(app.settings))

    try:
        product = handler.handle(name=name, price=price, stock=stock)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' added at {product.price} (stock {product.stock})")


@click.command("list")
@click.pass_obj
def product_list(app: AppContext) -> None:
    """List all products with their stock."""
    products = catalog_store(app.settings).list_all()

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Stock':>8}")
    click.echo("-" * 47)
    for p in products:
        click.echo(f"{p.id:<6} {p.name:<20} {str(p.price):>10} {p.stock:>8}")


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="New stock level.")
@click.pass_obj
def stock_set(app: AppContext, product_id: str, quantity: int) -> None:
    """Set the stock level of a product."""
    handler = SetStockHandler(stock_ledger=catalog_store(app.settings))

    try:
        stock = handler.handle(product_id=product_id, quantity=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock for product #{product_id} is now {stock}")


@click.command("show")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.pass_obj
def stock_show(app: AppContext, product_id: str) -> None:
    """Show the stock level of a product."""
    try:
        stock = catalog_store(app.settings).get_stock(product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product_id}: {stock} in stock")
