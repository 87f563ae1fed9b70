"""CLI commands for filling a user's cart."""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import cart_store, catalog_store
from storefront.infrastructure.cli.common import AppContext


@click.command("add")
@click.option("--user", "user_id", required=True, help="Cart owner.")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", default=1, type=int, help="Units to add.")
@click.pass_obj
def cart_add(app: AppContext, user_id: str, product_id: str, quantity: int) -> None:
    """Add units of a product to a user's cart."""
    store = cart_store(app.settings)
    cart = store.get_cart(user_id)

    try:
        cart.add(product_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    store.save(cart)
    click.echo(f"Cart of {user_id}: {cart.total_items} item(s)")


@click.command("show")
@click.option("--user", "user_id", required=True, help="Cart owner.")
@click.pass_obj
def cart_show(app: AppContext, user_id: str) -> None:
    """Show a user's cart."""
    cart = cart_store(app.settings).get_cart(user_id)
    if cart.is_empty:
        click.echo("The cart is empty.")
        return

    catalog = catalog_store(app.settings)
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Stock':>8}")
    click.echo(f"  {'-'*35}")
    for line in cart.lines:
        product = catalog.get_product(line.product_id)
        name = product.name if product else f"#{line.product_id} (missing)"
        stock = product.stock if product else 0
        click.echo(f"  {name:<20} {line.quantity:>5} {stock:>8}")
