"""Domain service: Purchase Validator.

Classifies every cart line against a point-in-time read of the catalog.
The result is advisory: the authoritative accept/reject decision is the
atomic ``StockLedger.decrement`` made later by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront.domain.model.cart import CartLine
from storefront.domain.model.product import Product
from storefront.domain.model.ticket import FailedLineItem, FailureReason
from storefront.domain.repository.catalog_store import CatalogStore

UNKNOWN_PRODUCT_TITLE = "Product not found"


@dataclass(frozen=True)
class FulfillableLine:
    product: Product
    quantity: int


@dataclass
class Classification:
    fulfillable: list[FulfillableLine] = field(default_factory=list)
    unfulfillable: list[FailedLineItem] = field(default_factory=list)

    @property
    def has_fulfillable(self) -> bool:
        return bool(self.fulfillable)


class PurchaseValidator:

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def classify(self, lines: list[CartLine]) -> Classification:
        """Split cart lines into fulfillable and unfulfillable, in cart order.

        Precedence per line: product_not_found, then out_of_stock (stock is
        zero), then insufficient_stock (reporting the stock that is left).
        """
        result = Classification()
        for line in lines:
            product = self._catalog.get_product(line.product_id)
            failure = classify_line(line, product)
            if failure is not None:
                result.unfulfillable.append(failure)
            else:
                result.fulfillable.append(
                    FulfillableLine(product=product, quantity=line.quantity)  # type: ignore[arg-type]
                )
        return result


def classify_line(line: CartLine, product: Product | None) -> FailedLineItem | None:
    if product is None:
        return FailedLineItem(
            product_id=line.product_id,
            title=UNKNOWN_PRODUCT_TITLE,
            requested_quantity=line.quantity,
            available_stock=0,
            reason=FailureReason.PRODUCT_NOT_FOUND,
        )
    return stock_failure(product.id, product.name, line.quantity, product.stock)


def stock_failure(
    product_id: str, title: str, requested: int, available: int
) -> FailedLineItem | None:
    """Failure for *requested* units against *available* stock, or None."""
    if available <= 0:
        return FailedLineItem(
            product_id=product_id,
            title=title,
            requested_quantity=requested,
            available_stock=0,
            reason=FailureReason.OUT_OF_STOCK,
        )
    if available < requested:
        return FailedLineItem(
            product_id=product_id,
            title=title,
            requested_quantity=requested,
            available_stock=available,
            reason=FailureReason.INSUFFICIENT_STOCK,
        )
    return None
