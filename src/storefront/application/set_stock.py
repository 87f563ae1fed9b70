"""Application service: Set Stock (restocking for the CLI).

Overwrites a product's stock with an absolute level in one atomic ledger
call, so a purchase debiting the same product at the same time is either
fully before or fully after the new level.
"""

from __future__ import annotations

import structlog

from storefront.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)


class SetStockHandler:

    def __init__(self, stock_ledger: StockLedger) -> None:
        self._stock_ledger = stock_ledger

    def handle(self, product_id: str, quantity: int) -> int:
        stock = self._stock_ledger.set_stock(product_id, quantity)
        logger.info("stock.set", product_id=product_id, stock=stock)
        return stock
