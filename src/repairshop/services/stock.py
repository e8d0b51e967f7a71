from __future__ import annotations

from typing import Iterable

from ..domain import Product, StockStatus

LOW_STOCK_THRESHOLD = 5


def classify(stock: int) -> StockStatus:
    if stock <= 0:
        return "SOLD_OUT"
    if stock <= LOW_STOCK_THRESHOLD:
        return "LOW"
    return "IN_STOCK"


def can_sell(product: Product) -> bool:
    return classify(product.stock) != "SOLD_OUT"


def low_stock_alerts(products: Iterable[Product]) -> list[Product]:
    """Products that need restocking, sold-out first, then by remaining stock."""
    flagged = [p for p in products if classify(p.stock) != "IN_STOCK"]
    return sorted(flagged, key=lambda p: (p.stock > 0, p.stock, p.name))
