from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from ..domain import Product, SaleItem
from ..errors import OutOfStock, ValidationError
from .stock import can_sell

log = logging.getLogger(__name__)


class Cart:
    """Working set of line items for one sale.

    Prices and names are copied from the product when it is first added and
    stay fixed for the life of the line. Stock is only checked here, never
    written.
    """

    def __init__(self) -> None:
        self._items: list[SaleItem] = []
        self._ids = itertools.count(1)

    @property
    def items(self) -> tuple[SaleItem, ...]:
        return tuple(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self._items)

    def get(self, item_id: str) -> Optional[SaleItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def _index(self, item_id: str) -> int:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        raise ValidationError(f"No cart line {item_id}.", field="item_id")

    def add(self, product: Product) -> SaleItem:
        if not can_sell(product):
            log.warning("Rejected sold-out product %s (%s)", product.id, product.sku)
            raise OutOfStock(product.id, product.name)

        for i, item in enumerate(self._items):
            if item.product_id == product.id:
                self._items[i] = replace(item, quantity=item.quantity + 1)
                return self._items[i]

        item = SaleItem(
            id=str(next(self._ids)),
            product_id=product.id,
            product_name=product.name,
            quantity=1,
            unit_price=product.price,
        )
        self._items.append(item)
        return item

    def increment(self, item_id: str) -> SaleItem:
        i = self._index(item_id)
        self._items[i] = replace(self._items[i], quantity=self._items[i].quantity + 1)
        return self._items[i]

    def decrement(self, item_id: str) -> SaleItem:
        i = self._index(item_id)
        item = self._items[i]
        if item.quantity > 1:
            self._items[i] = replace(item, quantity=item.quantity - 1)
        return self._items[i]

    def remove(self, item_id: str) -> SaleItem:
        return self._items.pop(self._index(item_id))

    def clear(self) -> None:
        self._items.clear()

    def total(self) -> Decimal:
        return sum((item.total_price for item in self._items), Decimal("0"))
