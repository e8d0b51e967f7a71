from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation

from ..domain import Product
from ..errors import ValidationError
from ..money import Amount, parse_amount, q2, to_decimal

log = logging.getLogger(__name__)


@dataclass
class CreateProductInput:
    name: str
    description: str
    sku: str
    price: Amount | None
    stock: int | str | None
    category: str
    brand: str
    model: str | None = None
    image_url: str | None = None


def generate_sku(category: str, brand: str, rng: random.Random | None = None) -> str:
    if not (category or "").strip() or not (brand or "").strip():
        raise ValidationError("Pick a category and enter a brand to generate a SKU.", field="sku")
    n = (rng or random).randint(0, 999)
    return f"{category.strip()[:3].upper()}-{brand.strip()[:3].upper()}-{n:03d}"


def _parse_stock(raw: int | str | None) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("Initial stock is required.", field="stock")
    try:
        value = to_decimal(raw.strip() if isinstance(raw, str) else raw)
    except (InvalidOperation, ValueError):
        raise ValidationError("Stock must be a whole number.", field="stock") from None
    if isinstance(raw, bool) or not value.is_finite() or value != value.to_integral_value():
        raise ValidationError("Stock must be a whole number.", field="stock")
    qty = int(value)
    if qty < 0:
        raise ValidationError("Stock cannot be negative.", field="stock")
    return qty


def validate_product_input(data: CreateProductInput) -> dict:
    errors: dict[str, str] = {}
    for name in ("name", "description", "sku", "category", "brand"):
        if not (getattr(data, name) or "").strip():
            errors[name] = f"{name.capitalize()} is required."

    price: Decimal | None = None
    try:
        price = parse_amount(data.price, "price")
        if price == 0:
            errors["price"] = "Price must be greater than zero."
        elif price != q2(price):
            errors["price"] = "Price cannot have more than two decimals."
    except ValidationError as e:
        errors.update(e.errors)

    stock = 0
    try:
        stock = _parse_stock(data.stock)
    except ValidationError as e:
        errors.update(e.errors)

    if errors:
        raise ValidationError(errors)

    return {
        "name": data.name.strip(),
        "description": data.description.strip(),
        "sku": data.sku.strip().upper(),
        "price": price,
        "stock": stock,
        "category": data.category.strip(),
        "brand": data.brand.strip(),
        "model": (data.model or "").strip() or None,
        "image_url": (data.image_url or "").strip() or None,
    }


def create_product(data: CreateProductInput, *, now: datetime | None = None) -> Product:
    fields = validate_product_input(data)
    ts = now or datetime.now()
    return Product(id=uuid.uuid4().hex, created_at=ts, updated_at=ts, **fields)


def restock(product: Product, quantity: int, *, now: datetime | None = None) -> Product:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Restock quantity must be a positive whole number.", field="quantity")
    log.info("Restocking %s by %d (was %d)", product.sku, quantity, product.stock)
    return replace(product, stock=product.stock + quantity, updated_at=now or datetime.now())
