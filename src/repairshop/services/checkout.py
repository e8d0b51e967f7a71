"""POS checkout: totals, tax, payment validation and sale recording."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from psycopg import Connection

from ..domain import (
    PAYMENT_METHODS,
    CardPayment,
    CashPayment,
    Customer,
    PaymentDetails,
    Sale,
    YapePayment,
)
from ..errors import InsufficientPayment, MissingField, ValidationError
from ..money import parse_amount, q2
from ..repositories.product_repo import ProductRepository
from ..repositories.sale_repo import SaleRepository
from .cart import Cart

log = logging.getLogger(__name__)

TAX_RATE = Decimal("0.18")  # IGV


@dataclass(frozen=True)
class Summary:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def summarize(cart: Cart) -> Summary:
    subtotal = cart.total()
    tax = q2(subtotal * TAX_RATE)
    return Summary(subtotal=subtotal, tax=tax, total=subtotal + tax)


def _required_text(fields: Mapping[str, object], name: str) -> str:
    value = fields.get(name)
    text = str(value).strip() if value is not None else ""
    if not text:
        raise MissingField(name)
    return text


def validate_payment(method: str, fields: Mapping[str, object], total: Decimal) -> PaymentDetails:
    if method == "CASH":
        received = parse_amount(fields.get("received_amount"), "received_amount")
        if received < total:
            raise InsufficientPayment(received, total)
        return CashPayment(amount=total, received_amount=received, change=received - total)

    if method == "YAPE":
        phone = _required_text(fields, "phone_number")
        reference = _required_text(fields, "reference")
        return YapePayment(amount=total, phone_number=phone, reference=reference)

    if method == "CARD":
        return CardPayment(amount=total, reference=_required_text(fields, "reference"))

    raise ValidationError(
        f"Unsupported payment method {method!r}; expected one of {', '.join(PAYMENT_METHODS)}.",
        field="method",
    )


def finalize(
    cart: Cart,
    method: str,
    fields: Mapping[str, object],
    *,
    customer: Customer | None = None,
    now: datetime | None = None,
) -> Sale:
    """Validate payment for the cart and build the sale record.

    Nothing is produced unless every check passes. The cart is left as is;
    clearing it is up to the caller.
    """
    if cart.is_empty:
        raise ValidationError("The cart is empty.", field="items")

    s = summarize(cart)
    payment = validate_payment(method, fields, s.total)
    return Sale(
        items=cart.items,
        subtotal=s.subtotal,
        tax=s.tax,
        total=s.total,
        payment=payment,
        customer=customer or Customer(),
        created_at=now or datetime.now(),
    )


class CheckoutService:
    def __init__(self, *, product_repo: ProductRepository, sale_repo: SaleRepository) -> None:
        self.product_repo = product_repo
        self.sale_repo = sale_repo

    def complete_sale(
        self,
        conn: Connection,
        cart: Cart,
        method: str,
        fields: Mapping[str, object],
        *,
        customer: Optional[Customer] = None,
    ) -> Sale:
        """Record the sale and take its items out of stock.

        Run inside ``Db.transaction()`` so a failed stock decrement rolls
        back everything written before it.
        """
        sale = finalize(cart, method, fields, customer=customer)

        for item in sale.items:
            self.product_repo.decrease_stock(
                conn, product_id=item.product_id, qty=item.quantity, product_name=item.product_name
            )

        sale_id = self.sale_repo.create(conn, sale)
        cart.clear()
        log.info("Sale %s completed: %s via %s", sale_id, sale.total, sale.payment.method)
        return replace(sale, id=sale_id)
