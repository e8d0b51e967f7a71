from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional


class DomainError(Exception):
    pass


class ValidationError(DomainError):
    """Rejected input, keyed by the form field that has to be corrected."""

    def __init__(self, errors: Mapping[str, str] | str, *, field: str = "__all__") -> None:
        if isinstance(errors, str):
            errors = {field: errors}
        self.errors: dict[str, str] = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))

    @property
    def fields(self) -> list[str]:
        return list(self.errors)


class MissingField(ValidationError):
    def __init__(self, field: str, message: Optional[str] = None) -> None:
        self.field = field
        super().__init__({field: message or f"{field} is required."})


class InsufficientPayment(ValidationError):
    def __init__(self, received: Decimal, total: Decimal) -> None:
        self.received = received
        self.total = total
        super().__init__(
            {"received_amount": f"Received {received} is less than the total {total}."}
        )


class Forbidden(DomainError):
    pass


class InvalidTransition(DomainError):
    def __init__(
        self, current: str, target: Optional[str] = None, *, message: Optional[str] = None
    ) -> None:
        self.current = current
        self.target = target
        if message is not None:
            msg = message
        elif target is None:
            msg = f"No further status after {current}."
        else:
            msg = f"Cannot move from {current} to {target}."
        super().__init__(msg)


class OutOfStock(DomainError):
    def __init__(self, product_id: str, product_name: str = "") -> None:
        self.product_id = product_id
        self.product_name = product_name
        super().__init__(f"Product {product_name or product_id} is out of stock.")


class StaleWriteError(DomainError):
    """The record changed after it was read; reload and retry."""


