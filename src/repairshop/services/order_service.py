from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..domain import (
    DEVICE_TYPES,
    TERMINAL_STATUSES,
    Accessory,
    Device,
    RepairOrder,
    RepairStatus,
    User,
)
from ..errors import Forbidden, InvalidTransition, ValidationError
from ..money import Amount, parse_amount

log = logging.getLogger(__name__)

_NEXT_STATUS: dict[RepairStatus, RepairStatus] = {
    "PENDING": "IN_PROGRESS",
    "IN_PROGRESS": "COMPLETED",
    "COMPLETED": "DELIVERED",
}


@dataclass
class CreateDeviceInput:
    brand: str
    model: str
    reported_issue: str
    device_type: str = "OTHER"
    serial_number: str = ""
    review_cost: Amount | None = None
    accessories: list[str] = field(default_factory=list)


@dataclass
class CreateOrderInput:
    customer_name: str
    customer_phone: str
    devices: list[CreateDeviceInput]
    customer_email: str | None = None
    customer_dni: str | None = None
    customer_address: str | None = None
    client_id: str | None = None
    technician_id: str | None = None
    technician_name: str | None = None


def next_status(current: RepairStatus) -> Optional[RepairStatus]:
    return _NEXT_STATUS.get(current)


def can_manage(order: RepairOrder, actor: User) -> bool:
    return actor.is_admin or (
        order.technician_id is not None and order.technician_id == actor.id
    )


def visible_orders(
    orders: Iterable[RepairOrder],
    actor: User,
    status: RepairStatus | None = None,
) -> list[RepairOrder]:
    return [
        o
        for o in orders
        if (actor.is_admin or o.technician_id == actor.id)
        and (status is None or o.status == status)
    ]


def _require_manager(order: RepairOrder, actor: User, action: str) -> None:
    if not can_manage(order, actor):
        log.warning("User %s (%s) denied %s on order %s", actor.id, actor.role, action, order.id)
        raise Forbidden(f"User {actor.id} cannot {action} order {order.id}.")


def _clean(value: str | None) -> str | None:
    return value.strip() if value and value.strip() else None


def create_order(
    data: CreateOrderInput,
    *,
    default_review_cost: Amount = Decimal("0"),
    now: datetime | None = None,
    order_id: str | None = None,
) -> RepairOrder:
    errors: dict[str, str] = {}
    if not (data.customer_name or "").strip():
        errors["customer_name"] = "Customer name is required."
    if not (data.customer_phone or "").strip():
        errors["customer_phone"] = "Customer phone is required."
    if not data.devices:
        errors["devices"] = "Add at least one device."

    devices: list[Device] = []
    for i, d in enumerate(data.devices):
        prefix = f"devices[{i}]"
        for name in ("brand", "model", "reported_issue"):
            if not (getattr(d, name) or "").strip():
                errors[f"{prefix}.{name}"] = f"{name.replace('_', ' ').capitalize()} is required."
        if d.device_type not in DEVICE_TYPES:
            errors[f"{prefix}.device_type"] = f"Unknown device type: {d.device_type}"

        raw_cost = d.review_cost if d.review_cost not in (None, "") else default_review_cost
        try:
            review_cost = parse_amount(raw_cost, f"{prefix}.review_cost")
        except ValidationError as e:
            errors.update(e.errors)
            continue

        if not any(k.startswith(prefix + ".") for k in errors):
            devices.append(
                Device(
                    id=uuid.uuid4().hex,
                    brand=d.brand.strip(),
                    model=d.model.strip(),
                    serial_number=(d.serial_number or "").strip(),
                    type=d.device_type,
                    review_cost=review_cost,
                    reported_issue=d.reported_issue.strip(),
                    accessories=tuple(
                        Accessory(name=a.strip(), included=True) for a in d.accessories if a.strip()
                    ),
                )
            )

    if errors:
        raise ValidationError(errors)

    ts = now or datetime.now()
    order = RepairOrder(
        id=order_id or uuid.uuid4().hex,
        customer_name=data.customer_name.strip(),
        customer_phone=data.customer_phone.strip(),
        customer_email=_clean(data.customer_email),
        customer_dni=_clean(data.customer_dni),
        customer_address=_clean(data.customer_address),
        client_id=data.client_id,
        technician_id=data.technician_id,
        technician_name=data.technician_name,
        devices=tuple(devices),
        status="PENDING",
        created_at=ts,
        updated_at=ts,
    )
    log.info("Order %s created with %d device(s)", order.id, len(devices))
    return order


def advance(order: RepairOrder, actor: User, *, now: datetime | None = None) -> RepairOrder:
    """Move the order one step along PENDING -> IN_PROGRESS -> COMPLETED -> DELIVERED."""
    _require_manager(order, actor, "advance")
    target = next_status(order.status)
    if target is None:
        raise InvalidTransition(order.status)

    ts = now or datetime.now()
    changes: dict = {"status": target, "updated_at": ts}
    if target == "COMPLETED":
        changes["completed_at"] = ts
    elif target == "DELIVERED":
        changes["delivered_at"] = ts

    log.info("Order %s: %s -> %s by %s", order.id, order.status, target, actor.id)
    return replace(order, **changes)


def cancel(order: RepairOrder, actor: User, *, now: datetime | None = None) -> RepairOrder:
    if not actor.is_admin:
        log.warning("User %s (%s) denied cancel on order %s", actor.id, actor.role, order.id)
        raise Forbidden("Only an administrator can cancel an order.")
    if order.status in TERMINAL_STATUSES:
        raise InvalidTransition(order.status, "CANCELLED")

    ts = now or datetime.now()
    log.info("Order %s cancelled from %s by %s", order.id, order.status, actor.id)
    return replace(order, status="CANCELLED", updated_at=ts, cancelled_at=ts)


def update_diagnosis(
    order: RepairOrder,
    device_id: str,
    diagnosis: str,
    actor: User,
    *,
    now: datetime | None = None,
) -> RepairOrder:
    _require_manager(order, actor, "diagnose")
    if order.status in TERMINAL_STATUSES:
        raise InvalidTransition(
            order.status,
            message=f"Order {order.id} is {order.status}; its diagnosis can no longer change.",
        )
    if not (diagnosis or "").strip():
        raise ValidationError("Diagnosis cannot be empty.", field="diagnosis")
    if order.device(device_id) is None:
        raise ValidationError(f"Unknown device: {device_id}", field="device_id")

    devices = tuple(
        replace(d, diagnosis=diagnosis.strip()) if d.id == device_id else d for d in order.devices
    )
    return replace(order, devices=devices, updated_at=now or datetime.now())
