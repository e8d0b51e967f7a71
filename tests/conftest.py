from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from repairshop.domain import Budget, Device, Product, RepairOrder, User

T0 = datetime(2024, 5, 1, 9, 0, 0)
T1 = datetime(2024, 5, 1, 10, 30, 0)


@pytest.fixture
def admin():
    return User(id="u-admin", role="ADMIN", name="Admin User")


@pytest.fixture
def technician():
    return User(id="u-tech", role="TECHNICIAN", name="Tech User")


@pytest.fixture
def other_technician():
    return User(id="u-tech-2", role="TECHNICIAN", name="Second Tech")


@pytest.fixture
def make_product():
    def _make(id="p1", name="Screen protector", price="120", stock=20, sku=None, **kw):
        return Product(
            id=id,
            name=name,
            description=kw.pop("description", "Tempered glass"),
            sku=sku or f"ACC-GEN-{id.upper()}",
            price=Decimal(price),
            stock=stock,
            category=kw.pop("category", "Accessories"),
            created_at=T0,
            updated_at=T0,
            **kw,
        )

    return _make


@pytest.fixture
def device():
    return Device(
        id="d1",
        brand="Samsung",
        model="RT38",
        serial_number="SN-001",
        type="REFRIGERATOR",
        review_cost=Decimal("30.00"),
        reported_issue="Not cooling",
    )


@pytest.fixture
def make_order(device):
    def _make(status="PENDING", technician_id="u-tech", **kw):
        return RepairOrder(
            id=kw.pop("id", "o1"),
            customer_name="Juan Perez",
            customer_phone="987654321",
            devices=kw.pop("devices", (device,)),
            status=status,
            technician_id=technician_id,
            created_at=T0,
            updated_at=T0,
            **kw,
        )

    return _make


@pytest.fixture
def budget():
    return Budget(
        id="b1",
        repair_order_id="o1",
        labor_cost=Decimal("80.00"),
        parts_cost=Decimal("45.50"),
        additional_costs=Decimal("15"),
        additional_costs_description="Refrigerant gas",
        created_at=T0,
        updated_at=T0,
    )


class FakeCursor:
    def __init__(self, rows=None, rowcount=1):
        self._rows = list(rows or [])
        self.rowcount = rowcount

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class FakeConn:
    """Records every statement and replays queued cursors in order."""

    def __init__(self, *cursors: FakeCursor):
        self.calls: list[tuple[str, tuple]] = []
        self._cursors = list(cursors)

    def execute(self, sql, params=()):
        self.calls.append((" ".join(sql.split()), params))
        return self._cursors.pop(0) if self._cursors else FakeCursor()
