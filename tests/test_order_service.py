"""
Tests for the repair order lifecycle.

Covers the forward status chain, who may move an order, cancellation,
visibility per role, intake validation and diagnosis edits.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from repairshop.errors import Forbidden, InvalidTransition, ValidationError
from repairshop.services.order_service import (
    CreateDeviceInput,
    CreateOrderInput,
    advance,
    can_manage,
    cancel,
    create_order,
    next_status,
    update_diagnosis,
    visible_orders,
)

NOW = datetime(2024, 5, 2, 15, 0, 0)


class TestNextStatus:
    @pytest.mark.parametrize(
        "current,expected",
        [
            ("PENDING", "IN_PROGRESS"),
            ("IN_PROGRESS", "COMPLETED"),
            ("COMPLETED", "DELIVERED"),
            ("DELIVERED", None),
            ("CANCELLED", None),
        ],
    )
    def test_forward_chain(self, current, expected):
        assert next_status(current) == expected


class TestAdvance:
    def test_assigned_technician_advances(self, make_order, technician):
        order = make_order(status="PENDING")

        updated = advance(order, technician, now=NOW)

        assert updated.status == "IN_PROGRESS"
        assert updated.updated_at == NOW
        assert updated.completed_at is None

    def test_completed_stamps_completed_at(self, make_order, technician):
        updated = advance(make_order(status="IN_PROGRESS"), technician, now=NOW)
        assert updated.status == "COMPLETED"
        assert updated.completed_at == NOW

    def test_delivered_stamps_delivered_at(self, make_order, admin):
        updated = advance(make_order(status="COMPLETED"), admin, now=NOW)
        assert updated.status == "DELIVERED"
        assert updated.delivered_at == NOW

    def test_full_walk_to_delivered(self, make_order, technician):
        order = make_order()
        for _ in range(3):
            order = advance(order, technician, now=NOW)
        assert order.status == "DELIVERED"
        with pytest.raises(InvalidTransition):
            advance(order, technician)

    def test_cancelled_order_cannot_advance(self, make_order, admin):
        with pytest.raises(InvalidTransition):
            advance(make_order(status="CANCELLED"), admin)

    def test_other_technician_is_forbidden(self, make_order, other_technician):
        with pytest.raises(Forbidden):
            advance(make_order(), other_technician)

    def test_unassigned_order_needs_admin(self, make_order, technician, admin):
        order = make_order(technician_id=None)
        with pytest.raises(Forbidden):
            advance(order, technician)
        assert advance(order, admin).status == "IN_PROGRESS"

    def test_does_not_touch_devices_or_customer(self, make_order, technician):
        order = make_order(total_cost=Decimal("120"))
        updated = advance(order, technician, now=NOW)
        assert updated.devices == order.devices
        assert updated.customer_name == order.customer_name
        assert updated.customer_phone == order.customer_phone
        assert updated.total_cost == order.total_cost
        assert updated.created_at == order.created_at


class TestCancel:
    @pytest.mark.parametrize("status", ["PENDING", "IN_PROGRESS", "COMPLETED"])
    def test_admin_cancels_open_order(self, make_order, admin, status):
        cancelled = cancel(make_order(status=status), admin, now=NOW)
        assert cancelled.status == "CANCELLED"
        assert cancelled.cancelled_at == NOW
        assert cancelled.updated_at == NOW

    def test_technician_cannot_cancel_even_own_order(self, make_order, technician):
        with pytest.raises(Forbidden):
            cancel(make_order(), technician)

    @pytest.mark.parametrize("status", ["DELIVERED", "CANCELLED"])
    def test_terminal_orders_cannot_be_cancelled(self, make_order, admin, status):
        with pytest.raises(InvalidTransition):
            cancel(make_order(status=status), admin)


class TestVisibility:
    def test_technician_sees_only_assigned(self, make_order, technician, admin):
        orders = [
            make_order(id="o1", technician_id="u-tech"),
            make_order(id="o2", technician_id="u-tech-2"),
            make_order(id="o3", technician_id=None),
        ]

        assert [o.id for o in visible_orders(orders, technician)] == ["o1"]
        assert [o.id for o in visible_orders(orders, admin)] == ["o1", "o2", "o3"]

    def test_status_filter(self, make_order, admin):
        orders = [make_order(id="o1"), make_order(id="o2", status="COMPLETED")]
        assert [o.id for o in visible_orders(orders, admin, status="COMPLETED")] == ["o2"]

    def test_can_manage(self, make_order, technician, other_technician, admin):
        order = make_order()
        assert can_manage(order, technician)
        assert can_manage(order, admin)
        assert not can_manage(order, other_technician)


class TestCreateOrder:
    def _input(self, **kw):
        defaults = dict(
            customer_name=" Maria Lopez ",
            customer_phone="912345678",
            customer_email="",
            technician_id="u-tech",
            devices=[
                CreateDeviceInput(
                    brand="LG",
                    model="WM3400",
                    device_type="WASHING_MACHINE",
                    reported_issue="Does not spin",
                    review_cost="",
                    accessories=["Hose", " ", "Power cable"],
                )
            ],
        )
        defaults.update(kw)
        return CreateOrderInput(**defaults)

    def test_creates_pending_order(self):
        order = create_order(self._input(), default_review_cost=Decimal("30"), now=NOW, order_id="o7")

        assert order.id == "o7"
        assert order.status == "PENDING"
        assert order.customer_name == "Maria Lopez"
        assert order.customer_email is None
        assert order.created_at == order.updated_at == NOW
        (device,) = order.devices
        assert device.review_cost == Decimal("30")
        assert [a.name for a in device.accessories] == ["Hose", "Power cable"]

    def test_explicit_review_cost_wins(self):
        inp = self._input()
        inp.devices[0].review_cost = "45.50"
        order = create_order(inp, default_review_cost=Decimal("30"))
        assert order.devices[0].review_cost == Decimal("45.50")

    def test_requires_customer_and_device(self):
        with pytest.raises(ValidationError) as exc:
            create_order(self._input(customer_name="", customer_phone=" ", devices=[]))
        assert set(exc.value.errors) == {"customer_name", "customer_phone", "devices"}

    def test_device_fields_are_checked(self):
        bad = CreateDeviceInput(brand="", model="X1", reported_issue="", review_cost="abc")
        with pytest.raises(ValidationError) as exc:
            create_order(self._input(devices=[bad]))
        assert set(exc.value.errors) == {
            "devices[0].brand",
            "devices[0].reported_issue",
            "devices[0].review_cost",
        }

    def test_unknown_device_type(self):
        bad = CreateDeviceInput(brand="X", model="Y", reported_issue="Z", device_type="TOASTER")
        with pytest.raises(ValidationError) as exc:
            create_order(self._input(devices=[bad]))
        assert exc.value.fields == ["devices[0].device_type"]


class TestUpdateDiagnosis:
    def test_sets_diagnosis_on_one_device(self, make_order, technician):
        order = make_order(status="IN_PROGRESS")

        updated = update_diagnosis(order, "d1", "  Compressor relay failed ", technician, now=NOW)

        assert updated.device("d1").diagnosis == "Compressor relay failed"
        assert updated.updated_at == NOW
        assert updated.status == "IN_PROGRESS"

    def test_empty_diagnosis_rejected(self, make_order, technician):
        with pytest.raises(ValidationError) as exc:
            update_diagnosis(make_order(), "d1", "   ", technician)
        assert exc.value.fields == ["diagnosis"]

    def test_unknown_device(self, make_order, technician):
        with pytest.raises(ValidationError) as exc:
            update_diagnosis(make_order(), "nope", "Broken", technician)
        assert exc.value.fields == ["device_id"]

    def test_other_technician_forbidden(self, make_order, other_technician):
        with pytest.raises(Forbidden):
            update_diagnosis(make_order(), "d1", "Broken", other_technician)

    def test_closed_order_rejected(self, make_order, admin):
        with pytest.raises(InvalidTransition) as exc:
            update_diagnosis(make_order(status="DELIVERED"), "d1", "Broken", admin)
        assert "diagnosis" in str(exc.value)
        assert "DELIVERED" in str(exc.value)
        assert exc.value.target is None


class TestOrderInvariants:
    def test_order_needs_a_device(self, make_order):
        with pytest.raises(ValueError):
            make_order(devices=())
