"""Tests for the POS cart."""

from dataclasses import replace
from decimal import Decimal

import pytest

from repairshop.errors import OutOfStock, ValidationError
from repairshop.services.cart import Cart


def _assert_line_totals(cart):
    for item in cart.items:
        assert item.quantity >= 1
        assert item.total_price == item.unit_price * item.quantity


class TestAdd:
    def test_new_line_snapshots_product(self, make_product):
        cart = Cart()
        product = make_product(price="120", name="Fan motor")

        item = cart.add(product)

        assert item.product_id == product.id
        assert item.product_name == "Fan motor"
        assert item.quantity == 1
        assert item.unit_price == Decimal("120")
        assert item.total_price == Decimal("120")

    def test_same_product_increments_existing_line(self, make_product):
        cart = Cart()
        product = make_product(price="85")

        cart.add(product)
        item = cart.add(product)

        assert len(cart.items) == 1
        assert item.quantity == 2
        assert item.total_price == Decimal("170")

    def test_sold_out_product_rejected(self, make_product):
        cart = Cart()
        with pytest.raises(OutOfStock):
            cart.add(make_product(stock=0))
        assert cart.is_empty

    def test_price_is_not_rebound_to_catalog(self, make_product):
        cart = Cart()
        product = make_product(price="100")
        cart.add(product)

        item = cart.add(replace(product, price=Decimal("150")))

        assert item.unit_price == Decimal("100")
        assert item.total_price == Decimal("200")

    def test_line_ids_are_unique(self, make_product):
        cart = Cart()
        a = cart.add(make_product(id="a"))
        b = cart.add(make_product(id="b"))
        assert a.id != b.id


class TestQuantity:
    def test_increment_then_decrement_round_trip(self, make_product):
        cart = Cart()
        item = cart.add(make_product(price="19.90"))

        for _ in range(5):
            cart.increment(item.id)
            _assert_line_totals(cart)
        assert cart.get(item.id).quantity == 6

        for _ in range(5):
            cart.decrement(item.id)
            _assert_line_totals(cart)
        assert cart.get(item.id).quantity == 1

    def test_decrement_floors_at_one(self, make_product):
        cart = Cart()
        item = cart.add(make_product())
        cart.decrement(item.id)
        cart.decrement(item.id)
        assert cart.get(item.id).quantity == 1
        assert len(cart.items) == 1

    def test_remove_drops_line_regardless_of_quantity(self, make_product):
        cart = Cart()
        item = cart.add(make_product())
        cart.increment(item.id)
        cart.increment(item.id)

        cart.remove(item.id)

        assert cart.is_empty
        assert cart.total() == Decimal("0")

    @pytest.mark.parametrize("op", ["increment", "decrement", "remove"])
    def test_unknown_line(self, op):
        with pytest.raises(ValidationError) as exc:
            getattr(Cart(), op)("missing")
        assert exc.value.fields == ["item_id"]


class TestTotal:
    def test_sums_line_totals(self, make_product):
        cart = Cart()
        cart.add(make_product(id="a", price="120"))
        b = cart.add(make_product(id="b", price="85"))
        cart.increment(b.id)

        assert cart.total() == Decimal("290")
        assert cart.item_count == 3

    def test_clear(self, make_product):
        cart = Cart()
        cart.add(make_product())
        cart.clear()
        assert cart.is_empty
        assert cart.items == ()
