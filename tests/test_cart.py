from decimal import Decimal

import pytest

from vendorpos.cart import Cart
from vendorpos.domain import CartLine
from vendorpos.errors import StockExceededError, ValidationError


def _line(item_id="p-1", kind="product", qty=1):
    return CartLine(kind=kind, item_id=item_id, name=f"Item {item_id}", unit_price=Decimal("10"), quantity=qty)


class TestCart:
    def test_adding_same_item_merges_quantity(self):
        cart = Cart()
        cart.add(_line())
        cart.add(_line(qty=2))
        assert len(cart) == 1
        assert cart.get("p-1").quantity == 3

    def test_stock_ceiling_enforced_on_add(self):
        cart = Cart()
        cart.add(_line(qty=2), stock=3)
        with pytest.raises(StockExceededError, match="Only 3 available"):
            cart.add(_line(qty=2))
        assert cart.get("p-1").quantity == 2

    def test_out_of_stock(self):
        cart = Cart()
        with pytest.raises(StockExceededError, match="out of stock"):
            cart.add(_line(), stock=0)
        assert cart.is_empty

    def test_increment_respects_stock(self):
        cart = Cart()
        cart.add(_line(), stock=1)
        with pytest.raises(StockExceededError):
            cart.increment("p-1")

    def test_services_have_no_stock_ceiling(self):
        cart = Cart()
        cart.add(_line("s-1", kind="service"), stock=0)
        cart.increment("s-1")
        assert cart.get("s-1").quantity == 2
        assert cart.services and not cart.products

    def test_decrement_at_one_removes_line(self):
        cart = Cart()
        cart.add(_line(qty=2))
        assert cart.decrement("p-1").quantity == 1
        assert cart.decrement("p-1") is None
        assert cart.is_empty

    def test_unknown_item(self):
        with pytest.raises(ValidationError, match="not in the cart"):
            Cart().increment("nope")

    def test_lines_keep_insertion_order(self):
        cart = Cart()
        for item_id in ("b", "a", "c"):
            cart.add(_line(item_id))
        assert [ln.item_id for ln in cart.lines] == ["b", "a", "c"]

    def test_clear(self):
        cart = Cart()
        cart.add(_line(), stock=5)
        cart.clear()
        assert cart.is_empty


class TestCartLine:
    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            _line(qty=0)

    def test_duration_only_on_services(self):
        with pytest.raises(ValidationError):
            CartLine(kind="product", item_id="p", name="X", unit_price=Decimal("1"), duration_minutes=30)

    def test_source_id_defaults_to_item_id(self):
        assert _line("p-7").source_id == "p-7"
