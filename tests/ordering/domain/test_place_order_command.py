from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from ordering.order.creation import Address, PlaceOrder
from ordering.order.pricing import MAX_QUANTITY, OrderLine
from shared.tables import MAX_ID


def _make_command(**overrides):
    defaults = {
        "name": "Nguyen Van A",
        "email": "a@example.com",
        "phone": "0900000000",
        "address": Address(city="Hanoi", country="VN"),
        "items": [OrderLine(item_id=1, quantity=2)],
    }
    defaults.update(overrides)
    return PlaceOrder(**defaults)


class TestPlaceOrderFields:
    def test_valid_command(self):
        command = _make_command(voucher_code="SAVE10", shipping_fee=Decimal("0"))
        assert command.payment_method == "COD"
        assert command.items[0].quantity == 2

    def test_name_required(self):
        with pytest.raises(ValidationError) as exc:
            _make_command(name="")
        assert "name" in exc.value.messages

    def test_unknown_payment_method(self):
        with pytest.raises(ValidationError) as exc:
            _make_command(payment_method="CRYPTO")
        assert "payment_method" in exc.value.messages

    def test_negative_shipping_fee(self):
        with pytest.raises(ValidationError) as exc:
            _make_command(shipping_fee=Decimal("-1"))
        assert "shipping_fee" in exc.value.messages

    def test_non_numeric_shipping_fee(self):
        with pytest.raises(ValidationError) as exc:
            _make_command(shipping_fee="free")
        assert "shipping_fee" in exc.value.messages

    def test_address_id_beyond_integer_column(self):
        with pytest.raises(ValidationError) as exc:
            _make_command(address_id=MAX_ID + 1)
        assert "address_id" in exc.value.messages

    def test_address_requires_city(self):
        with pytest.raises(ValidationError) as exc:
            Address(city="", country="VN")
        assert "city" in exc.value.messages


class TestOrderLineFields:
    def test_quantity_defaults_to_one(self):
        assert OrderLine(item_id=4).quantity == 1

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError) as exc:
            OrderLine(item_id=1, quantity=0)
        assert "quantity" in exc.value.messages

    def test_quantity_must_be_a_number(self):
        with pytest.raises(ValidationError) as exc:
            OrderLine(item_id=1, quantity="two")
        assert "quantity" in exc.value.messages

    def test_oversized_quantity(self):
        with pytest.raises(ValidationError) as exc:
            OrderLine(item_id=1, quantity=10**20)
        assert "quantity" in exc.value.messages

    def test_quantity_ceiling_is_allowed(self):
        assert OrderLine(item_id=1, quantity=MAX_QUANTITY).quantity == MAX_QUANTITY

    def test_oversized_item_id(self):
        with pytest.raises(ValidationError) as exc:
            OrderLine(item_id=10**20)
        assert "item_id" in exc.value.messages

    def test_item_id_must_be_positive(self):
        with pytest.raises(ValidationError) as exc:
            OrderLine(item_id=0)
        assert "item_id" in exc.value.messages


class TestPlaceOrderContents:
    """Rules checked by the handler before anything is read or written."""

    def test_items_required(self, process):
        with pytest.raises(ValidationError) as exc:
            process(_make_command(items=[]))
        assert "items" in exc.value.messages

    def test_blank_voucher_code(self, process):
        with pytest.raises(ValidationError) as exc:
            process(_make_command(voucher_code="  "))
        assert "voucher_code" in exc.value.messages

    def test_email_and_address_checked(self, process):
        with pytest.raises(ValidationError) as exc:
            process(_make_command(email="nope", address=Address(city=" ", country="VN")))
        assert "email" in exc.value.messages
        assert "address.city" in exc.value.messages
