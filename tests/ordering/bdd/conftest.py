"""Shared BDD fixtures and step definitions for checkout."""

from decimal import Decimal

import pytest
from pytest_bdd import given, parsers, then
from sqlalchemy import func, select

from ordering.order.order import fetch_order
from payments.payment.payment import fetch_payment
from shared.tables import cart_items, carts, orders


@pytest.fixture()
def checkout():
    """Mutable scenario state shared between steps."""
    return {"books": [], "order_id": None, "error": None, "ack": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalog has a "{category}" book priced {price}'))
def _(checkout, make_book, category, price):
    checkout["books"].append(make_book(price, category=category))


@given(parsers.cfparse('customer "{customer_id}" has an active cart with {first:d} of book 1 and {second:d} of book 2'))
def _(checkout, make_cart, customer_id, first, second):
    book_1, book_2 = checkout["books"]
    checkout["cart_lines"] = [(book_1, first), (book_2, second)]
    make_cart(customer_id, items=checkout["cart_lines"])


@given(parsers.cfparse('a {type} voucher "{code}" worth {value} with no usage limit'))
def _(make_voucher, type, code, value):
    make_voucher(code, type, value)


@given(parsers.cfparse('a {type} voucher "{code}" worth {value} with {remaining:d} uses remaining'))
def _(make_voucher, type, code, value, remaining):
    make_voucher(code, type, value, usage_limit=5, used_count=5 - remaining)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
def _order(engine, checkout):
    with engine.connect() as conn:
        return fetch_order(conn, checkout["order_id"])


@then(parsers.cfparse("the order items total is {amount}"))
def _(engine, checkout, amount):
    assert _order(engine, checkout).items_total == Decimal(amount)


@then(parsers.cfparse("the order discount total is {amount}"))
def _(engine, checkout, amount):
    assert _order(engine, checkout).discount_total == Decimal(amount)


@then(parsers.cfparse("the order total price is {amount}"))
def _(engine, checkout, amount):
    assert _order(engine, checkout).total_price == Decimal(amount)


@then(parsers.cfparse('the order status is "{status}"'))
def _(engine, checkout, status):
    assert _order(engine, checkout).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(engine, checkout, status):
    with engine.connect() as conn:
        assert fetch_payment(conn, checkout["order_id"]).status == status


def _cart_line_count(engine, customer_id):
    with engine.connect() as conn:
        return conn.execute(
            select(func.count())
            .select_from(cart_items.join(carts, cart_items.c.cart_id == carts.c.id))
            .where(carts.c.customer_id == customer_id)
        ).scalar()


@then(parsers.cfparse('the cart of customer "{customer_id}" is empty'))
def _(engine, customer_id):
    assert _cart_line_count(engine, customer_id) == 0


@then(parsers.cfparse('the cart of customer "{customer_id}" still has {count:d} lines'))
def _(engine, customer_id, count):
    assert _cart_line_count(engine, customer_id) == count


@then("no order was created")
def _(engine):
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(orders)).scalar() == 0
