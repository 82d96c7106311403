import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import g


@pytest.fixture(scope="session")
def payments_bed():
    # Initialized once in pytest_sessionstart; the bed only scopes each test.
    from payments.domain import payments

    return DomainFixture(payments)


@pytest.fixture(autouse=True)
def _ctx(payments_bed, collaborators):
    with payments_bed.domain_context():
        for name, value in collaborators.items():
            setattr(g, name, value)
        yield


@pytest.fixture()
def place_order(collaborators, make_book):
    """Commit an order worth ``items_total + 5.00`` shipping and return its id."""
    from ordering.domain import ordering
    from ordering.order.creation import Address, PlaceOrder
    from ordering.order.pricing import OrderLine

    book_id = make_book("12.50")

    def _place_order(quantity=2, payment_method="VNPAY", customer_id="cust-1"):
        command = PlaceOrder(
            name="Nguyen Van A",
            email="a@example.com",
            phone="0900000000",
            address=Address(city="Hanoi", country="VN"),
            items=[OrderLine(item_id=book_id, quantity=quantity)],
            payment_method=payment_method,
            customer_id=customer_id,
        )
        with ordering.domain_context(**collaborators):
            return ordering.process(command, asynchronous=False)

    return _place_order
