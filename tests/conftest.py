import os
from dataclasses import replace
from datetime import UTC, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from protean.utils.globals import current_domain
from sqlalchemy import select

from shared.clock import utcnow
from shared.db import build_engine, drop_db, setup_db
from shared.tables import books, cart_items, carts, vouchers

TEST_HASH_SECRET = "test-secret"


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay, then initialize both domains.

    The domains read ``src/domain.toml`` when first imported, so nothing above
    this hook may import them.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from app import init_domains
    from shared.logging import configure_logging

    configure_logging("test")
    init_domains()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path) or "/shared/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


class FixedClock:
    """Stands in for ``domain.clock``; always reports the same instant."""

    def __init__(self, moment):
        self.moment = moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)

    def now(self):
        return self.moment


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings(tmp_path):
    from ordering.domain import ordering
    from shared.config import Settings

    # A file database, not :memory:, so concurrent tests get real connections.
    return replace(Settings.from_domain(ordering), database_url=f"sqlite:///{tmp_path / 'storefront.db'}")


@pytest.fixture()
def engine(settings):
    engine = build_engine(settings.database_url)
    setup_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture()
def gateway(settings):
    from payments.gateway.vnpay_adapter import VNPayGateway

    return VNPayGateway(settings.gateway)


@pytest.fixture()
def collaborators(engine, settings, gateway):
    """What command handlers expect to find on ``g``."""
    return {"engine": engine, "settings": settings, "gateway": gateway}


@pytest.fixture()
def process():
    """Dispatch a command through the active domain, synchronously."""

    def _process(command):
        return current_domain.process(command, asynchronous=False)

    return _process


@pytest.fixture()
def freeze_clock(monkeypatch):
    """Pin ``domain.clock`` of both domains to ``moment``."""

    def _freeze(moment):
        from ordering.domain import ordering
        from payments.domain import payments

        clock = FixedClock(moment)
        monkeypatch.setattr(ordering, "clock", clock)
        monkeypatch.setattr(payments, "clock", clock)

    return _freeze


# ---------------------------------------------------------------------------
# Data factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_book(engine):
    def _make_book(price, category="fiction", title="A Book"):
        with engine.begin() as conn:
            return conn.execute(
                books.insert().values(title=title, category=category, price=Decimal(price))
            ).inserted_primary_key[0]

    return _make_book


@pytest.fixture()
def make_voucher(engine):
    def _make_voucher(code="SAVE10", type="PERCENTAGE", value="10", **overrides):
        now = utcnow()
        values = {
            "code": code,
            "type": type,
            "value": Decimal(value),
            "valid_from": now - timedelta(days=1),
            "valid_to": now + timedelta(days=1),
            "used_count": 0,
            "is_active": True,
        }
        values.update(overrides)
        with engine.begin() as conn:
            return conn.execute(vouchers.insert().values(**values)).inserted_primary_key[0]

    return _make_voucher


@pytest.fixture()
def make_cart(engine):
    def _make_cart(customer_id, items=(), status="ACTIVE"):
        now = utcnow()
        with engine.begin() as conn:
            cart_id = conn.execute(
                carts.insert().values(customer_id=customer_id, status=status, created_at=now, updated_at=now)
            ).inserted_primary_key[0]
            for book_id, quantity in items:
                conn.execute(cart_items.insert().values(cart_id=cart_id, book_id=book_id, quantity=quantity))
        return cart_id

    return _make_cart


@pytest.fixture()
def fetch_voucher_row(engine):
    def _fetch(code):
        with engine.connect() as conn:
            return conn.execute(select(vouchers).where(vouchers.c.code == code)).mappings().one()

    return _fetch


@pytest.fixture()
def signed_params(gateway):
    """Build a gateway callback payload signed with the test merchant secret."""

    def _signed_params(order_ref, amount, response_code="00", transaction_no="14000001", **extra):
        params = {
            "vnp_TmnCode": gateway.settings.tmn_code,
            "vnp_TxnRef": str(order_ref),
            "vnp_Amount": str(gateway.to_gateway_amount(Decimal(amount))),
            "vnp_ResponseCode": response_code,
            "vnp_TransactionStatus": response_code,
            "vnp_TransactionNo": transaction_no,
            "vnp_BankCode": "NCB",
            "vnp_OrderInfo": f"Thanh toan don hang #{order_ref}",
            "vnp_PayDate": "20260301120000",
        }
        params.update(extra)
        params["vnp_SecureHashType"] = "HmacSHA512"
        params["vnp_SecureHash"] = gateway.sign(params)
        return params

    return _signed_params
