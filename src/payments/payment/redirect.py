"""Customer return from the gateway — display only.

The gateway redirects the customer's browser here after checkout. The
payload is authenticated and the order looked up so the storefront can show
the right page, but nothing is written. Settlement belongs to the server-to-server
notification alone.
"""

from collections.abc import Mapping
from urllib.parse import urlencode

from sqlalchemy.engine import Engine

from ordering.order.order import fetch_order, parse_order_ref
from payments.domain import logger
from payments.gateway.port import PaymentGateway
from shared.db import transaction
from shared.errors import StorageFailure


def _page(frontend_url: str, page: str, **query) -> str:
    return f"{frontend_url.rstrip('/')}/payment/{page}?{urlencode(query)}"


def resolve_return_url(
    engine: Engine,
    gateway: PaymentGateway,
    params: Mapping[str, str],
    frontend_url: str,
) -> str:
    """Return the storefront URL the customer should be sent to."""
    if not gateway.verify_signature(params):
        logger.warning("Payment return signature invalid", order_ref=params.get("vnp_TxnRef"))
        return _page(frontend_url, "failed", reason="checksum_failed")

    notification = gateway.parse_notification(params)
    order_ref = notification.order_ref or ""

    try:
        with transaction(engine, "resolve_payment_return", order_ref=order_ref) as conn:
            order_id = parse_order_ref(order_ref)
            order = fetch_order(conn, order_id) if order_id is not None else None
    except StorageFailure:
        return _page(frontend_url, "failed", reason="server_error")

    if order is None:
        return _page(frontend_url, "failed", reason="order_not_found")

    if gateway.is_success(notification.result_code):
        return _page(frontend_url, "success", orderId=order.id)
    return _page(frontend_url, "failed", orderId=order.id, code=notification.result_code or "")
