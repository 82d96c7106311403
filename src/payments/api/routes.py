"""FastAPI routes for the Payments domain — gateway checkout and callbacks.

Requests arrive inside the payments domain context pushed by the app
middleware.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from protean.utils.globals import current_domain

from payments.api.schemas import CreatePaymentUrlRequest, GatewayAckResponse, PaymentUrlResponse
from payments.payment.checkout import CreatePaymentUrl
from payments.payment.notification import acknowledge
from payments.payment.redirect import resolve_return_url
from shared.web import client_ip, get_engine, get_gateway, get_settings, require_customer_id

payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/vnpay/create-url", response_model=PaymentUrlResponse)
def create_payment_url(
    body: CreatePaymentUrlRequest,
    request: Request,
    customer_id: str = Depends(require_customer_id),
) -> PaymentUrlResponse:
    """Build the signed checkout URL for one of the caller's orders."""
    command = CreatePaymentUrl(
        order_id=body.order_id,
        customer_id=customer_id,
        client_ip=client_ip(request),
        bank_code=body.bank_code,
    )
    url = current_domain.process(command, asynchronous=False)
    return PaymentUrlResponse(payment_url=url)


@payment_router.get("/vnpay-return")
def vnpay_return(
    request: Request,
    engine=Depends(get_engine),
    gateway=Depends(get_gateway),
    settings=Depends(get_settings),
) -> RedirectResponse:
    """Customer's browser coming back from the gateway. Never settles."""
    params = dict(request.query_params)
    url = resolve_return_url(engine, gateway, params, settings.frontend_url)
    return RedirectResponse(url, status_code=302)


@payment_router.get("/vnpay-ipn", response_model=GatewayAckResponse)
def vnpay_ipn(request: Request) -> GatewayAckResponse:
    """Server-to-server payment notification. Always answers 200."""
    ack = acknowledge(dict(request.query_params))
    return GatewayAckResponse(**ack.as_dict())
