"""FastAPI routes for the Ordering domain — orders and vouchers.

Requests arrive inside the ordering domain context pushed by the app
middleware; each route translates its body into a command and processes it
synchronously.
"""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    OrderIdResponse,
    PlaceOrderRequest,
    ValidateVoucherRequest,
    VoucherPreviewResponse,
)
from ordering.order.creation import Address, PlaceOrder
from ordering.order.pricing import OrderLine
from ordering.voucher.preview import PreviewVoucher
from shared.web import get_customer_id


def _lines(items) -> list[OrderLine]:
    return [OrderLine(item_id=item.item_id, quantity=item.quantity) for item in items]


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
def place_order(
    body: PlaceOrderRequest,
    customer_id: str | None = Depends(get_customer_id),
) -> OrderIdResponse:
    """Commit the caller's order. Prices come from the catalog."""
    command = PlaceOrder(
        name=body.name,
        email=body.email,
        phone=body.phone,
        address=Address(
            city=body.address.city,
            country=body.address.country,
            state=body.address.state,
            zipcode=body.address.zipcode,
        ),
        items=_lines(body.items),
        payment_method=body.payment_method,
        voucher_code=body.voucher_code,
        shipping_fee=body.shipping_fee,
        customer_id=customer_id,
        address_id=body.address_id,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Voucher Router
# ---------------------------------------------------------------------------
voucher_router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@voucher_router.post("/validate", response_model=VoucherPreviewResponse)
def validate_voucher(body: ValidateVoucherRequest) -> VoucherPreviewResponse:
    """Preview a voucher against the given items without reserving it."""
    command = PreviewVoucher(voucher_code=body.code, items=_lines(body.items))
    preview = current_domain.process(command, asynchronous=False)
    return VoucherPreviewResponse(
        code=preview.code,
        type=preview.type,
        items_total=preview.items_total,
        discount_total=preview.discount_total,
        shipping_fee=preview.shipping_fee,
        shipping_discount=preview.shipping_discount,
        total_price=preview.total_price,
    )
