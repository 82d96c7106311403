"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal commands. Prices are never accepted from the client.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, StrictInt

from ordering.order.pricing import MAX_QUANTITY
from shared.tables import MAX_ID


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    city: str = Field(min_length=1)
    country: str = Field(min_length=1)
    state: str | None = None
    zipcode: str | None = None


class OrderLineSchema(BaseModel):
    item_id: StrictInt = Field(gt=0, le=MAX_ID)
    quantity: StrictInt = Field(ge=1, le=MAX_QUANTITY, default=1)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    address: AddressSchema
    items: list[OrderLineSchema] = Field(min_length=1)
    payment_method: Literal["COD", "BANK_TRANSFER", "VNPAY"] = "COD"
    voucher_code: str | None = None
    shipping_fee: Decimal | None = Field(default=None, ge=0)
    address_id: StrictInt | None = Field(default=None, gt=0, le=MAX_ID)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Nguyen Van A",
                    "email": "a@example.com",
                    "phone": "0900000000",
                    "address": {"city": "Hanoi", "country": "VN"},
                    "items": [{"item_id": 1, "quantity": 2}],
                    "payment_method": "VNPAY",
                    "voucher_code": "SAVE10",
                }
            ]
        }
    }


class ValidateVoucherRequest(BaseModel):
    code: str = Field(min_length=1)
    items: list[OrderLineSchema] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: int


class VoucherPreviewResponse(BaseModel):
    valid: bool = True
    code: str
    type: str
    items_total: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    shipping_discount: Decimal
    total_price: Decimal
