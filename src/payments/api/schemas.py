"""Pydantic request/response schemas for the Payments API."""

from pydantic import BaseModel, Field, StrictInt

from shared.tables import MAX_ID


class CreatePaymentUrlRequest(BaseModel):
    order_id: StrictInt = Field(gt=0, le=MAX_ID)
    bank_code: str | None = Field(default=None, max_length=20)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": 42,
                    "bank_code": "NCB",
                }
            ]
        }
    }


class PaymentUrlResponse(BaseModel):
    payment_url: str


class GatewayAckResponse(BaseModel):
    RspCode: str
    Message: str
