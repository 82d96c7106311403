"""VNPay hosted-checkout adapter.

Payloads are query strings. The checksum (``vnp_SecureHash``) is an
HMAC-SHA512, keyed with the merchant hash secret, over every other ``vnp_*``
parameter sorted by name and joined as ``key=value&...`` with both sides
URL-encoded the way JavaScript's ``encodeURIComponent`` does, except that
spaces become ``+``.

Amounts travel as integers in 1/100 of the currency unit.
"""

import hashlib
import hmac
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from urllib.parse import quote

from payments.gateway.port import GatewayNotification, PaymentGateway
from shared.config import GatewaySettings
from shared.money import quantize

SECURE_HASH = "vnp_SecureHash"
SECURE_HASH_TYPE = "vnp_SecureHashType"
SUCCESS_CODE = "00"

# Characters encodeURIComponent leaves alone, besides letters and digits.
_UNRESERVED = "-_.!~*'()"


def _encode(value) -> str:
    return quote(str(value), safe=_UNRESERVED).replace("%20", "+")


def canonical_query(params: Mapping[str, str]) -> str:
    """Serialize ``params`` in the canonical order used for signing."""
    encoded = {_encode(key): _encode(value) for key, value in params.items()}
    return "&".join(f"{key}={encoded[key]}" for key in sorted(encoded))


def sign(params: Mapping[str, str], secret: str) -> str:
    """Compute the hex HMAC-SHA512 checksum of ``params``."""
    payload = canonical_query(params).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def _signed_fields(params: Mapping[str, str]) -> dict:
    return {k: v for k, v in params.items() if k not in (SECURE_HASH, SECURE_HASH_TYPE)}


class VNPayGateway(PaymentGateway):
    name = "VNPAY"

    def __init__(self, settings: GatewaySettings) -> None:
        self.settings = settings
        self._tz = timezone(timedelta(hours=settings.utc_offset_hours))

    def sign(self, params: Mapping[str, str]) -> str:
        return sign(_signed_fields(params), self.settings.hash_secret)

    def to_gateway_amount(self, amount: Decimal) -> int:
        return int(quantize(amount) * self.settings.amount_scale)

    def build_payment_url(
        self,
        order_ref: str,
        amount: Decimal,
        order_info: str,
        client_ip: str,
        now: datetime,
        bank_code: str | None = None,
    ) -> str:
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)

        params = {
            "vnp_Version": self.settings.version,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.settings.tmn_code,
            "vnp_Locale": self.settings.locale,
            "vnp_CurrCode": self.settings.currency_code,
            "vnp_TxnRef": str(order_ref),
            "vnp_OrderInfo": order_info,
            "vnp_OrderType": "other",
            "vnp_Amount": str(self.to_gateway_amount(amount)),
            "vnp_ReturnUrl": self.settings.return_url,
            "vnp_IpAddr": client_ip,
            "vnp_CreateDate": now.astimezone(self._tz).strftime("%Y%m%d%H%M%S"),
        }
        if bank_code:
            params["vnp_BankCode"] = bank_code

        query = canonical_query(params)
        return f"{self.settings.url}?{query}&{SECURE_HASH}={self.sign(params)}"

    def verify_signature(self, params: Mapping[str, str]) -> bool:
        supplied = params.get(SECURE_HASH)
        if not supplied:
            return False
        expected = self.sign(params)
        return hmac.compare_digest(expected.encode("ascii"), supplied.strip().lower().encode("utf-8"))

    def parse_notification(self, params: Mapping[str, str]) -> GatewayNotification:
        return GatewayNotification(
            order_ref=params.get("vnp_TxnRef"),
            result_code=params.get("vnp_ResponseCode"),
            raw_amount=params.get("vnp_Amount"),
            transaction_ref=params.get("vnp_TransactionNo") or None,
            params=dict(params),
        )

    def normalize_amount(self, raw_amount: str) -> Decimal:
        """Raise ``ValueError`` unless ``raw_amount`` is a non-negative integer string."""
        if raw_amount is None or not str(raw_amount).isdigit():
            raise ValueError(f"Malformed gateway amount: {raw_amount!r}")
        try:
            return quantize(Decimal(raw_amount) / self.settings.amount_scale)
        except InvalidOperation as exc:
            raise ValueError(f"Malformed gateway amount: {raw_amount!r}") from exc

    def is_success(self, result_code: str | None) -> bool:
        return result_code == SUCCESS_CODE
