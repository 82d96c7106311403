"""Voucher aggregate and evaluation rules.

``evaluate_voucher`` is pure: it decides whether a voucher may be applied to
a priced order and how much it is worth. Reserving a usage slot is a storage
operation and lives in ``ordering.voucher.redemption``.

Rules are checked in a fixed order so the caller always gets the first
reason the voucher was refused:

    inactive/missing -> time window -> usage cap -> minimum amount ->
    minimum quantity -> category eligibility
"""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from protean.fields import Boolean, DateTime, Integer, List, String
from protean.fields import Decimal as DecimalField

from ordering.domain import logger, ordering
from shared.clock import as_naive_utc
from shared.errors import (
    VoucherCategoryMismatch,
    VoucherExhausted,
    VoucherExpired,
    VoucherMinAmountNotMet,
    VoucherMinQuantityNotMet,
    VoucherNotFound,
)
from shared.money import ZERO, quantize


class VoucherType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FREE_SHIP = "FREE_SHIP"


@ordering.aggregate
class Voucher:
    """A promotional code.

    ``value`` is a percentage rate for PERCENTAGE vouchers and an amount
    otherwise. ``used_count`` only ever grows, through
    ``reserve_voucher_usage``.
    """

    id = Integer(identifier=True)
    code = String(required=True, max_length=50, sanitize=False)
    type = String(choices=VoucherType, required=True)
    value = DecimalField(required=True, min_value=0)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)
    max_discount = DecimalField()
    min_order_amount = DecimalField()
    min_quantity = Integer()
    applicable_categories = List(content_type=String(max_length=100, sanitize=False))
    usage_limit = Integer()
    used_count = Integer(default=0)
    is_active = Boolean(default=True)

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            code=row["code"],
            type=row["type"],
            value=row["value"],
            valid_from=row["valid_from"],
            valid_to=row["valid_to"],
            max_discount=row["max_discount"],
            min_order_amount=row["min_order_amount"],
            min_quantity=row["min_quantity"],
            applicable_categories=_parse_categories(row["code"], row["applicable_categories"]),
            usage_limit=row["usage_limit"],
            used_count=row["used_count"],
            is_active=bool(row["is_active"]),
        )

    @property
    def is_limited(self) -> bool:
        return self.usage_limit is not None

    @property
    def remaining_uses(self) -> int | None:
        if not self.is_limited:
            return None
        return max(0, self.usage_limit - self.used_count)


def _parse_categories(code, raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed voucher categories", voucher_code=code)
            return []
    if not isinstance(raw, list):
        logger.warning("Ignoring malformed voucher categories", voucher_code=code)
        return []
    return [str(category) for category in raw]


@dataclass(frozen=True)
class Discount:
    """What a voucher is worth against one order.

    ``discount_total`` reduces the items total; ``shipping_discount`` reduces
    the shipping fee and is never folded into ``discount_total``.
    """

    discount_total: Decimal = ZERO
    shipping_discount: Decimal = ZERO


NO_DISCOUNT = Discount()


def evaluate_voucher(
    voucher: Voucher | None,
    code: str,
    items_total: Decimal,
    item_count: int,
    categories,
    now: datetime,
) -> Discount:
    """Validate ``voucher`` against a priced order and compute its discount."""
    if voucher is None or not voucher.is_active:
        raise VoucherNotFound(code)

    now = as_naive_utc(now)
    if now < as_naive_utc(voucher.valid_from) or now > as_naive_utc(voucher.valid_to):
        raise VoucherExpired()

    if voucher.is_limited and voucher.used_count >= voucher.usage_limit:
        raise VoucherExhausted(voucher.code)

    if voucher.min_order_amount is not None and items_total < voucher.min_order_amount:
        raise VoucherMinAmountNotMet(voucher.min_order_amount)

    if voucher.min_quantity is not None and item_count < voucher.min_quantity:
        raise VoucherMinQuantityNotMet(voucher.min_quantity)

    if voucher.applicable_categories and not set(voucher.applicable_categories) & set(categories):
        raise VoucherCategoryMismatch(voucher.applicable_categories)

    return compute_discount(voucher, items_total)


def compute_discount(voucher: Voucher, items_total: Decimal) -> Discount:
    if voucher.type == VoucherType.PERCENTAGE.value:
        amount = quantize(items_total * voucher.value / Decimal(100))
        if voucher.max_discount is not None:
            amount = min(amount, voucher.max_discount)
        return Discount(discount_total=amount)

    if voucher.type == VoucherType.FIXED_AMOUNT.value:
        return Discount(discount_total=min(quantize(voucher.value), items_total))

    return Discount(shipping_discount=quantize(voucher.value))
