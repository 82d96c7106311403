"""Voucher preview — what a code would be worth against a prospective order.

Read-only: the cart is priced and the voucher evaluated exactly as checkout
would, but no usage slot is reserved. A successful preview is therefore no
guarantee; the slot is only taken when the order is placed.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean import handle
from protean.fields import List, String, ValueObject
from protean.utils.globals import g

from ordering.domain import ordering
from ordering.order.creation import default_shipping_fee
from ordering.order.order import OrderTotals
from ordering.order.pricing import OrderLine, resolve_pricing
from ordering.voucher.redemption import load_voucher
from ordering.voucher.voucher import Voucher, evaluate_voucher
from shared.clock import domain_now
from shared.db import transaction
from shared.errors import ValidationError


@ordering.command(part_of="Voucher")
class PreviewVoucher:
    voucher_code = String(required=True, max_length=50)
    items = List(content_type=ValueObject(OrderLine), required=True)


@dataclass(frozen=True)
class VoucherPreview:
    code: str
    type: str
    items_total: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    shipping_discount: Decimal
    total_price: Decimal


@ordering.command_handler(part_of=Voucher)
class VoucherPreviewHandler:
    @handle(PreviewVoucher)
    def preview(self, command: PreviewVoucher) -> VoucherPreview:
        """Evaluate ``command.voucher_code`` without consuming it."""
        code = command.voucher_code.strip()
        errors = {}
        if not code:
            errors["voucher_code"] = ["is required"]
        if not command.items:
            errors["items"] = ["at least one item is required"]
        if errors:
            raise ValidationError(errors)

        with transaction(g.engine, "preview_voucher", voucher_code=code) as conn:
            pricing = resolve_pricing(conn, command.items)
            voucher = load_voucher(conn, code)
            discount = evaluate_voucher(
                voucher,
                code,
                pricing.items_total,
                pricing.item_count,
                pricing.categories,
                domain_now(),
            )

        totals = OrderTotals.compute(
            pricing.items_total,
            discount.discount_total,
            default_shipping_fee(),
            discount.shipping_discount,
        )
        return VoucherPreview(
            code=voucher.code,
            type=voucher.type,
            items_total=totals.items_total,
            discount_total=totals.discount_total,
            shipping_fee=totals.shipping_fee,
            shipping_discount=totals.shipping_discount,
            total_price=totals.total_price,
        )
