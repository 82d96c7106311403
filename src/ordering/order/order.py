"""Order aggregate — statuses, frozen totals and the stored order.

An order's monetary figures are a snapshot taken at commit time:

    total_price == items_total - discount_total + shipping_fee

The equality is established once by ``OrderTotals.compute`` and never
recomputed from current catalog prices.

State Machine:
    PENDING → PAID → SHIPPED → COMPLETED
    PENDING → CANCELLED

Order rows are written with conditional SQL by the placement and payment
handlers; ``fetch_order`` rebuilds the aggregate from them.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from protean.fields import Decimal as DecimalField
from protean.fields import Integer, List, String, ValueObject
from sqlalchemy import select

from ordering.domain import ordering
from shared.money import ZERO, quantize
from shared.tables import MAX_ID, order_items, order_vouchers, orders


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderPaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(Enum):
    COD = "COD"
    BANK_TRANSFER = "BANK_TRANSFER"
    VNPAY = "VNPAY"


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class OrderTotals:
    items_total: Decimal
    discount_total: Decimal
    shipping_fee: Decimal
    shipping_discount: Decimal
    total_price: Decimal

    @classmethod
    def compute(cls, items_total, discount_total, requested_shipping_fee, shipping_discount=ZERO):
        """Derive the frozen totals of a new order.

        ``shipping_discount`` (from a FREE_SHIP voucher) reduces the shipping
        fee, never below zero; ``shipping_discount`` on the result is the part
        of it that was actually applied.
        """
        requested_shipping_fee = quantize(requested_shipping_fee)
        shipping_fee = max(ZERO, quantize(requested_shipping_fee - shipping_discount))
        items_total = quantize(items_total)
        discount_total = quantize(discount_total)

        return cls(
            items_total=items_total,
            discount_total=discount_total,
            shipping_fee=shipping_fee,
            shipping_discount=requested_shipping_fee - shipping_fee,
            total_price=items_total - discount_total + shipping_fee,
        )


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderItem:
    """A priced line of a committed order. Prices never change after commit."""

    book_id = Integer(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = DecimalField(required=True, min_value=0)
    line_total = DecimalField(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    id = Integer(identifier=True)
    customer_id = String(max_length=64, sanitize=False)
    email = String(required=True, sanitize=False)
    payment_method = String(choices=PaymentMethod, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=OrderPaymentStatus, default=OrderPaymentStatus.PENDING.value)
    items_total = DecimalField(required=True)
    shipping_fee = DecimalField(required=True)
    discount_total = DecimalField(required=True)
    total_price = DecimalField(required=True)
    items = List(content_type=ValueObject(OrderItem))
    voucher_id = Integer()

    @property
    def awaiting_payment(self) -> bool:
        return self.payment_status == OrderPaymentStatus.PENDING.value


def fetch_order(conn, order_id: int, with_items: bool = False) -> Order | None:
    """Load an order header (optionally with its items) or ``None``."""
    row = conn.execute(select(orders).where(orders.c.id == order_id)).mappings().first()
    if row is None:
        return None

    items = []
    voucher_id = None
    if with_items:
        item_rows = conn.execute(
            select(order_items).where(order_items.c.order_id == order_id).order_by(order_items.c.id)
        ).mappings()
        items = [
            OrderItem(
                book_id=r["book_id"],
                quantity=r["quantity"],
                unit_price=r["unit_price"],
                line_total=r["line_total"],
            )
            for r in item_rows
        ]
        voucher_id = conn.execute(
            select(order_vouchers.c.voucher_id).where(order_vouchers.c.order_id == order_id)
        ).scalar()

    return Order(
        id=row["id"],
        customer_id=row["customer_id"],
        email=row["email"],
        payment_method=row["payment_method"],
        status=row["status"],
        payment_status=row["payment_status"],
        items_total=row["items_total"],
        shipping_fee=row["shipping_fee"],
        discount_total=row["discount_total"],
        total_price=row["total_price"],
        items=items,
        voucher_id=voucher_id,
    )


def parse_order_ref(order_ref) -> int | None:
    """The order id a gateway reference names, or ``None`` if it cannot name one."""
    if order_ref is None or not str(order_ref).isdigit():
        return None
    order_id = int(order_ref)
    if not 0 < order_id <= MAX_ID:
        return None
    return order_id
