"""Voucher redemption — the storage side of applying a voucher.

Usage slots are reserved with a single conditional update:

    UPDATE vouchers SET used_count = used_count + 1
     WHERE id = :id AND is_active
       AND (usage_limit IS NULL OR used_count < usage_limit)

and the affected-row count decides the race. Two transactions competing for
the last slot cannot both see one row updated, whatever the isolation level,
because the database re-checks the predicate on the locked row.
"""

from sqlalchemy import or_, select, true, update

from ordering.voucher.voucher import Discount, Voucher
from shared.errors import VoucherExhausted
from shared.tables import order_vouchers, vouchers


def load_voucher(conn, code: str, for_update: bool = False) -> Voucher | None:
    """Read a voucher by code.

    With ``for_update`` the row is locked until the enclosing transaction
    ends on databases that support ``SELECT ... FOR UPDATE``.
    """
    query = select(vouchers).where(vouchers.c.code == code)
    if for_update:
        query = query.with_for_update()
    row = conn.execute(query).mappings().first()
    return Voucher.from_row(row) if row is not None else None


def reserve_voucher_usage(conn, voucher: Voucher) -> None:
    """Consume one usage slot or raise ``VoucherExhausted``."""
    result = conn.execute(
        update(vouchers)
        .where(
            vouchers.c.id == voucher.id,
            vouchers.c.is_active == true(),
            or_(vouchers.c.usage_limit.is_(None), vouchers.c.used_count < vouchers.c.usage_limit),
        )
        .values(used_count=vouchers.c.used_count + 1)
    )
    if result.rowcount != 1:
        raise VoucherExhausted(voucher.code)


def record_redemption(conn, order_id: int, voucher: Voucher, discount: Discount, shipping_discount, now) -> None:
    """Write the ledger entry linking ``order_id`` to the redeemed voucher."""
    conn.execute(
        order_vouchers.insert().values(
            order_id=order_id,
            voucher_id=voucher.id,
            discount_amount=discount.discount_total,
            shipping_discount=shipping_discount,
            created_at=now,
        )
    )
