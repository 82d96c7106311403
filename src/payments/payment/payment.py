"""Payment aggregate — one per order, settled exactly once.

State Machine:
    PENDING → SUCCESS
    PENDING → FAILED

SUCCESS and FAILED are terminal. The order checkout path only ever creates
PENDING payments; settlement is reserved for the gateway notification
reconciler and is expressed as a conditional update on ``status = PENDING``
so concurrent duplicate deliveries cannot both win.
"""

from decimal import Decimal
from enum import Enum

from protean.fields import DateTime, Integer, String
from protean.fields import Decimal as DecimalField
from sqlalchemy import select, update

from payments.domain import payments as payments_domain
from shared.tables import payments


class PaymentStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


_TERMINAL_STATES = {PaymentStatus.SUCCESS, PaymentStatus.FAILED}


@payments_domain.aggregate
class Payment:
    id = Integer(identifier=True)
    order_id = Integer(required=True)
    amount = DecimalField(required=True, min_value=0)
    method = String(max_length=20, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_ref = String(max_length=100, sanitize=False)
    paid_at = DateTime()

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            order_id=row["order_id"],
            amount=row["amount"],
            method=row["method"],
            status=row["status"],
            transaction_ref=row["transaction_ref"],
            paid_at=row["paid_at"],
        )

    @property
    def is_settled(self) -> bool:
        return PaymentStatus(self.status) in _TERMINAL_STATES


def record_pending_payment(conn, order_id: int, amount: Decimal, method: str, now) -> int:
    """Create the PENDING payment that accompanies a new order."""
    result = conn.execute(
        payments.insert().values(
            order_id=order_id,
            amount=amount,
            method=method,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
    )
    return result.inserted_primary_key[0]


def fetch_payment(conn, order_id: int) -> Payment | None:
    row = conn.execute(select(payments).where(payments.c.order_id == order_id)).mappings().first()
    return Payment.from_row(row) if row is not None else None


def settle_payment(conn, order_id: int, status: PaymentStatus, transaction_ref: str | None, now) -> bool:
    """Move a PENDING payment to a terminal status.

    Returns ``False`` when the payment had already been settled, including by
    a concurrent transaction that committed first.
    """
    if status not in _TERMINAL_STATES:
        raise ValueError(f"{status.value} is not a terminal payment status")

    values = {"status": status.value, "transaction_ref": transaction_ref, "updated_at": now}
    if status is PaymentStatus.SUCCESS:
        values["paid_at"] = now

    result = conn.execute(
        update(payments)
        .where(payments.c.order_id == order_id, payments.c.status == PaymentStatus.PENDING.value)
        .values(**values)
    )
    return result.rowcount == 1
