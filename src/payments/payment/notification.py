"""Gateway payment notification — command, reconciler and acknowledgement.

The server-to-server notification (VNPay "IPN") is the only path allowed to
settle a payment. Processing order matters:

1. authenticate the payload (before touching storage)
2. find the order
3. compare the transmitted amount with the frozen order total
4. settle exactly once; redeliveries are acknowledged without changes

The reconciler reports outcomes as values and failures as domain errors;
``acknowledge`` turns either into the response code the gateway expects.
Only an ``ACK_RETRY`` response makes the gateway deliver again.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from protean import handle
from protean.fields import Dict
from protean.utils.globals import current_domain, g
from sqlalchemy import update

from ordering.order.order import OrderPaymentStatus, OrderStatus, fetch_order, parse_order_ref
from payments.domain import logger, payments
from payments.payment.payment import Payment, PaymentStatus, fetch_payment, settle_payment
from shared.clock import domain_now
from shared.db import transaction
from shared.errors import (
    AmountMismatch,
    OrderNotFound,
    SignatureInvalid,
    StorageFailure,
    ValidationError,
)
from shared.tables import orders


class NotificationOutcome(Enum):
    PAID = "paid"
    FAILED = "failed"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Acknowledgement:
    """Response body returned to the gateway."""

    code: str
    message: str

    @property
    def retry(self) -> bool:
        return self.code == ACK_RETRY.code

    def as_dict(self) -> dict:
        return {"RspCode": self.code, "Message": self.message}


ACK_PROCESSED = Acknowledgement("00", "Confirm Success")
ACK_ALREADY_PROCESSED = Acknowledgement("02", "Order already confirmed")
ACK_ORDER_NOT_FOUND = Acknowledgement("01", "Order not found")
ACK_INVALID_AMOUNT = Acknowledgement("04", "Invalid amount")
ACK_INVALID_SIGNATURE = Acknowledgement("97", "Invalid signature")
ACK_RETRY = Acknowledgement("99", "Unknown error")


@payments.command(part_of="Payment")
class ProcessPaymentNotification:
    """A raw gateway notification payload (query parameters)."""

    params = Dict(required=True)


@payments.command_handler(part_of=Payment)
class PaymentNotificationHandler:
    @handle(ProcessPaymentNotification)
    def process(self, command: ProcessPaymentNotification) -> NotificationOutcome:
        """Reconcile one notification. Safe to call any number of times."""
        if not isinstance(command.params, Mapping):
            raise ValidationError({"params": ["must be a mapping of query parameters"]})
        gateway = g.gateway
        amount_tolerance = g.settings.gateway.amount_tolerance

        logger.debug("Payment notification received", params=dict(command.params))
        if not gateway.verify_signature(command.params):
            logger.warning(
                "Payment notification signature invalid",
                gateway=gateway.name,
                order_ref=command.params.get("vnp_TxnRef"),
            )
            raise SignatureInvalid()

        notification = gateway.parse_notification(command.params)
        order_id = parse_order_ref(notification.order_ref)

        with transaction(
            g.engine,
            "process_payment_notification",
            order_ref=notification.order_ref,
            transaction_ref=notification.transaction_ref,
        ) as conn:
            order = fetch_order(conn, order_id) if order_id is not None else None
            if order is None:
                logger.warning("Payment notification for unknown order", order_ref=notification.order_ref)
                raise OrderNotFound(notification.order_ref)

            try:
                received = gateway.normalize_amount(notification.raw_amount)
            except ValueError as exc:
                logger.warning("Payment notification amount malformed", order_id=order.id, error=str(exc))
                raise AmountMismatch(order.total_price, notification.raw_amount) from exc

            if abs(received - order.total_price) > amount_tolerance:
                logger.warning(
                    "Payment notification amount mismatch",
                    order_id=order.id,
                    expected=str(order.total_price),
                    received=str(received),
                )
                raise AmountMismatch(order.total_price, received)

            payment = fetch_payment(conn, order.id)
            if payment is None:
                logger.error("Order has no payment record", order_id=order.id)
                raise OrderNotFound(notification.order_ref)

            if payment.is_settled:
                logger.info(
                    "Payment notification already processed",
                    order_id=order.id,
                    payment_status=payment.status,
                )
                return NotificationOutcome.DUPLICATE

            now = domain_now()
            succeeded = gateway.is_success(notification.result_code)
            target = PaymentStatus.SUCCESS if succeeded else PaymentStatus.FAILED

            if not settle_payment(conn, order.id, target, notification.transaction_ref, now):
                # A concurrent delivery settled it between our read and write.
                logger.info("Payment notification lost settlement race", order_id=order.id)
                return NotificationOutcome.DUPLICATE

            order_values = {"payment_status": OrderPaymentStatus.FAILED.value, "updated_at": now}
            if succeeded:
                order_values = {
                    "status": OrderStatus.PAID.value,
                    "payment_status": OrderPaymentStatus.PAID.value,
                    "updated_at": now,
                }
            conn.execute(update(orders).where(orders.c.id == order.id).values(**order_values))

        outcome = NotificationOutcome.PAID if succeeded else NotificationOutcome.FAILED
        logger.info(
            "Payment notification processed",
            order_id=order.id,
            outcome=outcome.value,
            result_code=notification.result_code,
            transaction_ref=notification.transaction_ref,
        )
        return outcome


def acknowledge(params: Mapping[str, str]) -> Acknowledgement:
    """Process a notification and map the result to the gateway's response code.

    Runs in the payments domain context, which must carry ``engine``,
    ``settings`` and ``gateway``.
    """
    try:
        outcome = current_domain.process(ProcessPaymentNotification(params=dict(params)), asynchronous=False)
    except (SignatureInvalid, ValidationError):
        # A payload that cannot be read cannot be authenticated either.
        return ACK_INVALID_SIGNATURE
    except OrderNotFound:
        return ACK_ORDER_NOT_FOUND
    except AmountMismatch:
        return ACK_INVALID_AMOUNT
    except StorageFailure:
        return ACK_RETRY
    except Exception:
        logger.exception("Unexpected error processing payment notification")
        return ACK_RETRY

    if outcome is NotificationOutcome.DUPLICATE:
        return ACK_ALREADY_PROCESSED
    return ACK_PROCESSED
