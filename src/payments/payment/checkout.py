"""Gateway checkout URL — command and handler.

Builds the signed hosted-checkout URL for an order that is still awaiting
payment. The amount is always the order's frozen total; whatever the client
believes the total to be is ignored.
"""

from protean import handle
from protean.fields import Integer, String
from protean.utils.globals import g

from ordering.order.order import PaymentMethod, fetch_order
from payments.domain import logger, payments
from payments.payment.payment import Payment
from shared.clock import domain_now
from shared.db import transaction
from shared.errors import OrderNotFound, OrderNotPayable
from shared.tables import MAX_ID


@payments.command(part_of="Payment")
class CreatePaymentUrl:
    order_id = Integer(required=True, min_value=1, max_value=MAX_ID)
    customer_id = String(required=True, max_length=64)
    client_ip = String(max_length=45, default="127.0.0.1")
    bank_code = String(max_length=20)


@payments.command_handler(part_of=Payment)
class CreatePaymentUrlHandler:
    @handle(CreatePaymentUrl)
    def create_payment_url(self, command: CreatePaymentUrl) -> str:
        with transaction(g.engine, "create_payment_url", order_id=command.order_id) as conn:
            order = fetch_order(conn, command.order_id)

        # Other customers' orders are reported as missing.
        if order is None or order.customer_id != command.customer_id:
            raise OrderNotFound(command.order_id)

        if order.payment_method != PaymentMethod.VNPAY.value:
            raise OrderNotPayable("Order is not using the online payment method")
        if not order.awaiting_payment:
            raise OrderNotPayable(f"Order payment status is {order.payment_status}")

        url = g.gateway.build_payment_url(
            order_ref=str(order.id),
            amount=order.total_price,
            order_info=f"Thanh toan don hang #{order.id}",
            client_ip=command.client_ip,
            now=domain_now(),
            bank_code=command.bank_code,
        )
        logger.info(
            "Payment URL created",
            order_id=order.id,
            customer_id=command.customer_id,
            amount=str(order.total_price),
        )
        return url
