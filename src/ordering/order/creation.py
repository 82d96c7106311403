"""Order placement — command and handler.

``PlaceOrderHandler`` is the order ledger writer. Everything it does happens
inside one transaction: pricing, voucher evaluation and slot reservation,
the order header, its items, the redemption record, the PENDING payment and
the cart hand-off. Any failure rolls all of it back.

The handler reads its database engine and settings from the domain context
(``g.engine``, ``g.settings``) pushed by the web app or the caller.
"""

from decimal import Decimal

from protean import handle
from protean.fields import Decimal as DecimalField
from protean.fields import Integer, List, String, ValueObject
from protean.utils.globals import g

from ordering.cart.cart import consume_active_cart
from ordering.domain import logger, ordering
from ordering.order.order import Order, OrderPaymentStatus, OrderStatus, OrderTotals, PaymentMethod
from ordering.order.pricing import OrderLine, resolve_pricing
from ordering.voucher.redemption import load_voucher, record_redemption, reserve_voucher_usage
from ordering.voucher.voucher import NO_DISCOUNT, evaluate_voucher
from payments.payment.payment import record_pending_payment
from shared.clock import domain_now
from shared.db import transaction
from shared.errors import ValidationError
from shared.money import to_money
from shared.tables import MAX_ID, order_items, orders

DEFAULT_SHIPPING_FEE = Decimal("5.00")


@ordering.value_object(part_of="Order")
class Address:
    city = String(required=True, max_length=100)
    country = String(required=True, max_length=100)
    state = String(max_length=100)
    zipcode = String(max_length=20)


@ordering.command(part_of="Order")
class PlaceOrder:
    """Commit a cart as an order."""

    name = String(required=True, max_length=255)
    email = String(required=True, max_length=255)
    phone = String(required=True, max_length=50)
    address = ValueObject(Address, required=True)
    items = List(content_type=ValueObject(OrderLine), required=True)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    voucher_code = String(max_length=50)
    shipping_fee = DecimalField(min_value=0)
    customer_id = String(max_length=64)
    address_id = Integer(min_value=1, max_value=MAX_ID)


def _check_contents(command: PlaceOrder) -> None:
    """Rules the field declarations cannot express."""
    errors = {}
    for name in ("name", "email", "phone"):
        if not getattr(command, name).strip():
            errors[name] = ["is required"]
    if "email" not in errors and "@" not in command.email:
        errors["email"] = ["is not a valid email address"]
    for name in ("city", "country"):
        if not getattr(command.address, name).strip():
            errors[f"address.{name}"] = ["is required"]
    if not command.items:
        errors["items"] = ["at least one item is required"]
    if command.voucher_code is not None and not command.voucher_code.strip():
        errors["voucher_code"] = ["must be a non-empty string"]
    if errors:
        raise ValidationError(errors)


def default_shipping_fee() -> Decimal:
    settings = g.get("settings")
    return settings.default_shipping_fee if settings is not None else DEFAULT_SHIPPING_FEE


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command: PlaceOrder) -> int:
        """Commit ``command`` and return the new order id."""
        _check_contents(command)

        now = domain_now()
        requested_fee = (
            to_money(command.shipping_fee) if command.shipping_fee is not None else default_shipping_fee()
        )
        voucher_code = command.voucher_code.strip() if command.voucher_code else None

        with transaction(
            g.engine,
            "place_order",
            customer_id=command.customer_id,
            voucher_code=voucher_code,
        ) as conn:
            pricing = resolve_pricing(conn, command.items)

            voucher = None
            discount = NO_DISCOUNT
            if voucher_code:
                voucher = load_voucher(conn, voucher_code, for_update=True)
                discount = evaluate_voucher(
                    voucher,
                    voucher_code,
                    pricing.items_total,
                    pricing.item_count,
                    pricing.categories,
                    now,
                )
                reserve_voucher_usage(conn, voucher)

            totals = OrderTotals.compute(
                pricing.items_total,
                discount.discount_total,
                requested_fee,
                discount.shipping_discount,
            )

            order_id = conn.execute(
                orders.insert().values(
                    customer_id=command.customer_id,
                    address_id=command.address_id,
                    name=command.name.strip(),
                    email=command.email.strip(),
                    phone=command.phone.strip(),
                    city=command.address.city,
                    country=command.address.country,
                    state=command.address.state,
                    zipcode=command.address.zipcode,
                    payment_method=command.payment_method,
                    status=OrderStatus.PENDING.value,
                    payment_status=OrderPaymentStatus.PENDING.value,
                    items_total=totals.items_total,
                    shipping_fee=totals.shipping_fee,
                    discount_total=totals.discount_total,
                    total_price=totals.total_price,
                    created_at=now,
                    updated_at=now,
                )
            ).inserted_primary_key[0]

            conn.execute(
                order_items.insert(),
                [
                    {
                        "order_id": order_id,
                        "book_id": item.item_id,
                        "quantity": item.quantity,
                        "unit_price": item.unit_price,
                        "line_total": item.line_total,
                    }
                    for item in pricing.items
                ],
            )

            if voucher is not None:
                record_redemption(conn, order_id, voucher, discount, totals.shipping_discount, now)

            record_pending_payment(conn, order_id, totals.total_price, command.payment_method, now)

            cart_id = None
            if command.customer_id:
                cart_id = consume_active_cart(conn, command.customer_id, now)

        logger.info(
            "Order placed",
            order_id=order_id,
            customer_id=command.customer_id,
            item_count=pricing.item_count,
            items_total=str(totals.items_total),
            discount_total=str(totals.discount_total),
            shipping_fee=str(totals.shipping_fee),
            total_price=str(totals.total_price),
            voucher_code=voucher_code,
            cart_id=cart_id,
        )
        return order_id
