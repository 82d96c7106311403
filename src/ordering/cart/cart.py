"""Shopping cart collaborator used at checkout.

Only the checkout-side operation lives here: when an order is committed for
an authenticated customer, their ACTIVE cart is emptied and marked ORDERED
inside the same transaction as the order itself.
"""

from enum import Enum

from sqlalchemy import delete, select, update

from shared.tables import cart_items, carts


class CartStatus(Enum):
    ACTIVE = "ACTIVE"
    ORDERED = "ORDERED"


def find_active_cart(conn, customer_id: str) -> int | None:
    return conn.execute(
        select(carts.c.id)
        .where(carts.c.customer_id == customer_id, carts.c.status == CartStatus.ACTIVE.value)
        .order_by(carts.c.id)
        .limit(1)
    ).scalar()


def consume_active_cart(conn, customer_id: str, now) -> int | None:
    """Clear and close the customer's active cart. Returns its id, if any."""
    cart_id = find_active_cart(conn, customer_id)
    if cart_id is None:
        return None

    conn.execute(delete(cart_items).where(cart_items.c.cart_id == cart_id))
    conn.execute(
        update(carts)
        .where(carts.c.id == cart_id)
        .values(status=CartStatus.ORDERED.value, updated_at=now)
    )
    return cart_id
