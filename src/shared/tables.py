"""Relational schema for the storefront core.

A single ``MetaData`` holds every table touched by order commitment and
payment reconciliation. Money columns use the ``Money`` type (integer minor
units in the database, ``Decimal`` in Python); a voucher's value uses
``Rate`` because it may be a percentage.

Integer keys are 32-bit on every supported database. ``MAX_ID`` bounds every
id accepted from outside so an oversized one is rejected before it reaches a
driver.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

from shared.money import Money, Rate

MAX_ID = 2**31 - 1

metadata = MetaData()

# ---------------------------------------------------------------------------
# Catalog (read-only to this core)
# ---------------------------------------------------------------------------
books = Table(
    "books",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(255), nullable=False),
    Column("category", String(100)),
    Column("price", Money, nullable=False),
)

# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------
carts = Table(
    "carts",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", String(64), nullable=False, index=True),
    Column("status", String(20), nullable=False, default="ACTIVE"),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

cart_items = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("cart_id", Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("book_id", Integer, ForeignKey("books.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),
)

# ---------------------------------------------------------------------------
# Vouchers
# ---------------------------------------------------------------------------
vouchers = Table(
    "vouchers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("code", String(50), nullable=False, unique=True),
    Column("type", String(20), nullable=False),
    Column("value", Rate, nullable=False),
    Column("max_discount", Money),
    Column("min_order_amount", Money, nullable=False, default=0),
    Column("min_quantity", Integer),
    Column("applicable_categories", JSON),
    Column("valid_from", DateTime, nullable=False),
    Column("valid_to", DateTime, nullable=False),
    Column("usage_limit", Integer),
    Column("used_count", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    CheckConstraint(
        "usage_limit IS NULL OR used_count <= usage_limit",
        name="ck_vouchers_used_count_within_limit",
    ),
)

# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", String(64), index=True),
    Column("address_id", Integer),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, index=True),
    Column("phone", String(50), nullable=False),
    Column("city", String(100), nullable=False),
    Column("country", String(100), nullable=False),
    Column("state", String(100)),
    Column("zipcode", String(20)),
    Column("payment_method", String(20), nullable=False),
    Column("status", String(20), nullable=False),
    Column("payment_status", String(20), nullable=False),
    Column("items_total", Money, nullable=False),
    Column("shipping_fee", Money, nullable=False),
    Column("discount_total", Money, nullable=False),
    Column("total_price", Money, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("book_id", Integer, ForeignKey("books.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Money, nullable=False),
    Column("line_total", Money, nullable=False),
    UniqueConstraint("order_id", "book_id", name="uq_order_items_order_book"),
    CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
)

order_vouchers = Table(
    "order_vouchers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("voucher_id", Integer, ForeignKey("vouchers.id"), nullable=False, index=True),
    Column("discount_amount", Money, nullable=False),
    Column("shipping_discount", Money, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("amount", Money, nullable=False),
    Column("method", String(20), nullable=False),
    Column("status", String(20), nullable=False),
    Column("transaction_ref", String(100)),
    Column("paid_at", DateTime),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)
