"""Pricing snapshot — authoritative unit prices at commit time.

Client-supplied prices are never consulted. Requested lines are merged by
catalog id, then every distinct id is priced from the catalog in a single
query. A missing id aborts the whole commit.
"""

from dataclasses import dataclass
from decimal import Decimal

from protean.fields import Integer
from sqlalchemy import select

from ordering.domain import ordering
from shared.errors import ItemNotFound
from shared.money import ZERO, quantize
from shared.tables import MAX_ID, books

# Largest quantity of one catalog item a single order may request.
MAX_QUANTITY = 1000


@ordering.value_object(part_of="Order")
class OrderLine:
    """A requested ``(catalog item, quantity)`` pair."""

    item_id = Integer(required=True, min_value=1, max_value=MAX_ID)
    quantity = Integer(default=1, min_value=1, max_value=MAX_QUANTITY)


@dataclass(frozen=True)
class PricedItem:
    item_id: int
    quantity: int
    unit_price: Decimal
    category: str | None

    @property
    def line_total(self) -> Decimal:
        return quantize(self.unit_price * self.quantity)


@dataclass(frozen=True)
class PricingSnapshot:
    items: tuple[PricedItem, ...]
    items_total: Decimal
    item_count: int
    categories: frozenset[str]


def merge_lines(lines) -> dict[int, int]:
    """Sum quantities per catalog id, keeping first-seen order."""
    merged: dict[int, int] = {}
    for line in lines:
        merged[line.item_id] = merged.get(line.item_id, 0) + line.quantity
    return merged


def resolve_pricing(conn, lines) -> PricingSnapshot:
    """Price ``lines`` against the current catalog. Read-only."""
    merged = merge_lines(lines)

    rows = conn.execute(
        select(books.c.id, books.c.price, books.c.category).where(books.c.id.in_(list(merged)))
    ).all()
    catalog = {row.id: row for row in rows}

    missing = set(merged) - set(catalog)
    if missing:
        raise ItemNotFound(missing)

    items = tuple(
        PricedItem(
            item_id=item_id,
            quantity=quantity,
            unit_price=catalog[item_id].price,
            category=catalog[item_id].category,
        )
        for item_id, quantity in merged.items()
    )

    return PricingSnapshot(
        items=items,
        items_total=sum((item.line_total for item in items), ZERO),
        item_count=sum(item.quantity for item in items),
        categories=frozenset(item.category for item in items if item.category),
    )
