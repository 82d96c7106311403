"""Ordering bounded context — order commitment, vouchers and carts.

Turns a submitted cart into a durably priced order: catalog prices are
snapshotted, a voucher is evaluated and redeemed, and the order, its items,
the redemption and the pending payment are written in one transaction.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
