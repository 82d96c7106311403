"""Payments bounded context — gateway checkout and payment reconciliation.

Builds signed checkout URLs for the payment gateway and reconciles the
gateway's server-to-server notifications against stored orders. Only the
notification path may move a payment out of PENDING.
"""

import structlog
from protean.domain import Domain

payments = Domain(name="payments")

logger = structlog.get_logger(__name__)
