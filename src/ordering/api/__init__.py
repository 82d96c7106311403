"""Ordering domain API package."""

from ordering.api.routes import order_router, voucher_router

__all__ = ["order_router", "voucher_router"]
