"""Storefront FastAPI application.

Order commitment and payment reconciliation over HTTP. Each request runs in
the domain context chosen by its URL prefix, and that context carries the
engine, settings and gateway the command handlers use. The application is
built by a factory so that tests (and every worker) get their own engine,
settings and gateway instead of module-level singletons.

``PROTEAN_ENV`` selects the overlay of ``src/domain.toml``; it must be set
before this module is imported.

Usage:
    uvicorn app:create_app --factory --app-dir src --host 0.0.0.0 --port 8000
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from ordering.api import order_router, voucher_router
from ordering.domain import ordering
from payments.api import payment_router
from payments.domain import payments
from payments.gateway import build_gateway
from shared.config import Settings
from shared.db import build_engine
from shared.logging import add_context, clear_context, configure_logging
from shared.web import register_exception_handlers

_initialized: set[str] = set()


def init_domains() -> None:
    """Initialize both domains once per process."""
    for domain in (ordering, payments):
        if domain.name not in _initialized:
            domain.init()
            _initialized.add(domain.name)


# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/orders": ordering,
    "/vouchers": ordering,
    "/payments": payments,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


def create_app(settings: Settings | None = None, engine=None) -> FastAPI:
    settings = settings or Settings.from_domain(ordering)
    configure_logging(settings.env)
    init_domains()

    app = FastAPI(
        title="Storefront API",
        description="Order commitment & payment reconciliation",
    )
    app.state.settings = settings
    app.state.engine = engine if engine is not None else build_engine(settings.database_url, settings.database_echo)
    app.state.gateway = build_gateway(settings.gateway)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the domain context for the request and bind log context."""
        clear_context()
        add_context(
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
            path=request.url.path,
        )
        domain = _resolve_domain(request.url.path)
        try:
            if domain is None:
                # No domain match — pass through (health check, docs, etc.)
                return await call_next(request)
            with domain.domain_context(
                engine=app.state.engine,
                settings=app.state.settings,
                gateway=app.state.gateway,
            ):
                return await call_next(request)
        finally:
            clear_context()

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(order_router)
    app.include_router(voucher_router)
    app.include_router(payment_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    def health():
        try:
            with app.state.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            return JSONResponse(status_code=503, content={"status": "unavailable", "env": settings.env})
        return JSONResponse(content={"status": "ok", "env": settings.env})

    return app
