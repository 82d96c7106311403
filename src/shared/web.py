"""FastAPI glue shared by the ordering and payments routers.

Collaborators (engine, settings, gateway) live on ``app.state``; command
handlers see them through the domain context, plain routes through the
dependencies below. Domain and request errors are translated into HTTP
responses in one place.
"""

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import (
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)

from shared.errors import IntegrityViolation, StorageFailure, VoucherRejected, error_code


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_engine(request: Request):
    return request.app.state.engine


def get_settings(request: Request):
    return request.app.state.settings


def get_gateway(request: Request):
    return request.app.state.gateway


def get_customer_id(x_customer_id: str | None = Header(default=None)) -> str | None:
    """Caller identity forwarded by the auth layer in front of this service."""
    if x_customer_id is None or not x_customer_id.strip():
        return None
    return x_customer_id.strip()


def require_customer_id(x_customer_id: str | None = Header(default=None)) -> str:
    customer_id = get_customer_id(x_customer_id)
    if customer_id is None:
        raise HTTPException(status_code=401, detail="X-Customer-Id header is required")
    return customer_id


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code(exc), "details": getattr(exc, "messages", {})},
    )


def request_error_details(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by dotted field path, the shape ``ValidationError`` uses."""
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "header")]
        details.setdefault(".".join(loc) or "body", []).append(error.get("msg", "is invalid"))
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to status codes.

    Starlette picks the handler of the most specific registered class, so
    ``VoucherRejected`` wins over ``InvalidOperationError``.
    """

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return _error_response(400, exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": ValidationError.__name__, "details": request_error_details(exc)},
        )

    @app.exception_handler(ObjectNotFoundError)
    async def _not_found(request: Request, exc: ObjectNotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(VoucherRejected)
    async def _voucher_rejected(request: Request, exc: VoucherRejected):
        return _error_response(422, exc)

    @app.exception_handler(InvalidOperationError)
    async def _conflict(request: Request, exc: InvalidOperationError):
        return _error_response(409, exc)

    @app.exception_handler(IntegrityViolation)
    async def _integrity(request: Request, exc: IntegrityViolation):
        return _error_response(400, exc)

    @app.exception_handler(StorageFailure)
    async def _storage(request: Request, exc: StorageFailure):
        return _error_response(503, exc)
