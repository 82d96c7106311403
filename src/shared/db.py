"""Engine construction, schema management and transactional scopes."""

from contextlib import contextmanager

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from shared.errors import StorageFailure
from shared.tables import metadata

logger = structlog.get_logger(__name__)

# Seconds a SQLite connection waits on a competing writer before failing.
SQLITE_BUSY_TIMEOUT = 30


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    SQLite gets a generous busy timeout so concurrent writers queue behind the
    database lock instead of failing, and foreign keys are switched on.
    In-memory SQLite shares one connection across threads.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    kwargs = {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT, "check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def setup_db(engine: Engine) -> None:
    """Create all tables."""
    metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    """Drop all tables."""
    metadata.drop_all(engine)


@contextmanager
def transaction(engine: Engine, operation: str, **context):
    """Open an all-or-nothing unit of work.

    Any exception raised inside the block rolls the transaction back and
    propagates. Driver/database errors are logged with full context and
    re-raised as ``StorageFailure`` so callers can tell "retry later" apart
    from a rejected request.
    """
    try:
        with engine.begin() as conn:
            yield conn
    except SQLAlchemyError as exc:
        logger.error(
            "Storage failure",
            operation=operation,
            error=str(exc),
            exc_info=True,
            **context,
        )
        raise StorageFailure(operation) from exc
