"""Logging for the storefront service.

The stdlib root logger owns the handlers; structlog renders events and
merges request context bound with ``add_context``. Gateway payloads are
logged often, so a redaction step keeps checksums and merchant secrets
out of every log line.

Call ``configure_logging()`` once at process start; ``create_app`` and
``manage.py`` both do.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_STRUCTURED_ENVS = {"production", "staging"}

# Keys whose values never reach a log sink.
SENSITIVE_KEYS = frozenset({"vnp_SecureHash", "hash_secret", "secret", "authorization"})
REDACTED = "***"

_MAX_LOG_BYTES = 10 * 1024 * 1024


def _resolve_env(env: str | None) -> str:
    return (env or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level(env: str | None = None) -> str:
    """``LOG_LEVEL`` if set, otherwise a default for the environment."""
    return os.getenv("LOG_LEVEL", _LEVELS_BY_ENV.get(_resolve_env(env), "INFO"))


def redact_secrets(logger, method_name, event_dict):
    """structlog processor masking sensitive keys, one mapping level deep."""
    for key, value in event_dict.items():
        if key in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, dict) and SENSITIVE_KEYS.intersection(value):
            event_dict[key] = {k: REDACTED if k in SENSITIVE_KEYS else v for k, v in value.items()}
    return event_dict


def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(env: str | None = None, log_dir: str | Path | None = None) -> None:
    """Route everything through the root logger.

    Console output always; rotating files only when ``log_dir`` is given.
    """
    level = get_log_level(env)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    root.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        root.addHandler(_rotating_handler(log_dir / "storefront.log", level))
        root.addHandler(_rotating_handler(log_dir / "storefront_error.log", logging.ERROR))

    # SQL echo is controlled by Settings.database_echo, not the log level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_structlog(env: str | None = None) -> None:
    env = _resolve_env(env)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
    ]

    if env in _STRUCTURED_ENVS:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(env: str | None = None, log_dir: str | Path | None = None) -> None:
    """Configure stdlib handlers and structlog for ``env``."""
    setup_stdlib_logging(env, log_dir or os.getenv("LOG_DIR"))
    setup_structlog(env)


def add_context(**kwargs: Any) -> None:
    """Bind values included in every later log line of this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
