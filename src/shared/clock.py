"""Time helpers.

Timestamps are stored as naive UTC datetimes; SQLite drops tzinfo on the way
back, so comparisons are always made in naive UTC.

Handlers read the time from the active domain's clock (``domain.clock``), so
a test can freeze it by swapping that clock.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(moment: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(UTC).replace(tzinfo=None)


def domain_now() -> datetime:
    """The active domain's current time, as naive UTC."""
    return as_naive_utc(current_domain.clock.now())
