"""Timezone helpers.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)`` columns,
so anything compared against ``utc_now()`` goes through ``as_utc`` first.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
