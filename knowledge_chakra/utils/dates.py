"""UTC helpers.

SQLite hands ``DateTime(timezone=True)`` columns back as naive values, so
anything read from the database is normalized here before comparison.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""

    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(deadline: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when ``deadline`` is set and ``now`` is strictly after it."""

    if deadline is None:
        return False
    return (now or utc_now()) > as_utc(deadline)
