"""Time sources that can be passed to the store and session layers."""
from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SystemClock:
    def now(self) -> datetime:
        return utcnow()


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, at: datetime):
        self._now = as_utc(at)

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = as_utc(at)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from ``kwargs`` (days=, hours=, ...)."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
