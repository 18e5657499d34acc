"""Wall-clock helpers. All persisted timestamps are timezone-aware UTC."""

from datetime import datetime, timezone


def now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp read back from storage to an aware UTC instant.

    Naive values (legacy rows, backends without timezone support) are
    taken to be UTC, which is how every write in this service stores them.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
