# storefront/utils/time_utils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC, naive; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
