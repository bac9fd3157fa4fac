# bzpark/utils/timeutil.py
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Aware request timestamps are converted to UTC and stripped of tzinfo."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
