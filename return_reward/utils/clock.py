"""Timestamp helpers. Every stored timestamp is timezone-aware UTC."""
from datetime import datetime, timezone
from typing import Optional

# Sorts before every real timestamp
EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values read back from drivers that drop the offset."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
