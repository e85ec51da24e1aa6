from datetime import datetime, timezone


def now() -> datetime:
    """Current UTC time without tzinfo; the project-wide storage convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_tzinfo() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC already."""
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt

