from datetime import datetime, timezone


def utcnow() -> datetime:
    # Keep naive UTC timestamps to match the DB column types.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an offset-aware timestamp to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
