from datetime import datetime, time, timezone


def naive_utc_now() -> datetime:
    """
    Get current UTC datetime as a naive datetime (no timezone info).
    All DateTime columns store naive UTC values.

    Returns:
        datetime: Current UTC datetime without timezone info
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Convert a datetime object to naive UTC (no timezone info).

    Args:
        dt: Datetime object to convert

    Returns:
        datetime: Naive UTC datetime
    """
    if dt.tzinfo is None:
        # Already naive, assume it's UTC
        return dt
    else:
        # Convert to UTC and remove timezone info
        utc_dt = dt.astimezone(timezone.utc)
        return utc_dt.replace(tzinfo=None)


def start_of_today() -> datetime:
    """Midnight of the current UTC day as a naive datetime."""
    return datetime.combine(naive_utc_now().date(), time.min)
