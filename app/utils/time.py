from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    # Jan 31 + 1 month -> Feb 28/29
    return value + relativedelta(months=months)


def duration_minutes(start: datetime, end: datetime) -> int:
    seconds = (end - start).total_seconds()
    return int(-(-seconds // 60))
