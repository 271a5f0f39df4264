from calendar import monthrange
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC timestamp; DateTime columns are stored without tzinfo."""
    return datetime.now(UTC).replace(tzinfo=None)


def add_month(value: datetime) -> datetime:
    """Same day next month, clamped to the month's last day."""
    year = value.year + (1 if value.month == 12 else 0)
    month = 1 if value.month == 12 else value.month + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
