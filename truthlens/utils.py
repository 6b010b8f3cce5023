"""
Time helpers shared by the subsystems.

All timestamps are timezone-aware in the server's local zone so that they
compare correctly once loaded back from the document store.
"""
import calendar
from datetime import datetime
from typing import Optional


def now_local() -> datetime:
    """Current time as an aware datetime in the server's local zone."""
    return datetime.now().astimezone()


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as local time."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.astimezone()
    return value


def start_of_day(moment: datetime) -> datetime:
    """Midnight of the calendar day containing ``moment``."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` by whole months, clamping to the last day of the month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_datetime(value) -> Optional[datetime]:
    """Parse an ISO 8601 string (``Z`` accepted) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
