import calendar
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from sevenblue_loyalty.config import get_settings


def utcnow() -> datetime:
    # Naive UTC, matching the TIMESTAMP columns.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo("UTC"))


def to_utc_naive(dt: datetime) -> datetime:
    return as_utc_aware(dt).replace(tzinfo=None)


def business_date(dt: datetime, tz_name: str | None = None) -> date:
    """Calendar date of ``dt`` in the business timezone."""
    tz = ZoneInfo(tz_name or get_settings().timezone)
    return as_utc_aware(dt).astimezone(tz).date()


def business_day_start(dt: datetime, tz_name: str | None = None) -> datetime:
    """Naive-UTC instant at which the business day containing ``dt`` began."""
    tz = ZoneInfo(tz_name or get_settings().timezone)
    local_midnight = datetime.combine(business_date(dt, tz_name), time.min, tzinfo=tz)
    return to_utc_naive(local_midnight)


def add_months(dt: datetime, months: int) -> datetime:
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
