# pos/credits/weeks.py
"""
Credit week arithmetic.

A credit week runs Saturday 00:00:00 through the following Friday
23:59:59.999 (inclusive). A note's due date is the Friday that ends its week.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from pos.config import Settings, get_settings

SATURDAY = 5  # datetime.weekday(): Monday=0 .. Sunday=6
WEEK_END_TIME = time(23, 59, 59, 999000)


def now_local(settings: Optional[Settings] = None) -> datetime:
    """Current wall-clock time in the store's timezone, without tzinfo."""
    settings = settings or get_settings()
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def get_week_start(value: Union[date, datetime, None] = None) -> datetime:
    """
    Midnight of the most recent Saturday on or before ``value``.
    """
    dt = _as_datetime(value) if value is not None else now_local()
    days_back = (dt.weekday() - SATURDAY) % 7
    start = dt - timedelta(days=days_back)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def get_week_end(week_start: Union[date, datetime]) -> datetime:
    """Friday 23:59:59.999 of the week beginning at ``week_start``."""
    friday = _as_datetime(week_start) + timedelta(days=6)
    return datetime.combine(friday.date(), WEEK_END_TIME)


def format_week_range(week_start: Union[date, datetime]) -> str:
    """Human-readable "DD/MM - DD/MM" label."""
    week_end = get_week_end(week_start)
    return f"{week_start:%d/%m} - {week_end:%d/%m}"


def to_date_string(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def is_current_week(value: Union[date, datetime], now: Optional[datetime] = None) -> bool:
    start = get_week_start(now)
    return start <= _as_datetime(value) <= get_week_end(start)
