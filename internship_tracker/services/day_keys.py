"""Day keys for attendance rows.

Attendance is bucketed by the calendar day in a fixed UTC+7 offset. A day
key is that calendar day expressed as UTC midnight, so every timestamp of
the same local day maps to one identical value and the
``(user_id, date)`` unique constraint rejects a second row.
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone

ATTENDANCE_UTC_OFFSET = timedelta(hours=7)
LATE_CUTOFF = time(9, 0)


def normalize_ts(ts_utc: datetime | None) -> datetime:
    if ts_utc is None:
        return datetime.now(timezone.utc)

    if ts_utc.tzinfo is None:
        return ts_utc.replace(tzinfo=timezone.utc)

    return ts_utc.astimezone(timezone.utc)


def local_wall_time(ts_utc: datetime) -> datetime:
    """Naive wall-clock time of ``ts_utc`` in the attendance offset."""
    return (normalize_ts(ts_utc) + ATTENDANCE_UTC_OFFSET).replace(tzinfo=None)


def day_key_for_date(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def normalize_day_key(ts_utc: datetime | None = None) -> datetime:
    return day_key_for_date(local_wall_time(normalize_ts(ts_utc)).date())


def local_date_of_key(day_key: datetime) -> date:
    return normalize_ts(day_key).date()


def is_late(ts_utc: datetime) -> bool:
    local = local_wall_time(ts_utc)
    if local.hour > LATE_CUTOFF.hour:
        return True
    return local.hour == LATE_CUTOFF.hour and local.minute > LATE_CUTOFF.minute


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last day keys of a month, both inclusive."""
    if month < 1 or month > 12:
        raise ValueError("month must be between 1 and 12")
    days_in_month = monthrange(year, month)[1]
    return day_key_for_date(date(year, month, 1)), day_key_for_date(date(year, month, days_in_month))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
