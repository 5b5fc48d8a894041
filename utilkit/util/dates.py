"""
Date and time utilities for utilkit.

Patterns are ``strftime``/``strptime`` format strings. Naive datetimes are
interpreted as local wall-clock time; aware datetimes keep their offset.
Differences are counted in whole units and truncated toward zero.
"""

import calendar
import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ParseError, ValidationError

ISO_DATE_PATTERN = "%Y-%m-%d"
ISO_DATE_TIME_PATTERN = "%Y-%m-%dT%H:%M:%S"
READABLE_DATE_TIME_PATTERN = "%Y-%m-%d %H:%M:%S"

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)

DateLike = Union[date, datetime]

_MICROSECOND = timedelta(microseconds=1)


def get_current_date() -> date:
    return date.today()


def get_current_time() -> time:
    return datetime.now().time()


def get_current_date_time() -> datetime:
    return datetime.now()


def get_current_zoned_date_time() -> datetime:
    """Current time with the system zone attached."""
    return datetime.now().astimezone()


def get_current_utc_date_time() -> datetime:
    return datetime.now(timezone.utc)


def _require(value, name: str = "date") -> None:
    if value is None:
        raise ValidationError(f"{name.capitalize()} cannot be None", field=name)


def _require_range(start, end) -> None:
    _require(start, "start")
    _require(end, "end")
    if isinstance(start, datetime) != isinstance(end, datetime):
        raise ValidationError("Start and end must both be dates or both be datetimes")


def _require_datetime(value, name: str = "date_time") -> None:
    _require(value, name)
    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime", field=name)


def _zone(zone_id: str) -> tzinfo:
    if not zone_id:
        raise ValidationError("Zone id cannot be empty", field="zone_id")
    try:
        return ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown time zone: {zone_id}", field="zone_id", cause=e)


def format_date(value: DateLike, pattern: str) -> str:
    """Format a date, datetime or zoned datetime with ``pattern``."""
    _require(value)
    if not pattern:
        raise ValidationError("Pattern cannot be empty", field="pattern")
    try:
        return value.strftime(pattern)
    except ValueError as e:
        raise ValidationError(f"Invalid date pattern '{pattern}': {e}", field="pattern", cause=e)


def parse_date_time(text: str, pattern: str) -> datetime:
    """Parse ``text`` into a datetime using ``pattern``."""
    if not text:
        raise ValidationError("Date string cannot be None or empty", field="text")
    try:
        return datetime.strptime(text, pattern)
    except ValueError as e:
        raise ParseError(f"Cannot parse '{text}' with pattern '{pattern}': {e}", cause=e)


def parse_date(text: str, pattern: str) -> date:
    """Parse ``text`` into a date using ``pattern``."""
    return parse_date_time(text, pattern).date()


def parse_zoned_date_time(text: str, pattern: str) -> datetime:
    """Parse ``text`` into an aware datetime; the pattern must carry %z or %Z."""
    parsed = parse_date_time(text, pattern)
    if parsed.tzinfo is None:
        raise ParseError(f"'{text}' does not contain a zone offset for pattern '{pattern}'")
    return parsed


def _months_between(start: DateLike, end: DateLike) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if isinstance(start, datetime):
        start_tail = (start.day, start.time())
        end_tail = (end.day, end.time())
    else:
        start_tail = start.day
        end_tail = end.day
    if months > 0 and end_tail < start_tail:
        months -= 1
    elif months < 0 and end_tail > start_tail:
        months += 1
    return months


def _truncate(delta: timedelta, unit: timedelta) -> int:
    micros = delta // _MICROSECOND
    unit_micros = unit // _MICROSECOND
    whole = abs(micros) // unit_micros
    return whole if micros >= 0 else -whole


def get_years_between(start: DateLike, end: DateLike) -> int:
    _require_range(start, end)
    months = _months_between(start, end)
    return months // 12 if months >= 0 else -((-months) // 12)


def get_months_between(start: DateLike, end: DateLike) -> int:
    _require_range(start, end)
    return _months_between(start, end)


def get_days_between(start: DateLike, end: DateLike) -> int:
    _require_range(start, end)
    return _truncate(end - start, timedelta(days=1))


def get_hours_between(start: datetime, end: datetime) -> int:
    _require_range(start, end)
    return _truncate(end - start, timedelta(hours=1))


def get_minutes_between(start: datetime, end: datetime) -> int:
    _require_range(start, end)
    return _truncate(end - start, timedelta(minutes=1))


def get_seconds_between(start: datetime, end: datetime) -> int:
    _require_range(start, end)
    return _truncate(end - start, timedelta(seconds=1))


def _shift_months(value: DateLike, months: int) -> DateLike:
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    if not 1 <= year <= 9999:
        raise ValidationError("Resulting year is out of range", field="months")
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_days(value: DateLike, days: int) -> DateLike:
    _require(value)
    return value + timedelta(days=days)


def add_months(value: DateLike, months: int) -> DateLike:
    """Add calendar months, clamping to the last day of the resulting month."""
    _require(value)
    return _shift_months(value, months)


def add_years(value: DateLike, years: int) -> DateLike:
    _require(value)
    return _shift_months(value, years * 12)


def add_hours(value: datetime, hours: int) -> datetime:
    _require_datetime(value)
    return value + timedelta(hours=hours)


def add_minutes(value: datetime, minutes: int) -> datetime:
    _require_datetime(value)
    return value + timedelta(minutes=minutes)


def add_seconds(value: datetime, seconds: int) -> datetime:
    _require_datetime(value)
    return value + timedelta(seconds=seconds)


def subtract_days(value: DateLike, days: int) -> DateLike:
    return add_days(value, -days)


def subtract_months(value: DateLike, months: int) -> DateLike:
    return add_months(value, -months)


def subtract_years(value: DateLike, years: int) -> DateLike:
    return add_years(value, -years)


def subtract_hours(value: datetime, hours: int) -> datetime:
    return add_hours(value, -hours)


def subtract_minutes(value: datetime, minutes: int) -> datetime:
    return add_minutes(value, -minutes)


def subtract_seconds(value: datetime, seconds: int) -> datetime:
    return add_seconds(value, -seconds)


def to_unix_timestamp(value: DateLike) -> int:
    """
    Seconds since the epoch.

    A plain date counts from its local start of day, a naive datetime is
    read in the local zone and an aware datetime uses its own offset.
    """
    _require(value)
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    return math.floor(value.timestamp())


def from_unix_timestamp(timestamp: float) -> datetime:
    """Naive local datetime for ``timestamp``."""
    return datetime.fromtimestamp(timestamp)


def from_unix_timestamp_to_date(timestamp: float) -> date:
    return datetime.fromtimestamp(timestamp).date()


def from_unix_timestamp_to_zoned(timestamp: float, zone_id: str) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=_zone(zone_id))


def is_leap_year(year: int) -> bool:
    return calendar.isleap(year)


def _as_date(value: DateLike) -> date:
    _require(value)
    return value.date() if isinstance(value, datetime) else value


def get_start_of_day(value: DateLike) -> datetime:
    return datetime.combine(_as_date(value), time.min)


def get_end_of_day(value: DateLike) -> datetime:
    return datetime.combine(_as_date(value), time.max)


def get_start_of_week(value: DateLike) -> date:
    """Monday of the week containing ``value``."""
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def get_end_of_week(value: DateLike) -> date:
    """Sunday of the week containing ``value``."""
    day = _as_date(value)
    return day + timedelta(days=SUNDAY - day.weekday())


def get_start_of_month(value: DateLike) -> date:
    return _as_date(value).replace(day=1)


def get_end_of_month(value: DateLike) -> date:
    day = _as_date(value)
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def get_start_of_year(value: DateLike) -> date:
    return _as_date(value).replace(month=1, day=1)


def get_end_of_year(value: DateLike) -> date:
    return _as_date(value).replace(month=12, day=31)


def _now_like(value: DateLike) -> DateLike:
    if isinstance(value, datetime):
        return datetime.now(value.tzinfo) if value.tzinfo else datetime.now()
    return date.today()


def is_future_date(value: DateLike) -> bool:
    _require(value)
    return value > _now_like(value)


def is_past_date(value: DateLike) -> bool:
    _require(value)
    return value < _now_like(value)


def is_today(value: DateLike) -> bool:
    return _as_date(value) == date.today()


def is_weekend(value: DateLike) -> bool:
    return _as_date(value).weekday() >= SATURDAY


def is_weekday(value: DateLike) -> bool:
    return not is_weekend(value)


def to_zoned_date_time(value: datetime, zone_id: str) -> datetime:
    """Attach ``zone_id`` to a naive datetime without shifting the wall clock."""
    _require_datetime(value)
    return value.replace(tzinfo=_zone(zone_id))


def convert_to_time_zone(value: datetime, zone_id: str) -> datetime:
    """
    Express the same instant in ``zone_id``.
    Naive values are taken to be local time.
    """
    _require_datetime(value)
    return value.astimezone(_zone(zone_id))


def get_day_of_week(value: DateLike) -> int:
    """Day of week, Monday == 0 ... Sunday == 6."""
    return _as_date(value).weekday()


def get_quarter(value: DateLike) -> int:
    return (_as_date(value).month - 1) // 3 + 1


def get_last_day_of_month(value: DateLike) -> int:
    day = _as_date(value)
    return calendar.monthrange(day.year, day.month)[1]


def get_days_in_month(year: int, month: int) -> int:
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}", field="month")
    return calendar.monthrange(year, month)[1]


def get_days_in_current_month() -> int:
    return get_last_day_of_month(date.today())


def calculate_age(birth_date: date, reference_date: Optional[date] = None) -> int:
    """Completed years between ``birth_date`` and ``reference_date`` (today by default)."""
    _require(birth_date, "birth_date")
    reference = _as_date(reference_date) if reference_date is not None else date.today()
    birth = _as_date(birth_date)
    if birth > reference:
        raise ValidationError("Birth date cannot be after the reference date", field="birth_date")
    return get_years_between(birth, reference)


def _require_weekday(weekday: int) -> None:
    if weekday is None or not 0 <= weekday <= 6:
        raise ValidationError("Day of week must be between 0 (Monday) and 6 (Sunday)",
                              field="weekday")


def get_next_day_of_week(value: DateLike, weekday: int) -> date:
    """First ``weekday`` strictly after ``value``."""
    day = _as_date(value)
    _require_weekday(weekday)
    return day + timedelta(days=(weekday - day.weekday() - 1) % 7 + 1)


def get_previous_day_of_week(value: DateLike, weekday: int) -> date:
    """Last ``weekday`` strictly before ``value``."""
    day = _as_date(value)
    _require_weekday(weekday)
    return day - timedelta(days=(day.weekday() - weekday - 1) % 7 + 1)


def do_date_ranges_overlap(start1: DateLike, end1: DateLike,
                           start2: DateLike, end2: DateLike) -> bool:
    """Inclusive overlap test of [start1, end1] and [start2, end2]."""
    _require_range(start1, end1)
    _require_range(start2, end2)
    return not start1 > end2 and not start2 > end1


def get_dates_between(start: date, end: date) -> List[date]:
    """All dates from ``start`` to ``end`` inclusive."""
    _require_range(start, end)
    start, end = _as_date(start), _as_date(end)
    if end < start:
        raise ValidationError("End date must not be before start date", field="end")
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
