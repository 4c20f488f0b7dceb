"""
Day keys: the "YYYY-MM-DD" bucket every record is grouped under.

A day key is always the owner's local calendar date in the app timezone, so
an instant like 2024-03-04T20:00:00Z lands on 2024-03-05 in Asia/Tokyo.
Nothing here reads the clock; callers pass "now" in when they mean it.
"""
import re
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.core.exceptions import ValidationError
from django.utils.dateparse import parse_datetime

DEFAULT_TZ = "Asia/Tokyo"
DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def get_zone(tz: str | None = None) -> ZoneInfo:
    name = tz or DEFAULT_TZ
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone: {name}", code="invalid_timezone") from e


def is_day_key(value) -> bool:
    return isinstance(value, str) and bool(DAY_KEY_RE.match(value))


def assert_day_key(value) -> str:
    """Return the day key unchanged, or raise if it is malformed or not a real date."""
    if not is_day_key(value):
        raise ValidationError(f"Invalid dayKey: {value}", code="invalid_day_key")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid dayKey: {value}", code="invalid_day_key") from e
    return value


def parse_instant(value, tz: str | None = None) -> datetime:
    """
    Parse a datetime, date, day key or ISO-8601 string into an aware datetime.

    Values without an offset are wall-clock time in ``tz``.
    """
    zone = get_zone(tz)

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if is_day_key(text):
            dt = datetime.combine(date.fromisoformat(assert_day_key(text)), time.min)
        else:
            try:
                dt = parse_datetime(text)
            except ValueError:
                dt = None
            if dt is None:
                raise ValidationError(f"Invalid datetime: {value}", code="invalid_datetime")
    else:
        raise ValidationError(f"Invalid datetime: {value!r}", code="invalid_datetime")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone)
    return dt


def to_day_key(value, tz: str | None = None) -> str:
    """
    Convert an instant (or an existing day key) into the local day key in ``tz``.

    A day key input is read as local midnight of that date, so the function is
    idempotent on its own output.
    """
    if isinstance(value, str) and is_day_key(value.strip()):
        return assert_day_key(value.strip())
    zone = get_zone(tz)
    return parse_instant(value, tz).astimezone(zone).date().isoformat()


def start_of_day_utc(day_key: str, tz: str | None = None) -> datetime:
    zone = get_zone(tz)
    local = datetime.combine(date.fromisoformat(assert_day_key(day_key)), time.min, tzinfo=zone)
    return local.astimezone(dt_timezone.utc)


def end_of_day_utc(day_key: str, tz: str | None = None) -> datetime:
    zone = get_zone(tz)
    local = datetime.combine(date.fromisoformat(assert_day_key(day_key)), time.max, tzinfo=zone)
    return local.astimezone(dt_timezone.utc)


def month_of(day_key: str) -> str:
    return assert_day_key(day_key)[:7]


def add_days(day_key: str, n: int) -> str:
    return (date.fromisoformat(assert_day_key(day_key)) + timedelta(days=n)).isoformat()


def is_month(value) -> bool:
    return isinstance(value, str) and bool(MONTH_RE.match(value)) and 1 <= int(value[5:7]) <= 12


def month_bounds(month: str) -> tuple[str, str]:
    """First day of ``month`` and first day of the following month (exclusive end)."""
    if not is_month(month):
        raise ValidationError(f"Invalid month: {month}", code="invalid_month")
    year, mon = int(month[:4]), int(month[5:7])
    start = date(year, mon, 1)
    end = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    return start.isoformat(), end.isoformat()


def shift_month(month: str, n: int) -> str:
    start, _ = month_bounds(month)
    index = int(start[:4]) * 12 + int(start[5:7]) - 1 + n
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def to_iso(value) -> str:
    """UTC ISO-8601 string with a trailing Z, the shape every record carries."""
    if isinstance(value, str):
        value = parse_instant(value, "UTC")
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(dt_timezone.utc).isoformat().replace("+00:00", "Z")
