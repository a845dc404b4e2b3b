"""Historical timestamp handling.

Corpus timestamps are ISO-8601 instants that can fall well outside the range
of ``datetime`` (posts from ancient Rome use negative, astronomical years such
as ``-000044-03-15T12:00:00Z``). Instants are therefore reduced to an integer
count of microseconds since 1970-01-01T00:00Z on the proleptic Gregorian
calendar, which orders correctly for any year.
"""
from __future__ import annotations

import re
from typing import Optional, Tuple

MICROS_PER_SECOND = 1_000_000
MICROS_PER_DAY = 86_400 * MICROS_PER_SECOND

_ISO_INSTANT = re.compile(
    r"^(?P<year>[+-]?\d{4,6})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?)?"
    r"(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)


def days_from_civil(year: int, month: int, day: int) -> int:
    """Days since 1970-01-01 for a proleptic Gregorian date."""
    y = year - 1 if month <= 2 else year
    era = y // 400
    yoe = y - era * 400
    mp = (month + 9) % 12
    doy = (153 * mp + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


def civil_from_days(days: int) -> Tuple[int, int, int]:
    """Inverse of :func:`days_from_civil`."""
    z = days + 719468
    era = z // 146097
    doe = z - era * 146097
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    year = yoe + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


def _offset_minutes(tz: Optional[str]) -> int:
    if not tz or tz == "Z":
        return 0
    sign = -1 if tz[0] == "-" else 1
    digits = tz[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid UTC offset: {tz}")
    return sign * (hours * 60 + minutes)


def parse_instant(value: str) -> int:
    """
    Parse an ISO-8601 date or instant into UTC microseconds since the epoch.

    Date-only values resolve to midnight UTC. Values without an offset are
    read as UTC. Raises ValueError for anything that is not a real calendar
    instant.
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")

    match = _ISO_INSTANT.match(value.strip())
    if not match:
        raise ValueError(f"Not an ISO-8601 instant: {value!r}")

    parts = match.groupdict()
    year, month, day = int(parts["year"]), int(parts["month"]), int(parts["day"])
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range in {value!r}")

    days = days_from_civil(year, month, day)
    if civil_from_days(days) != (year, month, day):
        raise ValueError(f"Day out of range in {value!r}")

    hour = int(parts["hour"] or 0)
    minute = int(parts["minute"] or 0)
    second = int(parts["second"] or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"Time out of range in {value!r}")

    fraction = parts["fraction"] or ""
    micros = int(fraction[:6].ljust(6, "0")) if fraction else 0

    seconds = hour * 3600 + (minute - _offset_minutes(parts["tz"])) * 60 + second
    return days * MICROS_PER_DAY + seconds * MICROS_PER_SECOND + micros


def try_parse_instant(value: Optional[str]) -> Optional[int]:
    """Like :func:`parse_instant` but returns None for missing or bad input."""
    if value is None:
        return None
    try:
        return parse_instant(value)
    except ValueError:
        return None


def utc_date(instant: int) -> Tuple[int, int, int]:
    """(year, month, day) of an instant in UTC."""
    return civil_from_days(instant // MICROS_PER_DAY)


def month_day_key(month: int, day: int) -> str:
    """Zero-padded ``MM-DD`` key used by date-keyed lookups."""
    return f"{month:02d}-{day:02d}"


def year_month_key(instant: int) -> str:
    """``YYYY-MM`` bucket of an instant; negative years keep their sign."""
    year, month, _ = utc_date(instant)
    return f"{year:04d}-{month:02d}" if year >= 0 else f"-{abs(year):04d}-{month:02d}"


def canonical_sort_key(instant: int, record_id: str) -> Tuple[int, str]:
    """Newest first, ties broken by ascending id."""
    return (-instant, record_id)
