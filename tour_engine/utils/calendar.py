"""Canonical date-key handling.

Every component that needs a calendar date goes through this module. A date
key is a ``YYYY-MM-DD`` string with no time or timezone component.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator, Optional, Union

import pytz

from ..core.cache import FormatterCache
from ..core.exceptions import InvalidDateKeyError, ValidationError

logger = logging.getLogger(__name__)

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_KEY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_LOOSE_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")
_OFFSET_PATTERN = re.compile(r"^UTC([+-])(\d{2}):(\d{2})$")

# Day-of-week numbering used by stored availability windows
SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)
ALL_DAYS = frozenset(range(7))
WEEKDAYS = frozenset({MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY})

DateInput = Union[str, date, datetime, int, float]


def is_date_key(value: object) -> bool:
    """True when ``value`` is a well-formed, real calendar date key."""
    if not isinstance(value, str) or not DATE_KEY_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_date_key(key: str, field: str = "date") -> date:
    """Parse a date key, rejecting anything that is not exactly YYYY-MM-DD."""
    if not isinstance(key, str) or not DATE_KEY_PATTERN.match(key):
        raise InvalidDateKeyError(key, field=field)
    try:
        return date.fromisoformat(key)
    except ValueError:
        raise InvalidDateKeyError(key, field=field)


def _noon_utc(key: str) -> datetime:
    return datetime.combine(parse_date_key(key), time(12), tzinfo=timezone.utc)


def _datetime_to_key(value: datetime) -> str:
    if value.tzinfo is None or value.utcoffset() is None:
        # Naive values are wall-clock readings (e.g. a date picker)
        return value.date().isoformat()
    as_utc = value.astimezone(timezone.utc)
    if as_utc.time() == time(0):
        # DATE column re-hydrated as a UTC-midnight timestamp
        return as_utc.date().isoformat()
    return value.date().isoformat()


def normalize_date_key(value: DateInput, field: str = "date") -> str:
    """Turn a string, date, datetime or epoch timestamp into a date key.

    - ``YYYY-MM-DD`` strings are returned unchanged.
    - ISO strings with a time component keep the part before ``T`` without
      any timezone conversion.
    - Aware datetimes sitting exactly on UTC midnight are DATE-only values
      and use their UTC date; other datetimes use their own wall-clock date.
    - Epoch seconds follow the same rule, with the host clock standing in
      for the wall clock when they are not on UTC midnight.
    """
    if isinstance(value, str):
        text = value.strip()
        if DATE_KEY_PATTERN.match(text):
            parse_date_key(text, field=field)
            return text
        if "T" in text:
            head = text.split("T", 1)[0]
            parse_date_key(head, field=field)
            return head
        raise InvalidDateKeyError(value, field=field)
    if isinstance(value, datetime):
        return _datetime_to_key(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        instant = datetime.fromtimestamp(value, tz=timezone.utc)
        if instant.time() == time(0):
            return instant.date().isoformat()
        return datetime.fromtimestamp(value).date().isoformat()
    raise InvalidDateKeyError(value, field=field)


def add_days_to_date_key(key: str, days: int) -> str:
    """Shift a date key by ``days``, anchored at noon UTC."""
    anchor = _noon_utc(key)
    try:
        shifted = anchor + timedelta(days=days)
    except OverflowError:
        raise ValidationError(f"Shifting {key} by {days} days leaves the supported calendar", field="days", value=days)
    return shifted.date().isoformat()


def day_of_week(key: str) -> int:
    """Day of week for a date key, 0=Sunday .. 6=Saturday."""
    return (_noon_utc(key).weekday() + 1) % 7


def days_between(start: str, end: str) -> int:
    return (parse_date_key(end) - parse_date_key(start)).days


def date_key_range(start: DateInput, end: DateInput) -> Iterator[str]:
    """Yield every date key from ``start`` to ``end`` inclusive."""
    first = normalize_date_key(start, field="from")
    last = normalize_date_key(end, field="to")
    if first > last:
        raise ValidationError(f"Invalid date range: {first} is after {last}", field="date_range")
    current = first
    while current <= last:
        yield current
        current = add_days_to_date_key(current, 1)


def normalize_time(value: Union[str, time], field: str = "time") -> str:
    """Canonical ``HH:MM`` for a departure time."""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, str):
        match = _LOOSE_TIME_PATTERN.match(value.strip())
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            if hour < 24 and minute < 60:
                return f"{hour:02d}:{minute:02d}"
    raise ValidationError(f"Invalid time {value!r}: expected HH:MM", field=field)


def is_time_key(value: object) -> bool:
    return isinstance(value, str) and bool(TIME_KEY_PATTERN.match(value))


# ---------------------------------------------------------------------------
#  Timezones
# ---------------------------------------------------------------------------

def _load_timezone(name: str) -> Optional[tzinfo]:
    """Load an IANA zone or a ``UTC+HH:MM`` fixed offset; None when unknown."""
    try:
        return pytz.timezone(name)
    except pytz.exceptions.UnknownTimeZoneError:
        pass
    
    match = _OFFSET_PATTERN.match(name)
    if match:
        sign, hours, minutes = match.groups()
        total_offset = int(hours) * 60 + int(minutes)
        if sign == "-":
            total_offset = -total_offset
        return pytz.FixedOffset(total_offset)
    return None


def is_valid_timezone(name: str, cache: Optional[FormatterCache] = None) -> bool:
    if not name:
        return False
    cache = cache if cache is not None else FormatterCache()
    return cache.timezone(name, _load_timezone) is not None


def resolve_timezone(
    name: Optional[str],
    default: str = "UTC",
    cache: Optional[FormatterCache] = None,
) -> tzinfo:
    """Resolve an organization timezone, falling back to ``default`` when unknown."""
    cache = cache if cache is not None else FormatterCache()
    tz = cache.timezone(name, _load_timezone) if name else None
    if tz is not None:
        return tz
    logger.warning("Could not resolve timezone %r, using %s", name, default)
    return cache.timezone(default, _load_timezone) or pytz.UTC


def _as_instant(value: Union[datetime, int, float]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromtimestamp(value, tz=timezone.utc)


def date_key_in_timezone(
    value: Union[datetime, int, float],
    tz_name: Optional[str],
    default: str = "UTC",
    cache: Optional[FormatterCache] = None,
) -> str:
    """Wall-clock date of an instant in an IANA timezone.

    Naive datetimes are taken to be UTC instants.
    """
    tz = resolve_timezone(tz_name, default=default, cache=cache)
    return _as_instant(value).astimezone(tz).date().isoformat()


def time_key_in_timezone(
    value: Union[datetime, int, float],
    tz_name: Optional[str],
    default: str = "UTC",
    cache: Optional[FormatterCache] = None,
) -> str:
    tz = resolve_timezone(tz_name, default=default, cache=cache)
    return _as_instant(value).astimezone(tz).strftime("%H:%M")


def today_key(
    tz_name: Optional[str],
    now: Optional[datetime] = None,
    default: str = "UTC",
    cache: Optional[FormatterCache] = None,
) -> str:
    """What date it is right now for an organization."""
    return date_key_in_timezone(now or datetime.now(timezone.utc), tz_name, default=default, cache=cache)
