"""Encode and decode the virtual ``tourId|YYYY-MM-DD|HH:MM`` run identity."""

from __future__ import annotations

from datetime import time
from typing import NamedTuple, Union

from ..core.exceptions import InvalidTourRunKeyError, ValidationError
from .calendar import DateInput, is_date_key, is_time_key, normalize_date_key, normalize_time

SEPARATOR = "|"


class TourRunKeyParts(NamedTuple):
    """Decoded components of a tour run key."""

    tour_id: str
    date: str
    time: str


def encode(tour_id: str, run_date: DateInput, run_time: Union[str, time]) -> str:
    """Build the key for a run; the date is normalized, never hand-formatted."""
    tour_id = "" if tour_id is None else str(tour_id)
    if not tour_id.strip():
        raise ValidationError("Tour id must not be empty", field="tour_id")
    if SEPARATOR in tour_id:
        raise ValidationError(f"Tour id must not contain {SEPARATOR!r}", field="tour_id")
    date_key = normalize_date_key(run_date)
    time_key = normalize_time(run_time)
    return SEPARATOR.join((tour_id, date_key, time_key))


def decode(key: str) -> TourRunKeyParts:
    if not isinstance(key, str):
        raise InvalidTourRunKeyError(key, "not a string")
    segments = key.split(SEPARATOR)
    if len(segments) != 3:
        raise InvalidTourRunKeyError(key, f"expected 3 segments, got {len(segments)}")
    tour_id, date_key, time_key = segments
    if not tour_id.strip():
        raise InvalidTourRunKeyError(key, "empty tour id")
    if not is_date_key(date_key):
        raise InvalidTourRunKeyError(key, f"bad date segment {date_key!r}")
    if not is_time_key(time_key):
        raise InvalidTourRunKeyError(key, f"bad time segment {time_key!r}")
    return TourRunKeyParts(tour_id=tour_id, date=date_key, time=time_key)


def is_valid(key: object) -> bool:
    try:
        decode(key)  # type: ignore[arg-type]
    except InvalidTourRunKeyError:
        return False
    return True
