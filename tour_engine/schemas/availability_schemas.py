from __future__ import annotations

from datetime import date, time
from typing import FrozenSet, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator

from ..core.exceptions import ValidationError as EngineValidationError
from ..utils.calendar import ALL_DAYS, normalize_date_key, normalize_time
from .base_schemas import EngineSchema
from .pricing_schemas import Money


def _date_key(value: Union[str, date]) -> str:
    try:
        return normalize_date_key(value)
    except EngineValidationError as e:
        raise ValueError(e.message)


def _time_key(value: Union[str, time]) -> str:
    try:
        return normalize_time(value)
    except EngineValidationError as e:
        raise ValueError(e.message)


class AvailabilityWindow(EngineSchema):
    """Weekly recurrence rule for when a tour may run"""
    id: str
    tour_id: str
    name: Optional[str] = None
    start_date: str
    end_date: Optional[str] = None
    days_of_week: FrozenSet[int] = ALL_DAYS
    max_participants_override: Optional[int] = Field(None, ge=0)
    price_override: Optional[Money] = None
    is_active: bool = True

    @field_validator("start_date", mode="before")
    @classmethod
    def normalize_start(cls, v):
        return _date_key(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def normalize_end(cls, v):
        return None if v is None else _date_key(v)

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days of week must be 0 (Sunday) to 6 (Saturday)")
        return v

    def covers(self, date_key: str, weekday: int) -> bool:
        if not self.is_active or weekday not in self.days_of_week:
            return False
        if date_key < self.start_date:
            return False
        return self.end_date is None or date_key <= self.end_date


class DepartureTime(EngineSchema):
    id: str
    tour_id: str
    time: str
    label: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0

    @field_validator("time", mode="before")
    @classmethod
    def normalize_departure(cls, v):
        return _time_key(v)


class BlackoutDate(EngineSchema):
    id: str
    tour_id: str
    date: str
    reason: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return _date_key(v)


class TourAvailabilityConfig(EngineSchema):
    """Everything the storage layer holds about when one tour runs"""
    tour_id: str
    windows: Tuple[AvailabilityWindow, ...] = ()
    departure_times: Tuple[DepartureTime, ...] = ()
    blackout_dates: Tuple[BlackoutDate, ...] = ()


class TourRun(EngineSchema):
    """A virtual departure produced by a window and a departure time"""
    key: str
    tour_id: str
    date: str
    time: str
    label: Optional[str] = None
    window_id: Optional[str] = None
    max_participants_override: Optional[int] = None
    price_override: Optional[Money] = None


class BookingPolicy(EngineSchema):
    """Organization-level date restrictions for new bookings"""
    timezone: str = "UTC"
    allow_same_day_booking: bool = True
    same_day_cutoff_time: Optional[str] = None

    @field_validator("same_day_cutoff_time", mode="before")
    @classmethod
    def normalize_cutoff(cls, v):
        return None if v is None else _time_key(v)


SlotUnavailableReason = Literal[
    "not_scheduled",
    "blacked_out",
    "past_date",
    "same_day_booking_disabled",
    "same_day_cutoff_passed",
    "sold_out",
    "insufficient_capacity",
]


class SlotAvailability(EngineSchema):
    available: bool
    spots_remaining: int
    max_capacity: int
    booked_count: int
    reason: Optional[SlotUnavailableReason] = None
    run: Optional[TourRun] = None


class DateSlot(EngineSchema):
    key: str
    time: str
    label: Optional[str] = None
    spots_remaining: int
    max_capacity: int
    booked_count: int
    available: bool
    almost_full: bool


class AvailableDate(EngineSchema):
    date: str
    slots: Tuple[DateSlot, ...] = ()
    is_blacked_out: bool = False
    blackout_reason: Optional[str] = None


class MonthAvailability(EngineSchema):
    tour_id: str
    year: int
    month: int
    dates: Tuple[AvailableDate, ...]
    operating_days: Tuple[int, ...] = ()
