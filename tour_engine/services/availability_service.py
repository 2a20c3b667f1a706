import calendar as month_calendar
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..core import BaseService, ValidationError
from ..core.cache import FormatterCache
from ..core.config import Settings
from ..schemas import (
    AvailabilityWindow,
    AvailableDate,
    BookingPolicy,
    CapacityModel,
    DateSlot,
    DepartureTime,
    MonthAvailability,
    SlotAvailability,
    TourAvailabilityConfig,
    TourRun,
    parse_availability_config,
)
from ..utils import tour_run_key
from ..utils.calendar import (
    DateInput,
    add_days_to_date_key,
    date_key_in_timezone,
    date_key_range,
    day_of_week,
    days_between,
    normalize_date_key,
    parse_date_key,
    time_key_in_timezone,
)
from .capacity_service import CapacityEvaluator

logger = logging.getLogger(__name__)


class AvailabilityResolver(BaseService):
    """Expands recurrence rules into virtual tour runs"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[FormatterCache] = None,
        capacity: Optional[CapacityEvaluator] = None,
    ):
        super().__init__(settings, cache)
        self.capacity = capacity or CapacityEvaluator(self.settings, self.cache)

    # ------------------------------------------------------------------
    #  Run resolution
    # ------------------------------------------------------------------

    def resolve_runs(self, config: Any, date_from: DateInput, date_to: DateInput) -> List[TourRun]:
        """Runs bookable in ``[date_from, date_to]``, sorted by date then time.

        A blackout date removes every run on that date. When several windows
        cover a date, the one picked by ``window_for_date`` supplies the
        capacity and price overrides.
        """
        config = parse_availability_config(config)
        start = normalize_date_key(date_from, field="from")
        end = normalize_date_key(date_to, field="to")
        if start > end:
            raise ValidationError(f"Invalid date range: {start} is after {end}", field="date_range")
        span = days_between(start, end) + 1
        if span > self.settings.MAX_RANGE_DAYS:
            raise ValidationError(
                f"Date range of {span} days exceeds the maximum of {self.settings.MAX_RANGE_DAYS}",
                field="date_range",
            )

        windows = self._active_windows(config)
        departures = self._active_departures(config)
        blackouts = self._blackouts(config)
        if not windows or not departures:
            return []

        runs: List[TourRun] = []
        blacked_out = 0
        for date_key in date_key_range(start, end):
            window = self._pick_window(windows, date_key)
            if window is None:
                continue
            if date_key in blackouts:
                blacked_out += len(departures)
                continue
            for departure in departures:
                runs.append(self._build_run(config.tour_id, date_key, departure, window))

        logger.debug(
            "Resolved %d runs for tour %s between %s and %s (%d removed by blackouts)",
            len(runs), config.tour_id, start, end, blacked_out,
        )
        return runs

    def resolve_run_keys(self, config: Any, date_from: DateInput, date_to: DateInput) -> List[str]:
        return [run.key for run in self.resolve_runs(config, date_from, date_to)]

    def find_run(self, config: Any, key: str) -> Optional[TourRun]:
        """The run a key points at, or None when no window produces it"""
        parts = tour_run_key.decode(key)
        config = parse_availability_config(config)
        if parts.tour_id != config.tour_id:
            return None
        for run in self.resolve_runs(config, parts.date, parts.date):
            if run.time == parts.time:
                return run
        return None

    def window_for_date(self, config: Any, date: DateInput) -> Optional[AvailabilityWindow]:
        """Window whose overrides apply on a date (blackouts not considered)"""
        config = parse_availability_config(config)
        return self._pick_window(self._active_windows(config), normalize_date_key(date))

    def is_blacked_out(self, config: Any, date: DateInput) -> bool:
        config = parse_availability_config(config)
        return normalize_date_key(date) in self._blackouts(config)

    def _active_windows(self, config: TourAvailabilityConfig) -> List[AvailabilityWindow]:
        return [w for w in config.windows if w.is_active and w.tour_id == config.tour_id]

    def _active_departures(self, config: TourAvailabilityConfig) -> List[DepartureTime]:
        by_time: Dict[str, DepartureTime] = {}
        for departure in sorted(config.departure_times, key=lambda d: (d.sort_order, d.time)):
            if departure.is_active and departure.tour_id == config.tour_id:
                by_time.setdefault(departure.time, departure)
        return [by_time[t] for t in sorted(by_time)]

    def _blackouts(self, config: TourAvailabilityConfig) -> Dict[str, Optional[str]]:
        return {b.date: b.reason for b in config.blackout_dates if b.tour_id == config.tour_id}

    @staticmethod
    def _pick_window(windows: List[AvailabilityWindow], date_key: str) -> Optional[AvailabilityWindow]:
        weekday = day_of_week(date_key)
        covering = [w for w in windows if w.covers(date_key, weekday)]
        if not covering:
            return None

        # Narrowest span first, open-ended last; then latest start; then id
        def specificity(window: AvailabilityWindow):
            span = days_between(window.start_date, window.end_date) if window.end_date else float("inf")
            return (span, -parse_date_key(window.start_date).toordinal(), window.id)

        return min(covering, key=specificity)

    @staticmethod
    def _build_run(tour_id: str, date_key: str, departure: DepartureTime, window: AvailabilityWindow) -> TourRun:
        return TourRun(
            key=tour_run_key.encode(tour_id, date_key, departure.time),
            tour_id=tour_id,
            date=date_key,
            time=departure.time,
            label=departure.label,
            window_id=window.id,
            max_participants_override=window.max_participants_override,
            price_override=window.price_override,
        )

    # ------------------------------------------------------------------
    #  Booking checks
    # ------------------------------------------------------------------

    def day_restriction(
        self,
        date: DateInput,
        policy: Optional[BookingPolicy] = None,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Why a new booking on ``date`` is refused by the date rules, if at all"""
        policy = policy or BookingPolicy(timezone=self.settings.DEFAULT_TIMEZONE)
        now = now or datetime.now(timezone.utc)
        date_key = normalize_date_key(date)
        today = date_key_in_timezone(now, policy.timezone, default=self.settings.DEFAULT_TIMEZONE, cache=self.cache)

        if date_key < today:
            return "past_date"
        if date_key != today:
            return None
        if not policy.allow_same_day_booking:
            return "same_day_booking_disabled"
        if policy.same_day_cutoff_time:
            local_time = time_key_in_timezone(
                now, policy.timezone, default=self.settings.DEFAULT_TIMEZONE, cache=self.cache
            )
            if local_time >= policy.same_day_cutoff_time:
                return "same_day_cutoff_passed"
        return None

    def check_slot_availability(
        self,
        config: Any,
        key: str,
        capacity_model: CapacityModel,
        booked_count: int = 0,
        requested_spots: int = 1,
        policy: Optional[BookingPolicy] = None,
        now: Optional[datetime] = None,
    ) -> SlotAvailability:
        """Whether ``requested_spots`` more people can book a run.

        Pass ``requested_spots=0`` for a capacity-only check that ignores the
        date rules.
        """
        if requested_spots < 0:
            raise ValidationError("Requested spots must not be negative", field="requested_spots", value=requested_spots)

        config = parse_availability_config(config)
        run = self.find_run(config, key)

        # Not produced by any window, or removed by a blackout
        if run is None:
            parts = tour_run_key.decode(key)
            blacked_out = parts.tour_id == config.tour_id and parts.date in self._blackouts(config)
            return SlotAvailability(
                available=False,
                spots_remaining=0,
                max_capacity=0,
                booked_count=booked_count,
                reason="blacked_out" if blacked_out else "not_scheduled",
            )

        max_capacity = self.capacity.total_capacity(capacity_model, run.max_participants_override)
        spots_remaining = self.capacity.remaining(capacity_model, booked_count, run.max_participants_override)

        if requested_spots > 0:
            restriction = self.day_restriction(run.date, policy, now)
            if restriction is not None:
                return SlotAvailability(
                    available=False,
                    spots_remaining=spots_remaining,
                    max_capacity=max_capacity,
                    booked_count=booked_count,
                    reason=restriction,
                    run=run,
                )

        if spots_remaining < requested_spots:
            return SlotAvailability(
                available=False,
                spots_remaining=spots_remaining,
                max_capacity=max_capacity,
                booked_count=booked_count,
                reason="sold_out" if spots_remaining <= 0 else "insufficient_capacity",
                run=run,
            )

        return SlotAvailability(
            available=True,
            spots_remaining=spots_remaining,
            max_capacity=max_capacity,
            booked_count=booked_count,
            run=run,
        )

    # ------------------------------------------------------------------
    #  Month calendar
    # ------------------------------------------------------------------

    def get_month_availability(
        self,
        config: Any,
        year: int,
        month: int,
        capacity_model: CapacityModel,
        booked_counts: Optional[Mapping[str, int]] = None,
        policy: Optional[BookingPolicy] = None,
        now: Optional[datetime] = None,
    ) -> MonthAvailability:
        """Per-day slots for a calendar view.

        ``booked_counts`` maps tour run keys to headcounts. Date rules only
        apply when a ``policy`` is given.
        """
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month {month}", field="month", value=month)
        config = parse_availability_config(config)
        booked_counts = booked_counts or {}

        try:
            first = normalize_date_key(date(year, month, 1))
        except ValueError:
            raise ValidationError(f"Invalid year {year}", field="year", value=year)
        last = add_days_to_date_key(first, month_calendar.monthrange(year, month)[1] - 1)
        runs_by_date: Dict[str, List[TourRun]] = {}
        for run in self.resolve_runs(config, first, last):
            runs_by_date.setdefault(run.date, []).append(run)
        blackouts = self._blackouts(config)

        dates: List[AvailableDate] = []
        for date_key in date_key_range(first, last):
            if date_key in blackouts:
                dates.append(AvailableDate(date=date_key, is_blacked_out=True, blackout_reason=blackouts[date_key]))
                continue

            restriction = self.day_restriction(date_key, policy, now) if policy is not None else None
            slots = []
            for run in runs_by_date.get(date_key, []):
                booked = booked_counts.get(run.key, 0)
                max_capacity = self.capacity.total_capacity(capacity_model, run.max_participants_override)
                remaining = max_capacity - booked
                open_for_booking = restriction is None and remaining > 0
                slots.append(DateSlot(
                    key=run.key,
                    time=run.time,
                    label=run.label,
                    spots_remaining=remaining,
                    max_capacity=max_capacity,
                    booked_count=booked,
                    available=open_for_booking,
                    almost_full=open_for_booking and remaining <= self.settings.ALMOST_FULL_SPOTS,
                ))
            dates.append(AvailableDate(date=date_key, slots=tuple(slots)))

        operating_days = sorted({day for w in self._active_windows(config) for day in w.days_of_week})
        return MonthAvailability(
            tour_id=config.tour_id,
            year=year,
            month=month,
            dates=tuple(dates),
            operating_days=tuple(operating_days),
        )
