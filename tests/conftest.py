import pytest

from tour_engine import FormatterCache, Settings, TourEngine
from tour_engine.schemas import AvailabilityWindow, BlackoutDate, DepartureTime, TourAvailabilityConfig
from tour_engine.utils.calendar import WEEKDAYS

ENV_VARS = (
    "TOUR_ENGINE_DEFAULT_TIMEZONE",
    "TOUR_ENGINE_DEFAULT_CURRENCY",
    "TOUR_ENGINE_MAX_RANGE_DAYS",
    "TOUR_ENGINE_ALMOST_FULL_SPOTS",
    "TOUR_ENGINE_LOG_LEVEL",
)


@pytest.fixture
def cache():
    return FormatterCache()


@pytest.fixture
def settings(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return Settings()


@pytest.fixture
def engine(settings, cache):
    return TourEngine(settings=settings, cache=cache)


@pytest.fixture
def january_config():
    """Mon-Fri departures at 09:00 through January 2026, dark on the 15th."""
    return TourAvailabilityConfig(
        tour_id="tour-1",
        windows=[
            AvailabilityWindow(
                id="w-jan",
                tour_id="tour-1",
                start_date="2026-01-01",
                end_date="2026-01-31",
                days_of_week=WEEKDAYS,
            ),
        ],
        departure_times=[DepartureTime(id="d-0900", tour_id="tour-1", time="09:00")],
        blackout_dates=[BlackoutDate(id="b-15", tour_id="tour-1", date="2026-01-15", reason="Maintenance")],
    )
