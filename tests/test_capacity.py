"""Tests for the capacity evaluator."""
import pytest

from tour_engine import InvalidModelError, ValidationError
from tour_engine.schemas import SharedCapacity, UnitCapacity
from tour_engine.services import CapacityEvaluator


@pytest.fixture
def capacity(settings, cache):
    return CapacityEvaluator(settings, cache)


class TestSharedCapacity:
    """Tests for a single shared seat pool."""

    def test_remaining(self, capacity):
        assert capacity.remaining(SharedCapacity(total_seats=20), 5) == 15

    def test_overbooking_is_not_clamped(self, capacity):
        assert capacity.remaining(SharedCapacity(total_seats=20), 22) == -2

    def test_window_override_replaces_total(self, capacity):
        model = SharedCapacity(total_seats=20)
        assert capacity.total_capacity(model, max_participants_override=12) == 12
        assert capacity.remaining(model, 4, max_participants_override=30) == 26

    def test_no_units_needed(self, capacity):
        assert capacity.units_needed(SharedCapacity(total_seats=20), 7) == 0

    def test_negative_booked_count(self, capacity):
        with pytest.raises(ValidationError) as exc:
            capacity.remaining(SharedCapacity(total_seats=20), -1)
        assert exc.value.field == "booked_count"


class TestUnitCapacity:
    """Tests for capacity sold in whole units."""

    def test_people_capacity(self, capacity):
        boats = UnitCapacity(total_units=3, occupancy_per_unit=6)
        assert capacity.total_capacity(boats) == 18
        assert capacity.remaining(boats, 5) == 13

    def test_override_caps_people_capacity(self, capacity):
        boats = UnitCapacity(total_units=3, occupancy_per_unit=6)
        assert capacity.total_capacity(boats, max_participants_override=10) == 10
        assert capacity.total_capacity(boats, max_participants_override=30) == 18

    @pytest.mark.parametrize("party,units", [(0, 0), (1, 1), (6, 1), (7, 2), (13, 3)])
    def test_units_needed(self, capacity, party, units):
        assert capacity.units_needed(UnitCapacity(total_units=3, occupancy_per_unit=6), party) == units


class TestRawModels:
    """Tests for capacity models coming straight from storage."""

    def test_camel_case_mapping(self, capacity):
        assert capacity.remaining({"type": "shared", "totalSeats": 20}, 22) == -2
        assert capacity.total_capacity({"type": "unit", "totalUnits": 2, "occupancyPerUnit": 8}) == 16

    def test_missing_field(self, capacity):
        with pytest.raises(InvalidModelError) as exc:
            capacity.total_capacity({"type": "unit", "totalUnits": 2})
        assert exc.value.field == "occupancyPerUnit"
        assert exc.value.model_type == "unit"
        assert isinstance(exc.value, TypeError)

    def test_unknown_type(self, capacity):
        with pytest.raises(InvalidModelError) as exc:
            capacity.total_capacity({"type": "pool", "totalSeats": 20})
        assert exc.value.field == "type"


class TestUtilization:
    """Tests for utilization percentages and presentation buckets."""

    def test_percent(self, capacity):
        assert capacity.utilization_percent(SharedCapacity(total_seats=20), 15) == 75.0

    def test_zero_capacity(self, capacity):
        assert capacity.utilization_percent(SharedCapacity(total_seats=0), 0) == 0.0
        assert capacity.utilization_percent(SharedCapacity(total_seats=0), 1) == 100.0

    @pytest.mark.parametrize("percent,status", [
        (0, "empty"),
        (0.5, "low"),
        (39.9, "low"),
        (40, "moderate"),
        (75, "high"),
        (100, "full"),
        (110, "full"),
    ])
    def test_status(self, percent, status):
        assert CapacityEvaluator.utilization_status(percent) == status
