import math
from typing import Optional

from ..core import BaseService, ValidationError
from ..schemas import CapacityModel, SharedCapacity, UnitCapacity, parse_capacity_model


class CapacityEvaluator(BaseService):
    """Remaining-capacity math for shared and unit capacity models"""

    def total_capacity(self, model: CapacityModel, max_participants_override: Optional[int] = None) -> int:
        """People a run can hold, after any window override"""
        model = parse_capacity_model(model)
        if isinstance(model, SharedCapacity):
            if max_participants_override is not None:
                return max_participants_override
            return model.total_seats
        if isinstance(model, UnitCapacity):
            people = model.total_units * model.occupancy_per_unit
            if max_participants_override is not None:
                return min(people, max_participants_override)
            return people
        raise TypeError(f"Unhandled capacity model {type(model).__name__}")

    def remaining(
        self,
        model: CapacityModel,
        booked_count: int,
        max_participants_override: Optional[int] = None,
    ) -> int:
        """Seats left for a run.

        Not clamped at zero: a negative result means the run is overbooked.
        """
        if booked_count < 0:
            raise ValidationError("Booked count must not be negative", field="booked_count", value=booked_count)
        return self.total_capacity(model, max_participants_override) - booked_count

    def units_needed(self, model: CapacityModel, party_size: int) -> int:
        model = parse_capacity_model(model)
        if isinstance(model, UnitCapacity):
            return math.ceil(party_size / model.occupancy_per_unit) if party_size > 0 else 0
        return 0

    def utilization_percent(
        self,
        model: CapacityModel,
        booked_count: int,
        max_participants_override: Optional[int] = None,
    ) -> float:
        total = self.total_capacity(model, max_participants_override)
        if total <= 0:
            return 100.0 if booked_count > 0 else 0.0
        return booked_count / total * 100

    @staticmethod
    def utilization_status(percent: float) -> str:
        """Presentation bucket for a utilization percentage"""
        if percent >= 100:
            return "full"
        if percent >= 75:
            return "high"
        if percent >= 40:
            return "moderate"
        if percent > 0:
            return "low"
        return "empty"
