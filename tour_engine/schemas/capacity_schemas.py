from typing import Annotated, Literal, Union

from pydantic import Field

from .base_schemas import EngineSchema


class SharedCapacity(EngineSchema):
    """One seat pool consumed by headcount"""
    type: Literal["shared"] = "shared"
    total_seats: int = Field(..., ge=0)


class UnitCapacity(EngineSchema):
    """Capacity sold in whole units (boats, vehicles) of fixed occupancy"""
    type: Literal["unit"] = "unit"
    total_units: int = Field(..., ge=0)
    occupancy_per_unit: int = Field(..., ge=1)


CapacityModel = Annotated[
    Union[SharedCapacity, UnitCapacity],
    Field(discriminator="type"),
]

CAPACITY_MODEL_TYPES = ("shared", "unit")
