"""Structural type guards.

Every model coming from storage passes through here before any arithmetic
runs. A shape that does not match its declared ``type`` is rejected with an
``InvalidModelError`` naming the offending field and the declared type.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Sequence, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import InvalidModelError, ValidationError
from .availability_schemas import TourAvailabilityConfig
from .booking_schemas import BookingOptionSnapshot
from .capacity_schemas import CAPACITY_MODEL_TYPES, CapacityModel, SharedCapacity, UnitCapacity
from .pricing_schemas import (
    PRICING_MODEL_TYPES,
    BasePlusPersonPricing,
    FlatRatePricing,
    PartyComposition,
    PerPersonPricing,
    PerUnitPricing,
    PricingModel,
    TieredGroupPricing,
)

PRICING_MODEL_CLASSES = (
    PerPersonPricing,
    PerUnitPricing,
    FlatRatePricing,
    TieredGroupPricing,
    BasePlusPersonPricing,
)
CAPACITY_MODEL_CLASSES = (SharedCapacity, UnitCapacity)
_PARTY_FIELDS = {"counts", "ages", "unspecified"}

_pricing_adapter: TypeAdapter = TypeAdapter(PricingModel)
_capacity_adapter: TypeAdapter = TypeAdapter(CapacityModel)


def _dotted(loc: Sequence[Any], skip: int = 0) -> str:
    return ".".join(str(part) for part in loc[skip:]) or "type"


def _first_error(exc: PydanticValidationError) -> Tuple[Tuple[Any, ...], str]:
    error = exc.errors()[0]
    return tuple(error.get("loc", ())), error.get("msg", "invalid value")


def _declared_type(data: Any) -> Optional[str]:
    if isinstance(data, Mapping):
        value = data.get("type")
    else:
        value = getattr(data, "type", None)
    return value if isinstance(value, str) else None


def _parse_tagged(data: Any, adapter: TypeAdapter, known: Sequence[str], kind: str, context: Optional[str]):
    declared = _declared_type(data)
    if declared is None:
        raise InvalidModelError(f"{kind} has no 'type' discriminator", field="type", context=context)
    if declared not in known:
        raise InvalidModelError(
            f"Unknown {kind} type {declared!r}; expected one of {', '.join(known)}",
            field="type",
            model_type=declared,
            context=context,
        )
    try:
        return adapter.validate_python(data, from_attributes=not isinstance(data, Mapping))
    except PydanticValidationError as e:
        loc, msg = _first_error(e)
        # loc starts with the union tag
        field = _dotted(loc, skip=1)
        raise InvalidModelError(
            f"{kind} of type {declared!r} is invalid at {field}: {msg}",
            field=field,
            model_type=declared,
            context=context,
        )


# ---------------------------------------------------------------------------
#  Pricing models
# ---------------------------------------------------------------------------

def parse_pricing_model(data: Any, context: Optional[str] = None) -> PricingModel:
    """Validate raw data (or pass through a parsed model) as a pricing model."""
    if isinstance(data, PRICING_MODEL_CLASSES):
        return data
    return _parse_tagged(data, _pricing_adapter, PRICING_MODEL_TYPES, "Pricing model", context)


def is_pricing_model(data: Any) -> bool:
    try:
        parse_pricing_model(data)
    except InvalidModelError:
        return False
    return True


def is_per_person(model: Any) -> bool:
    return isinstance(model, PerPersonPricing)


def is_per_unit(model: Any) -> bool:
    return isinstance(model, PerUnitPricing)


def is_flat_rate(model: Any) -> bool:
    return isinstance(model, FlatRatePricing)


def is_tiered_group(model: Any) -> bool:
    return isinstance(model, TieredGroupPricing)


def is_base_plus_person(model: Any) -> bool:
    return isinstance(model, BasePlusPersonPricing)


def assert_pricing_model_type(model: Any, expected: str, context: Optional[str] = None) -> PricingModel:
    """Parse ``model`` and require its discriminator to be ``expected``."""
    parsed = parse_pricing_model(model, context=context)
    if parsed.type != expected:
        raise InvalidModelError(
            f"Expected pricing model of type {expected!r}, got {parsed.type!r}",
            field="type",
            model_type=parsed.type,
            context=context,
        )
    return parsed


# ---------------------------------------------------------------------------
#  Capacity models
# ---------------------------------------------------------------------------

def parse_capacity_model(data: Any, context: Optional[str] = None) -> CapacityModel:
    if isinstance(data, CAPACITY_MODEL_CLASSES):
        return data
    return _parse_tagged(data, _capacity_adapter, CAPACITY_MODEL_TYPES, "Capacity model", context)


def is_capacity_model(data: Any) -> bool:
    try:
        parse_capacity_model(data)
    except InvalidModelError:
        return False
    return True


# ---------------------------------------------------------------------------
#  Other inputs
# ---------------------------------------------------------------------------

def parse_party(data: Any) -> PartyComposition:
    """Accept a PartyComposition, a bare headcount, or a mapping."""
    if isinstance(data, PartyComposition):
        return data
    if isinstance(data, bool):
        raise ValidationError(f"Invalid party {data!r}", field="party")
    if isinstance(data, int):
        if data < 0:
            raise ValidationError("Party size must not be negative", field="party", value=data)
        return PartyComposition.of_size(data)
    if isinstance(data, Mapping) and not set(data) & _PARTY_FIELDS:
        # bare {"adult": 2, "child": 1} style counts
        data = {"counts": dict(data)}
    try:
        return PartyComposition.model_validate(data)
    except PydanticValidationError as e:
        loc, msg = _first_error(e)
        raise ValidationError(f"Invalid party at {_dotted(loc)}: {msg}", field="party")


def parse_availability_config(data: Any) -> TourAvailabilityConfig:
    if isinstance(data, TourAvailabilityConfig):
        return data
    try:
        return TourAvailabilityConfig.model_validate(data)
    except PydanticValidationError as e:
        loc, msg = _first_error(e)
        field = _dotted(loc)
        raise ValidationError(f"Invalid availability config at {field}: {msg}", field=field)


def parse_booking_option_snapshot(data: Any) -> BookingOptionSnapshot:
    if isinstance(data, BookingOptionSnapshot):
        return data
    try:
        return BookingOptionSnapshot.model_validate(data)
    except PydanticValidationError as e:
        loc, msg = _first_error(e)
        field = _dotted(loc)
        raise InvalidModelError(
            f"Booking option snapshot is invalid at {field}: {msg}",
            field=field,
            model_type="booking_option_snapshot",
        )
