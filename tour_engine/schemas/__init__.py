from .base_schemas import EngineSchema
from .pricing_schemas import (
    Money, PricingTier, GroupTier, PerPersonPricing, PerUnitPricing, FlatRatePricing,
    TieredGroupPricing, BasePlusPersonPricing, PricingModel, PRICING_MODEL_TYPES,
    PartyComposition, QuoteLine, PriceQuote, CapacityFit
)
from .capacity_schemas import SharedCapacity, UnitCapacity, CapacityModel, CAPACITY_MODEL_TYPES
from .availability_schemas import (
    AvailabilityWindow, DepartureTime, BlackoutDate, TourAvailabilityConfig, TourRun,
    BookingPolicy, SlotAvailability, SlotUnavailableReason, DateSlot, AvailableDate, MonthAvailability
)
from .booking_schemas import BookingOptionSnapshot, ExperienceMode
from .guards import (
    parse_pricing_model, is_pricing_model, assert_pricing_model_type,
    is_per_person, is_per_unit, is_flat_rate, is_tiered_group, is_base_plus_person,
    parse_capacity_model, is_capacity_model,
    parse_party, parse_availability_config, parse_booking_option_snapshot
)

__all__ = [
    "EngineSchema",
    
    # Pricing schemas
    "Money",
    "PricingTier",
    "GroupTier",
    "PerPersonPricing",
    "PerUnitPricing",
    "FlatRatePricing",
    "TieredGroupPricing",
    "BasePlusPersonPricing",
    "PricingModel",
    "PRICING_MODEL_TYPES",
    "PartyComposition",
    "QuoteLine",
    "PriceQuote",
    "CapacityFit",
    
    # Capacity schemas
    "SharedCapacity",
    "UnitCapacity",
    "CapacityModel",
    "CAPACITY_MODEL_TYPES",
    
    # Availability schemas
    "AvailabilityWindow",
    "DepartureTime",
    "BlackoutDate",
    "TourAvailabilityConfig",
    "TourRun",
    "BookingPolicy",
    "SlotAvailability",
    "SlotUnavailableReason",
    "DateSlot",
    "AvailableDate",
    "MonthAvailability",
    
    # Booking schemas
    "BookingOptionSnapshot",
    "ExperienceMode",
    
    # Guards
    "parse_pricing_model",
    "is_pricing_model",
    "assert_pricing_model_type",
    "is_per_person",
    "is_per_unit",
    "is_flat_rate",
    "is_tiered_group",
    "is_base_plus_person",
    "parse_capacity_model",
    "is_capacity_model",
    "parse_party",
    "parse_availability_config",
    "parse_booking_option_snapshot",
]
