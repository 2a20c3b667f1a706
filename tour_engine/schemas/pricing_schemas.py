from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Dict, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator

from ..core.exceptions import CurrencyMismatchError
from ..utils.currency import quantize_amount
from .base_schemas import EngineSchema


class Money(EngineSchema):
    """Amount in major units plus its ISO 4217 currency"""
    amount: Decimal = Field(..., ge=0)
    currency: str

    @field_validator("amount", mode="before")
    @classmethod
    def float_via_str(cls, v):
        # 0.1 must become Decimal("0.1"), not its binary expansion
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        code = (v or "").strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError("must be a 3-letter ISO currency code")
        return code

    def quantized(self) -> Money:
        """Rounded to the currency's minor unit"""
        return Money(amount=quantize_amount(self.amount, self.currency), currency=self.currency)

    def __add__(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise CurrencyMismatchError([self.currency, other.currency])
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __mul__(self, factor: Union[int, Decimal]) -> Money:
        return Money(amount=self.amount * Decimal(factor), currency=self.currency)

    __rmul__ = __mul__

    def is_zero(self) -> bool:
        return self.amount == 0


class PricingTier(EngineSchema):
    """Per-person price band, e.g. Adult or Child"""
    id: str
    name: str
    price: Money
    is_default: bool = False
    sort_order: int = 0
    age_min: Optional[int] = Field(None, ge=0)
    age_max: Optional[int] = Field(None, ge=0)

    def matches_age(self, age: int) -> bool:
        if self.age_min is None and self.age_max is None:
            return False
        if self.age_min is not None and age < self.age_min:
            return False
        if self.age_max is not None and age > self.age_max:
            return False
        return True


class GroupTier(EngineSchema):
    """Group price for party sizes in [min_size, max_size]"""
    min_size: int = Field(..., ge=1)
    max_size: int = Field(..., ge=1)
    price: Money


class PerPersonPricing(EngineSchema):
    type: Literal["per_person"] = "per_person"
    tiers: Tuple[PricingTier, ...]


class PerUnitPricing(EngineSchema):
    type: Literal["per_unit"] = "per_unit"
    unit_name: str
    unit_name_plural: str
    price_per_unit: Money
    max_occupancy: int = Field(..., ge=1)
    min_occupancy: Optional[int] = Field(None, ge=1)
    base_occupancy: Optional[int] = Field(None, ge=1)
    extra_person_fee: Optional[Money] = None


class FlatRatePricing(EngineSchema):
    type: Literal["flat_rate"] = "flat_rate"
    price: Money
    max_participants: int = Field(..., ge=1)
    min_participants: Optional[int] = Field(None, ge=1)


class TieredGroupPricing(EngineSchema):
    type: Literal["tiered_group"] = "tiered_group"
    tiers: Tuple[GroupTier, ...]


class BasePlusPersonPricing(EngineSchema):
    type: Literal["base_plus_person"] = "base_plus_person"
    base_price: Money
    included_participants: int = Field(..., ge=0)
    per_person_price: Money
    max_participants: int = Field(..., ge=1)


PricingModel = Annotated[
    Union[
        PerPersonPricing,
        PerUnitPricing,
        FlatRatePricing,
        TieredGroupPricing,
        BasePlusPersonPricing,
    ],
    Field(discriminator="type"),
]

PRICING_MODEL_TYPES = ("per_person", "per_unit", "flat_rate", "tiered_group", "base_plus_person")


class PartyComposition(EngineSchema):
    """Who is booking.

    ``counts`` maps a pricing-tier id or name to a number of people, ``ages``
    lists participants to be placed by age band, and ``unspecified`` counts
    people with no tier or age (they are priced at the default tier).
    """
    counts: Dict[str, int] = Field(default_factory=dict)
    ages: Tuple[int, ...] = ()
    unspecified: int = Field(0, ge=0)

    @field_validator("counts")
    @classmethod
    def validate_counts(cls, v: Dict[str, int]) -> Dict[str, int]:
        for key, count in v.items():
            if count < 0:
                raise ValueError(f"count for {key!r} must not be negative")
        return v

    @field_validator("ages")
    @classmethod
    def validate_ages(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if any(age < 0 for age in v):
            raise ValueError("ages must not be negative")
        return v

    @classmethod
    def of_size(cls, size: int) -> PartyComposition:
        return cls(unspecified=size)

    @property
    def size(self) -> int:
        return sum(self.counts.values()) + len(self.ages) + self.unspecified


class QuoteLine(EngineSchema):
    code: str
    description: str
    quantity: int
    unit_price: Money
    amount: Money


class PriceQuote(EngineSchema):
    """Computed price for a party against one pricing model"""
    total: Money
    breakdown: str
    lines: Tuple[QuoteLine, ...] = ()
    units_needed: Optional[int] = None
    fits_in_one_unit: Optional[bool] = None


class CapacityFit(EngineSchema):
    fits: bool
    units_needed: Optional[int] = None
    fits_in_one_unit: Optional[bool] = None
    statement: Optional[str] = None
