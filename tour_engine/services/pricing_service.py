import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple, get_args

from ..core import BaseService, ConfigurationError, InvalidModelError, ValidationError
from ..core.cache import FormatterCache
from ..core.config import Settings
from ..schemas import (
    BasePlusPersonPricing,
    BookingOptionSnapshot,
    CapacityFit,
    ExperienceMode,
    FlatRatePricing,
    GroupTier,
    Money,
    PartyComposition,
    PerPersonPricing,
    PerUnitPricing,
    PriceQuote,
    PricingModel,
    PricingTier,
    QuoteLine,
    TieredGroupPricing,
    parse_party,
    parse_pricing_model,
)
from ..utils.currency import validate_currency_precision
from .currency_service import CurrencyFormatter

logger = logging.getLogger(__name__)

EXPERIENCE_MODES = get_args(ExperienceMode)


class PricingEvaluator(BaseService):
    """Prices a party against one of the five pricing models"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[FormatterCache] = None,
        formatter: Optional[CurrencyFormatter] = None,
    ):
        super().__init__(settings, cache)
        self.formatter = formatter or CurrencyFormatter(self.settings, self.cache)

    # ------------------------------------------------------------------
    #  Model accessors
    # ------------------------------------------------------------------

    def default_tier(self, model: PerPersonPricing) -> PricingTier:
        """Tier flagged ``is_default``, else the first tier"""
        if not model.tiers:
            raise ConfigurationError("Per-person pricing has no tiers", rule="empty_tiers")
        for tier in model.tiers:
            if tier.is_default:
                return tier
        return model.tiers[0]

    def tier_for_age(self, model: PerPersonPricing, age: int) -> PricingTier:
        for tier in model.tiers:
            if tier.matches_age(age):
                return tier
        return self.default_tier(model)

    def get_base_price(self, model: Any) -> Decimal:
        """Headline price in major units, shown without a party"""
        model = parse_pricing_model(model)
        if isinstance(model, PerPersonPricing):
            return self.default_tier(model).price.amount
        if isinstance(model, PerUnitPricing):
            return model.price_per_unit.amount
        if isinstance(model, FlatRatePricing):
            return model.price.amount
        if isinstance(model, TieredGroupPricing):
            if not model.tiers:
                raise ConfigurationError("Tiered group pricing has no tiers", rule="empty_tiers")
            return model.tiers[0].price.amount
        if isinstance(model, BasePlusPersonPricing):
            return model.base_price.amount
        raise self._unhandled(model)

    def get_currency(self, model: Any) -> str:
        model = parse_pricing_model(model)
        monies = list(self._monies(model))
        if not monies:
            return self.settings.DEFAULT_CURRENCY
        return monies[0].currency

    # ------------------------------------------------------------------
    #  Validation
    # ------------------------------------------------------------------

    def validate_pricing_model(self, model: Any) -> PricingModel:
        """Reject well-formed but logically invalid configurations"""
        model = parse_pricing_model(model)

        if isinstance(model, PerPersonPricing):
            if not model.tiers:
                raise ConfigurationError("Per-person pricing has no tiers", rule="empty_tiers")
            defaults = [tier.id for tier in model.tiers if tier.is_default]
            if len(defaults) > 1:
                raise ConfigurationError(
                    f"More than one default tier: {', '.join(defaults)}", rule="multiple_default_tiers"
                )
            for tier in model.tiers:
                if tier.age_min is not None and tier.age_max is not None and tier.age_min > tier.age_max:
                    raise ConfigurationError(
                        f"Tier {tier.id!r} has ageMin {tier.age_min} above ageMax {tier.age_max}",
                        rule="invalid_age_band",
                    )
        elif isinstance(model, PerUnitPricing):
            if model.extra_person_fee is not None and model.base_occupancy is None:
                raise ConfigurationError(
                    "extraPersonFee requires baseOccupancy", rule="extra_fee_without_base_occupancy"
                )
            if model.base_occupancy is not None and model.base_occupancy > model.max_occupancy:
                raise ConfigurationError(
                    f"baseOccupancy {model.base_occupancy} exceeds maxOccupancy {model.max_occupancy}",
                    rule="base_occupancy_exceeds_max",
                )
            if model.min_occupancy is not None and model.min_occupancy > model.max_occupancy:
                raise ConfigurationError(
                    f"minOccupancy {model.min_occupancy} exceeds maxOccupancy {model.max_occupancy}",
                    rule="min_exceeds_max",
                )
        elif isinstance(model, FlatRatePricing):
            if model.min_participants is not None and model.min_participants > model.max_participants:
                raise ConfigurationError(
                    f"minParticipants {model.min_participants} exceeds maxParticipants {model.max_participants}",
                    rule="min_exceeds_max",
                )
        elif isinstance(model, TieredGroupPricing):
            self._validate_group_tiers(model.tiers)
        elif isinstance(model, BasePlusPersonPricing):
            if model.included_participants > model.max_participants:
                raise ConfigurationError(
                    f"includedParticipants {model.included_participants} exceeds "
                    f"maxParticipants {model.max_participants}",
                    rule="included_exceeds_max",
                )
        else:
            raise self._unhandled(model)

        currencies = sorted({money.currency for money in self._monies(model)})
        if len(currencies) > 1:
            raise ConfigurationError(f"Mixed currencies in one model: {', '.join(currencies)}", rule="mixed_currencies")
        for money in self._monies(model):
            if not validate_currency_precision(money.amount, money.currency):
                raise ConfigurationError(
                    f"{money.amount} has more decimals than {money.currency} allows", rule="currency_precision"
                )
        return model

    @staticmethod
    def _validate_group_tiers(tiers: Tuple[GroupTier, ...]) -> None:
        if not tiers:
            raise ConfigurationError("Tiered group pricing has no tiers", rule="empty_tiers")
        previous: Optional[GroupTier] = None
        for tier in tiers:
            if tier.min_size > tier.max_size:
                raise ConfigurationError(
                    f"Tier {tier.min_size}-{tier.max_size} has minSize above maxSize", rule="invalid_tier_range"
                )
            if previous is not None and tier.min_size != previous.max_size + 1:
                raise ConfigurationError(
                    f"Tier {tier.min_size}-{tier.max_size} does not follow "
                    f"{previous.min_size}-{previous.max_size}; tiers must be contiguous and ascending",
                    rule="non_contiguous_tiers",
                )
            previous = tier

    # ------------------------------------------------------------------
    #  Capacity fit
    # ------------------------------------------------------------------

    def check_capacity_fit(self, model: Any, party: Any) -> CapacityFit:
        """Whether a party can book this option, without raising"""
        model = parse_pricing_model(model)
        size = parse_party(party).size

        if size <= 0:
            return CapacityFit(fits=False, statement="At least 1 person required")

        if isinstance(model, PerPersonPricing):
            return CapacityFit(fits=True)

        if isinstance(model, PerUnitPricing):
            if model.min_occupancy is not None and size < model.min_occupancy:
                return CapacityFit(fits=False, statement=f"Minimum {model.min_occupancy} people required")
            units = math.ceil(size / model.max_occupancy)
            return CapacityFit(
                fits=True,
                units_needed=units,
                fits_in_one_unit=size <= model.max_occupancy,
                statement=f"Requires {units} {model.unit_name_plural}" if units > 1 else None,
            )

        if isinstance(model, FlatRatePricing):
            if size > model.max_participants:
                return CapacityFit(fits=False, statement=f"Maximum {model.max_participants} people")
            if model.min_participants is not None and size < model.min_participants:
                return CapacityFit(fits=False, statement=f"Minimum {model.min_participants} people required")
            return CapacityFit(fits=True)

        if isinstance(model, TieredGroupPricing):
            if not model.tiers:
                return CapacityFit(fits=False, statement="No pricing tiers configured")
            if self._match_group_tier(model, size) is not None:
                return CapacityFit(fits=True)
            largest = max(tier.max_size for tier in model.tiers)
            if size > largest:
                return CapacityFit(fits=False, statement=f"Maximum {largest} people")
            return CapacityFit(fits=False, statement=f"No pricing tier for {size} people")

        if isinstance(model, BasePlusPersonPricing):
            if size > model.max_participants:
                return CapacityFit(fits=False, statement=f"Maximum {model.max_participants} people")
            return CapacityFit(fits=True)

        raise self._unhandled(model)

    # ------------------------------------------------------------------
    #  Pricing
    # ------------------------------------------------------------------

    def compute_total(self, model: Any, party: Any) -> Money:
        return self.quote(model, party).total

    def quote(self, model: Any, party: Any) -> PriceQuote:
        """Total, breakdown and line items for a party.

        Raises ValidationError (field ``party``) when the party falls outside
        the model's admission bounds and ConfigurationError when the stored
        model cannot price it.
        """
        model = self.validate_pricing_model(model)
        party = parse_party(party)

        if not isinstance(model, TieredGroupPricing):
            fit = self.check_capacity_fit(model, party)
            if not fit.fits:
                raise ValidationError(fit.statement or "Party does not fit this option", field="party", value=party.size)
        elif party.size <= 0:
            raise ValidationError("At least 1 person required", field="party", value=party.size)

        if isinstance(model, PerPersonPricing):
            quote = self._quote_per_person(model, party)
        elif isinstance(model, PerUnitPricing):
            quote = self._quote_per_unit(model, party.size)
        elif isinstance(model, FlatRatePricing):
            quote = self._quote_flat_rate(model)
        elif isinstance(model, TieredGroupPricing):
            quote = self._quote_tiered_group(model, party.size)
        elif isinstance(model, BasePlusPersonPricing):
            quote = self._quote_base_plus_person(model, party.size)
        else:
            raise self._unhandled(model)

        return quote.model_copy(update={"total": quote.total.quantized()})

    def _quote_per_person(self, model: PerPersonPricing, party: PartyComposition) -> PriceQuote:
        lines = [
            self._line(tier.id, tier.name, count, tier.price)
            for tier, count in self._tier_counts(model, party)
        ]
        return PriceQuote(
            total=self._sum(lines),
            breakdown=" + ".join(f"{line.quantity} × {self._fmt(line.unit_price)}" for line in lines),
            lines=tuple(lines),
        )

    def _quote_per_unit(self, model: PerUnitPricing, size: int) -> PriceQuote:
        units = math.ceil(size / model.max_occupancy)
        lines = [self._line("unit", model.unit_name if units == 1 else model.unit_name_plural, units, model.price_per_unit)]
        parts = [f"1 {model.unit_name}" if units == 1 else f"{units} {model.unit_name_plural}"]

        if model.extra_person_fee is not None:
            extra = max(0, size - model.base_occupancy * units)
            if extra > 0:
                lines.append(self._line("extra_person", "Extra person", extra, model.extra_person_fee))
                parts.append(f"+ {extra} extra @ {self._fmt(model.extra_person_fee)}")

        return PriceQuote(
            total=self._sum(lines),
            breakdown=" ".join(parts),
            lines=tuple(lines),
            units_needed=units,
            fits_in_one_unit=size <= model.max_occupancy,
        )

    def _quote_flat_rate(self, model: FlatRatePricing) -> PriceQuote:
        line = self._line("flat_rate", "Flat rate", 1, model.price)
        return PriceQuote(
            total=line.amount,
            breakdown=f"Flat rate for up to {model.max_participants} people",
            lines=(line,),
        )

    def _quote_tiered_group(self, model: TieredGroupPricing, size: int) -> PriceQuote:
        tier = self._match_group_tier(model, size)
        if tier is None:
            raise ConfigurationError(f"No pricing tier for {size} people", rule="no_matching_tier")
        label = f"{tier.min_size}-{tier.max_size} group rate"
        line = self._line("group_tier", label, 1, tier.price)
        return PriceQuote(
            total=line.amount,
            breakdown=f"{self._fmt(tier.price)} for {size} people ({label})",
            lines=(line,),
        )

    def _quote_base_plus_person(self, model: BasePlusPersonPricing, size: int) -> PriceQuote:
        lines = [self._line("base", f"Base ({model.included_participants} included)", 1, model.base_price)]
        extra = max(0, size - model.included_participants)
        if extra > 0:
            lines.append(self._line("additional_person", "Additional person", extra, model.per_person_price))
            breakdown = (
                f"Base ({model.included_participants} included) + "
                f"{extra} × {self._fmt(model.per_person_price)}"
            )
        else:
            breakdown = f"Base price (includes up to {model.included_participants} people)"
        return PriceQuote(total=self._sum(lines), breakdown=breakdown, lines=tuple(lines))

    # ------------------------------------------------------------------
    #  Snapshots
    # ------------------------------------------------------------------

    def create_booking_option_snapshot(
        self,
        option_id: str,
        option_name: str,
        model: Any,
        experience_mode: str,
        party: Any,
        captured_at: Optional[datetime] = None,
    ) -> BookingOptionSnapshot:
        """Freeze the option a booking is priced against.

        The pricing model is deep-copied so later edits to the stored option
        never reach the booking.
        """
        if experience_mode not in EXPERIENCE_MODES:
            raise ValidationError(
                f"Experience mode must be one of {', '.join(EXPERIENCE_MODES)}",
                field="experience_mode",
                value=experience_mode,
            )
        model = self.validate_pricing_model(model)
        party = parse_party(party)
        quote = self.quote(model, party)
        return BookingOptionSnapshot(
            option_id=option_id,
            option_name=option_name,
            pricing_model=model.model_copy(deep=True),
            experience_mode=experience_mode,
            price_breakdown=quote.breakdown,
            total=quote.total,
            party_size=party.size,
            captured_at=captured_at or datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    #  Helpers
    # ------------------------------------------------------------------

    def _tier_counts(self, model: PerPersonPricing, party: PartyComposition) -> List[Tuple[PricingTier, int]]:
        lookup: Dict[str, PricingTier] = {}
        for tier in reversed(model.tiers):
            lookup[tier.name.strip().lower()] = tier
        for tier in reversed(model.tiers):
            lookup[tier.id.strip().lower()] = tier

        counts: Dict[str, int] = {}
        for key, count in party.counts.items():
            tier = lookup.get(key.strip().lower())
            if tier is None:
                raise ValidationError(f"Unknown pricing tier {key!r}", field="party", value=key)
            counts[tier.id] = counts.get(tier.id, 0) + count
        for age in party.ages:
            tier = self.tier_for_age(model, age)
            counts[tier.id] = counts.get(tier.id, 0) + 1
        if party.unspecified:
            tier = self.default_tier(model)
            counts[tier.id] = counts.get(tier.id, 0) + party.unspecified

        return [(tier, counts[tier.id]) for tier in model.tiers if counts.get(tier.id)]

    @staticmethod
    def _match_group_tier(model: TieredGroupPricing, size: int) -> Optional[GroupTier]:
        for tier in model.tiers:
            if tier.min_size <= size <= tier.max_size:
                return tier
        return None

    @staticmethod
    def _line(code: str, description: str, quantity: int, unit_price: Money) -> QuoteLine:
        return QuoteLine(
            code=code,
            description=description,
            quantity=quantity,
            unit_price=unit_price,
            amount=unit_price * quantity,
        )

    @staticmethod
    def _sum(lines: List[QuoteLine]) -> Money:
        total = lines[0].amount
        for line in lines[1:]:
            total = total + line.amount
        return total

    def _fmt(self, money: Money) -> str:
        return self.formatter.format_money(money)

    @staticmethod
    def _monies(model: PricingModel) -> Iterator[Money]:
        if isinstance(model, PerPersonPricing):
            for tier in model.tiers:
                yield tier.price
        elif isinstance(model, PerUnitPricing):
            yield model.price_per_unit
            if model.extra_person_fee is not None:
                yield model.extra_person_fee
        elif isinstance(model, FlatRatePricing):
            yield model.price
        elif isinstance(model, TieredGroupPricing):
            for tier in model.tiers:
                yield tier.price
        elif isinstance(model, BasePlusPersonPricing):
            yield model.base_price
            yield model.per_person_price

    @staticmethod
    def _unhandled(model: Any) -> InvalidModelError:
        declared = getattr(model, "type", None)
        return InvalidModelError(
            f"Unhandled pricing model {type(model).__name__}",
            field="type",
            model_type=declared if isinstance(declared, str) else None,
        )
