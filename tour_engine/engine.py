"""Entry point wiring the calendar, capacity, pricing and currency services.

The engine owns its formatter cache; two engines never share timezone or
locale lookups unless the same cache is passed to both.
"""

from datetime import datetime
from typing import Any, Optional, Union

from .core import FormatterCache, Settings, ValidationError, get_settings
from .schemas import (
    CapacityFit,
    CapacityModel,
    EngineSchema,
    PriceQuote,
    PricingModel,
    TourRun,
    parse_party,
)
from .services import AvailabilityResolver, CapacityEvaluator, CurrencyFormatter, PricingEvaluator
from .utils import calendar


class RunQuote(EngineSchema):
    """Availability and price of one run for one party"""
    run: TourRun
    remaining: int
    fit: CapacityFit
    quote: PriceQuote
    formatted_total: str


class TourEngine:
    """Availability and pricing engine for one process or one test"""

    def __init__(self, settings: Optional[Settings] = None, cache: Optional[FormatterCache] = None):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else FormatterCache()
        self.currency = CurrencyFormatter(self.settings, self.cache)
        self.capacity = CapacityEvaluator(self.settings, self.cache)
        self.pricing = PricingEvaluator(self.settings, self.cache, formatter=self.currency)
        self.resolver = AvailabilityResolver(self.settings, self.cache, capacity=self.capacity)

    def today_key(self, tz_name: Optional[str] = None, now: Optional[datetime] = None) -> str:
        return calendar.today_key(
            tz_name or self.settings.DEFAULT_TIMEZONE,
            now=now,
            default=self.settings.DEFAULT_TIMEZONE,
            cache=self.cache,
        )

    def date_key_in_timezone(self, value: Union[datetime, int, float], tz_name: Optional[str] = None) -> str:
        return calendar.date_key_in_timezone(
            value,
            tz_name or self.settings.DEFAULT_TIMEZONE,
            default=self.settings.DEFAULT_TIMEZONE,
            cache=self.cache,
        )

    def quote_run(
        self,
        config: Any,
        key: str,
        capacity_model: CapacityModel,
        pricing_model: PricingModel,
        party: Any,
        booked_count: int = 0,
    ) -> RunQuote:
        """Resolve a run, check it has room for the party and price it"""
        run = self.resolver.find_run(config, key)
        if run is None:
            raise ValidationError(f"No scheduled run for {key}", field="tour_run_key", value=key)

        party = parse_party(party)
        remaining = self.capacity.remaining(capacity_model, booked_count, run.max_participants_override)
        if party.size > remaining:
            raise ValidationError(
                f"Only {max(remaining, 0)} spots left on {key}",
                field="party",
                value=party.size,
            )

        fit = self.pricing.check_capacity_fit(pricing_model, party)
        quote = self.pricing.quote(pricing_model, party)
        return RunQuote(
            run=run,
            remaining=remaining,
            fit=fit,
            quote=quote,
            formatted_total=self.currency.format_money(quote.total),
        )
