from datetime import datetime
from typing import Literal

from pydantic import Field

from .base_schemas import EngineSchema
from .pricing_schemas import Money, PricingModel

ExperienceMode = Literal["join", "book", "charter"]


class BookingOptionSnapshot(EngineSchema):
    """Frozen copy of the option a booking was priced against"""
    option_id: str
    option_name: str
    pricing_model: PricingModel
    experience_mode: ExperienceMode
    price_breakdown: str
    total: Money
    party_size: int = Field(..., ge=0)
    captured_at: datetime
