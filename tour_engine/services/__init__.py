from .currency_service import CurrencyFormatter, BalanceDue
from .capacity_service import CapacityEvaluator
from .pricing_service import PricingEvaluator, EXPERIENCE_MODES
from .availability_service import AvailabilityResolver

__all__ = [
    "CurrencyFormatter",
    "BalanceDue",
    "CapacityEvaluator",
    "PricingEvaluator",
    "EXPERIENCE_MODES",
    "AvailabilityResolver",
]
