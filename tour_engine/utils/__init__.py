from . import calendar, currency, tour_run_key
from .tour_run_key import TourRunKeyParts

__all__ = [
    "calendar",
    "currency",
    "tour_run_key",
    "TourRunKeyParts",
]
