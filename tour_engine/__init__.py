from .engine import TourEngine, RunQuote
from .core import (
    BaseError,
    ValidationError,
    InvalidDateKeyError,
    InvalidTourRunKeyError,
    InvalidModelError,
    ConfigurationError,
    CurrencyMismatchError,
    FormatterCache,
    Settings,
    get_settings,
    configure_logging,
)

__version__ = "0.1.0"

__all__ = [
    "TourEngine",
    "RunQuote",
    
    # Exceptions
    "BaseError",
    "ValidationError",
    "InvalidDateKeyError",
    "InvalidTourRunKeyError",
    "InvalidModelError",
    "ConfigurationError",
    "CurrencyMismatchError",
    
    # Config
    "FormatterCache",
    "Settings",
    "get_settings",
    "configure_logging",
]
