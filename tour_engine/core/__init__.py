from .base import BaseService, IService
from .cache import FormatterCache
from .exceptions import (
    BaseError,
    ValidationError,
    InvalidDateKeyError,
    InvalidTourRunKeyError,
    InvalidModelError,
    ConfigurationError,
    CurrencyMismatchError,
)
from .config import Settings, get_settings, configure_logging

__all__ = [
    # Base classes
    "BaseService",
    "IService",
    
    # Cache
    "FormatterCache",
    
    # Exceptions
    "BaseError",
    "ValidationError",
    "InvalidDateKeyError",
    "InvalidTourRunKeyError",
    "InvalidModelError",
    "ConfigurationError",
    "CurrencyMismatchError",
    
    # Config
    "Settings",
    "get_settings",
    "configure_logging",
]
