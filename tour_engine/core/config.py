import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()  # allow local development with a .env file


class Settings:
    """Engine settings read from the environment"""
    
    # Calendar
    DEFAULT_TIMEZONE: str = "UTC"
    MAX_RANGE_DAYS: int = 366
    
    # Currency
    DEFAULT_CURRENCY: str = "AED"
    
    # Availability
    ALMOST_FULL_SPOTS: int = 3
    
    # Logging
    LOG_LEVEL: str = "WARNING"
    
    def __init__(self, **overrides):
        self.DEFAULT_TIMEZONE = os.getenv("TOUR_ENGINE_DEFAULT_TIMEZONE", self.DEFAULT_TIMEZONE)
        self.MAX_RANGE_DAYS = int(os.getenv("TOUR_ENGINE_MAX_RANGE_DAYS", str(self.MAX_RANGE_DAYS)))
        self.DEFAULT_CURRENCY = os.getenv("TOUR_ENGINE_DEFAULT_CURRENCY", self.DEFAULT_CURRENCY).upper()
        self.ALMOST_FULL_SPOTS = int(os.getenv("TOUR_ENGINE_ALMOST_FULL_SPOTS", str(self.ALMOST_FULL_SPOTS)))
        self.LOG_LEVEL = os.getenv("TOUR_ENGINE_LOG_LEVEL", self.LOG_LEVEL).upper()
        
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise ValueError(f"Unknown setting {key}")
            setattr(self, key, value)
        
        self._validate()
    
    def _validate(self):
        """Validate settings"""
        import pytz
        
        try:
            pytz.timezone(self.DEFAULT_TIMEZONE)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"TOUR_ENGINE_DEFAULT_TIMEZONE {self.DEFAULT_TIMEZONE!r} is not a known timezone")
        if self.MAX_RANGE_DAYS <= 0:
            raise ValueError("TOUR_ENGINE_MAX_RANGE_DAYS must be positive")
        if self.ALMOST_FULL_SPOTS < 0:
            raise ValueError("TOUR_ENGINE_ALMOST_FULL_SPOTS must not be negative")
        if len(self.DEFAULT_CURRENCY) != 3 or not self.DEFAULT_CURRENCY.isalpha():
            raise ValueError("TOUR_ENGINE_DEFAULT_CURRENCY must be a 3-letter ISO currency code")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic log handler for scripts and tests"""
    logging.basicConfig(
        level=(level or get_settings().LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
