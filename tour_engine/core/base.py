from abc import ABC
from typing import Optional

from .cache import FormatterCache
from .config import Settings, get_settings


class IService(ABC):
    """Base service interface"""
    pass


class BaseService(IService):
    """Base service implementation with common dependencies"""
    
    def __init__(self, settings: Optional[Settings] = None, cache: Optional[FormatterCache] = None):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else FormatterCache()
