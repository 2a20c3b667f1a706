from typing import Any, Optional, Dict, List


class BaseError(Exception):
    """Base exception class for the engine"""
    
    def __init__(
        self, 
        message: str = "An error occurred",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseError):
    """Exception raised for malformed input (date keys, run keys, ranges, parties)"""
    
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details: Dict[str, Any] = {"field": field} if field else {}
        if value is not None:
            details["value"] = value
        super().__init__(
            message=message,
            status_code=400,
            details=details
        )
        self.field = field


class InvalidDateKeyError(ValidationError):
    """Exception raised when a value is not a YYYY-MM-DD date key"""
    
    def __init__(self, value: Any, field: str = "date"):
        super().__init__(
            f"Invalid date key {value!r}: expected YYYY-MM-DD",
            field=field,
            value=value,
        )


class InvalidTourRunKeyError(ValidationError):
    """Exception raised when a tour run key cannot be decoded"""
    
    def __init__(self, value: Any, reason: str):
        super().__init__(
            f"Invalid tour run key {value!r}: {reason}; expected tourId|YYYY-MM-DD|HH:MM",
            field="tour_run_key",
            value=value,
        )


class InvalidModelError(BaseError, TypeError):
    """Exception raised when a pricing/capacity model does not match its declared type"""
    
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        model_type: Optional[str] = None,
        context: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if model_type:
            details["model_type"] = model_type
        if context:
            details["context"] = context
        super().__init__(
            message=message,
            status_code=422,
            details=details
        )
        self.field = field
        self.model_type = model_type


class ConfigurationError(BaseError):
    """Exception raised for logically invalid model configuration"""
    
    def __init__(self, message: str, rule: Optional[str] = None):
        details = {"rule": rule} if rule else {}
        super().__init__(
            message=message,
            status_code=422,
            details=details
        )
        self.rule = rule


class CurrencyMismatchError(BaseError, ValueError):
    """Exception raised when combining amounts in different currencies"""
    
    def __init__(self, currencies: List[str]):
        super().__init__(
            message=f"Cannot combine amounts in {', '.join(currencies)}",
            status_code=422,
            details={"currencies": currencies}
        )
