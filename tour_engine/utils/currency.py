"""Currency table and minor-unit arithmetic.

Precision belongs to the currency, not to the amount: JPY, IDR and HUF have
no minor unit, BHD, KWD and OMR use three decimals, everything else two.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Literal, Union

from ..core.exceptions import ValidationError

Amount = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class CurrencyConfig:
    """Display and settlement metadata for one ISO 4217 currency."""

    code: str
    symbol: str
    name: str
    locale: str
    decimal_places: int
    symbol_position: Literal["before", "after"]
    stripe_currency: str


def _c(code, symbol, name, locale, decimal_places=2, symbol_position="before"):
    return CurrencyConfig(code, symbol, name, locale, decimal_places, symbol_position, code.lower())


SUPPORTED_CURRENCIES: Dict[str, CurrencyConfig] = {
    c.code: c
    for c in (
        # Gulf region
        _c("AED", "AED", "UAE Dirham", "en-AE"),
        _c("SAR", "SAR", "Saudi Riyal", "ar-SA"),
        _c("QAR", "QAR", "Qatari Riyal", "ar-QA"),
        _c("BHD", "BHD", "Bahraini Dinar", "ar-BH", 3),
        _c("KWD", "KWD", "Kuwaiti Dinar", "ar-KW", 3),
        _c("OMR", "OMR", "Omani Rial", "ar-OM", 3),
        # Major
        _c("USD", "$", "US Dollar", "en-US"),
        _c("EUR", "€", "Euro", "de-DE"),
        _c("GBP", "£", "British Pound", "en-GB"),
        _c("CHF", "CHF", "Swiss Franc", "de-CH"),
        _c("JPY", "¥", "Japanese Yen", "ja-JP", 0),
        # Asia Pacific
        _c("INR", "₹", "Indian Rupee", "en-IN"),
        _c("SGD", "S$", "Singapore Dollar", "en-SG"),
        _c("AUD", "A$", "Australian Dollar", "en-AU"),
        _c("NZD", "NZ$", "New Zealand Dollar", "en-NZ"),
        _c("HKD", "HK$", "Hong Kong Dollar", "zh-HK"),
        _c("THB", "฿", "Thai Baht", "th-TH"),
        _c("MYR", "RM", "Malaysian Ringgit", "ms-MY"),
        _c("PHP", "₱", "Philippine Peso", "en-PH"),
        _c("IDR", "Rp", "Indonesian Rupiah", "id-ID", 0),
        # Americas
        _c("CAD", "C$", "Canadian Dollar", "en-CA"),
        _c("MXN", "MX$", "Mexican Peso", "es-MX"),
        _c("BRL", "R$", "Brazilian Real", "pt-BR"),
        # Africa & Middle East
        _c("ZAR", "R", "South African Rand", "en-ZA"),
        _c("EGP", "E£", "Egyptian Pound", "ar-EG"),
        _c("MAD", "MAD", "Moroccan Dirham", "ar-MA"),
        _c("TRY", "₺", "Turkish Lira", "tr-TR"),
        _c("ILS", "₪", "Israeli Shekel", "he-IL"),
        # Europe
        _c("SEK", "kr", "Swedish Krona", "sv-SE", symbol_position="after"),
        _c("NOK", "kr", "Norwegian Krone", "nb-NO", symbol_position="after"),
        _c("DKK", "kr", "Danish Krone", "da-DK", symbol_position="after"),
        _c("PLN", "zł", "Polish Zloty", "pl-PL", symbol_position="after"),
        _c("CZK", "Kč", "Czech Koruna", "cs-CZ", symbol_position="after"),
        _c("HUF", "Ft", "Hungarian Forint", "hu-HU", 0, symbol_position="after"),
        _c("RON", "lei", "Romanian Leu", "ro-RO", symbol_position="after"),
    )
}

DEFAULT_CURRENCY = "AED"
CURRENCY_CODES = tuple(SUPPORTED_CURRENCIES)


def normalize_currency_code(code: str, field: str = "currency") -> str:
    c = (code or "").strip().upper()
    if len(c) != 3 or not c.isalpha():
        raise ValidationError(f"{field} must be a 3-letter ISO currency code", field=field, value=code)
    return c


def is_supported_currency(code: str) -> bool:
    return (code or "").strip().upper() in SUPPORTED_CURRENCIES


def get_currency_config(code: str) -> CurrencyConfig:
    """Config for a currency; unknown codes get a plain 2-decimal config."""
    normalized = normalize_currency_code(code)
    config = SUPPORTED_CURRENCIES.get(normalized)
    if config is None:
        config = CurrencyConfig(normalized, normalized, normalized, "en-US", 2, "before", normalized.lower())
    return config


def get_decimal_places(currency: str) -> int:
    return get_currency_config(currency).decimal_places


def get_minor_unit_multiplier(currency: str) -> int:
    """100 for cents, 1000 for fils, 1 for currencies without a minor unit."""
    return 10 ** get_decimal_places(currency)


def to_decimal(amount: Amount, field: str = "amount") -> Decimal:
    """Exact Decimal for an amount; floats go through their shortest repr."""
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid {field}: {amount!r}", field=field)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {amount!r}", field=field)
    if not value.is_finite():
        raise ValidationError(f"Invalid {field}: {amount!r}", field=field)
    return value


def quantize_amount(amount: Amount, currency: str) -> Decimal:
    """Round to the currency's precision, half away from zero."""
    exponent = Decimal(1).scaleb(-get_decimal_places(currency))
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def round_to_currency_precision(amount: Amount, currency: str) -> Decimal:
    return quantize_amount(amount, currency)


def to_minor_units(amount: Amount, currency: str) -> int:
    """Major units -> integer minor units (Stripe-style amounts)."""
    scaled = to_decimal(amount) * get_minor_unit_multiplier(currency)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: Union[int, Decimal, str], currency: str) -> Decimal:
    """Integer minor units -> major units with the currency's precision."""
    places = get_decimal_places(currency)
    return to_decimal(amount).scaleb(-places).quantize(Decimal(1).scaleb(-places))


def validate_currency_precision(amount: Amount, currency: str) -> bool:
    """True when ``amount`` has no more decimals than the currency allows."""
    value = to_decimal(amount)
    return value == quantize_amount(value, currency)


def is_zero_amount(amount: Amount | None, currency: str) -> bool:
    """Amounts smaller than one minor unit count as zero."""
    if amount is None:
        return True
    try:
        value = to_decimal(amount)
    except ValidationError:
        return True
    return abs(value) < Decimal(1).scaleb(-get_decimal_places(currency))


def get_stripe_currency(currency: str) -> str:
    return get_currency_config(currency).stripe_currency


def get_currency_symbol(currency: str) -> str:
    return get_currency_config(currency).symbol
