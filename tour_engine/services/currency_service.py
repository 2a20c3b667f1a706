import logging
import re
import unicodedata
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple, Optional, Union

from babel import Locale
from babel.numbers import (
    format_compact_currency,
    format_compact_decimal,
    format_currency,
    format_decimal,
    get_currency_symbol as get_locale_currency_symbol,
    NumberFormatError,
    parse_decimal,
)

from ..core import BaseService, ValidationError
from ..schemas import Money
from ..utils.currency import (
    Amount,
    CurrencyConfig,
    from_minor_units,
    get_currency_config,
    is_zero_amount,
    normalize_currency_code,
    to_decimal,
)

logger = logging.getLogger(__name__)

# Integer digit plus fraction part of a CLDR number pattern
_FRACTION_PATTERN = re.compile(r"0(?:\.[0#]+)?(?=[^0#.,]|$)")
_MINUS_SIGNS = ("-", "−")


class BalanceDue(NamedTuple):
    text: str
    is_paid: bool
    is_overdue: bool = False


def _with_fraction_digits(pattern: str, digits: int) -> str:
    replacement = "0." + "0" * digits if digits else "0"
    return _FRACTION_PATTERN.sub(replacement, pattern)


def _strip_format_chars(text: str) -> str:
    # Bidi marks (RLM, LRM, ALM) that CLDR puts around Arabic and Hebrew amounts
    return "".join(ch for ch in text if unicodedata.category(ch) != "Cf")


class CurrencyFormatter(BaseService):
    """Locale-aware currency formatting and parsing"""

    def _resolve(self, currency: Optional[str]) -> CurrencyConfig:
        return get_currency_config(currency or self.settings.DEFAULT_CURRENCY)

    def _locale(self, config: CurrencyConfig) -> Optional[Locale]:
        return self.cache.locale(config.locale)

    def format(
        self,
        amount: Amount,
        currency: Optional[str] = None,
        show_currency: bool = True,
        compact: bool = False,
        decimals: Optional[int] = None,
        show_positive_sign: bool = False,
        accounting_format: bool = False,
    ) -> str:
        """Format a major-unit amount for display.

        Uses the currency's configured locale for grouping and decimal
        separators; falls back to ``SYMBOL 1,234.50`` (or ``1,234.50 SYMBOL``)
        when the locale is unknown to the locale engine.
        """
        config = self._resolve(currency)
        value = to_decimal(amount)
        digits = config.decimal_places if decimals is None else decimals
        if digits < 0:
            raise ValidationError("Decimals must not be negative", field="decimals", value=decimals)
        value = value.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)

        locale = self._locale(config)
        if locale is None:
            return self._fallback_format(value, config, digits, show_currency, show_positive_sign, accounting_format)

        if compact:
            if show_currency:
                formatted = format_compact_currency(value, config.code, locale=locale, fraction_digits=digits)
            else:
                formatted = format_compact_decimal(value, locale=locale, fraction_digits=digits)
        elif show_currency:
            format_type = "accounting" if accounting_format else "standard"
            pattern = _with_fraction_digits(locale.currency_formats[format_type].pattern, digits)
            formatted = format_currency(value, config.code, format=pattern, locale=locale, currency_digits=False)
        else:
            pattern = _with_fraction_digits(locale.decimal_formats[None].pattern, digits)
            formatted = format_decimal(value, format=pattern, locale=locale)
            if accounting_format and value < 0:
                formatted = f"({formatted.lstrip(''.join(_MINUS_SIGNS))})"

        if show_positive_sign and value > 0:
            formatted = f"+{formatted}"
        return formatted

    def _fallback_format(
        self,
        value: Decimal,
        config: CurrencyConfig,
        digits: int,
        show_currency: bool,
        show_positive_sign: bool,
        accounting_format: bool,
    ) -> str:
        number = f"{abs(value):,.{digits}f}"
        if show_currency:
            if config.symbol_position == "after":
                number = f"{number} {config.symbol}"
            else:
                number = f"{config.symbol} {number}"

        if value < 0:
            return f"({number})" if accounting_format else f"-{number}"
        if value > 0 and show_positive_sign:
            return f"+{number}"
        return number

    def format_price(self, price: Optional[Amount], currency: Optional[str] = None, **options) -> str:
        """Format a stored price; a missing price renders as zero"""
        return self.format(0 if price is None else price, currency, **options)

    def format_money(self, money: Money, **options) -> str:
        return self.format(money.amount, money.currency, **options)

    def format_from_minor_units(self, amount: Union[int, Decimal, str], currency: Optional[str] = None, **options) -> str:
        """Format a Stripe-style integer amount"""
        config = self._resolve(currency)
        return self.format(from_minor_units(amount, config.code), config.code, **options)

    def format_range(self, minimum: Amount, maximum: Amount, currency: Optional[str] = None, **options) -> str:
        return f"{self.format(minimum, currency, **options)} - {self.format(maximum, currency, **options)}"

    def format_balance_due(self, amount: Optional[Amount], currency: Optional[str] = None) -> BalanceDue:
        """Balance text, with ``Paid`` for anything below one minor unit"""
        config = self._resolve(currency)
        if is_zero_amount(amount, config.code):
            return BalanceDue(text="Paid", is_paid=True)
        value = to_decimal(amount)
        return BalanceDue(text=self.format(value, config.code), is_paid=False, is_overdue=value > 0)

    def parse(self, formatted: str, currency: Optional[str] = None) -> Decimal:
        """Read a formatted amount back into a Decimal"""
        if not isinstance(formatted, str) or not formatted.strip():
            raise ValidationError("Nothing to parse", field="amount", value=formatted)

        config = self._resolve(currency)
        locale = self._locale(config)
        negative = "(" in formatted and ")" in formatted

        # Strip bidi marks, code, symbols and accounting parentheses
        cleaned = _strip_format_chars(formatted)
        cleaned = re.sub(re.escape(config.code), "", cleaned, flags=re.IGNORECASE)
        symbols = {config.symbol}
        if locale is not None:
            symbols.add(_strip_format_chars(get_locale_currency_symbol(config.code, locale=locale)))
        for symbol in sorted(filter(None, symbols), key=len, reverse=True):
            cleaned = cleaned.replace(symbol, "")
        cleaned = re.sub(r"[()\s+]", "", cleaned)

        if any(sign in cleaned for sign in _MINUS_SIGNS):
            negative = True
            for sign in _MINUS_SIGNS:
                cleaned = cleaned.replace(sign, "")

        try:
            if locale is not None:
                value = parse_decimal(cleaned, locale=locale)
            else:
                value = Decimal(cleaned.replace(",", ""))
        except (NumberFormatError, InvalidOperation):
            raise ValidationError(f"Cannot parse {formatted!r} as {config.code}", field="amount", value=formatted)
        if not value.is_finite():
            raise ValidationError(f"Cannot parse {formatted!r} as {config.code}", field="amount", value=formatted)
        return -abs(value) if negative else value

    @staticmethod
    def compare(a: Amount, b: Amount) -> int:
        """-1, 0 or 1"""
        left, right = to_decimal(a), to_decimal(b)
        return (left > right) - (left < right)

    def symbol(self, currency: Optional[str] = None) -> str:
        return self._resolve(currency).symbol

    def code(self, currency: Optional[str] = None) -> str:
        return normalize_currency_code(currency or self.settings.DEFAULT_CURRENCY)
