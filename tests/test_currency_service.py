"""Tests for locale-aware currency formatting and parsing."""
import logging
from decimal import Decimal

import pytest

from tour_engine import ValidationError
from tour_engine.schemas import Money
from tour_engine.services import CurrencyFormatter
from tour_engine.utils.currency import SUPPORTED_CURRENCIES, CurrencyConfig, quantize_amount


@pytest.fixture
def formatter(settings, cache):
    return CurrencyFormatter(settings, cache)


@pytest.fixture
def unknown_locale_currency(monkeypatch):
    """Register a currency whose locale the locale engine does not know."""
    def register(symbol_position="before"):
        config = CurrencyConfig("XTS", "T$", "Test Dollar", "zz-ZZ", 2, symbol_position, "xts")
        monkeypatch.setitem(SUPPORTED_CURRENCIES, "XTS", config)
        return config
    return register


class TestFormat:
    """Tests for CurrencyFormatter.format."""

    def test_us_dollars(self, formatter):
        assert formatter.format(1234.5, "USD") == "$1,234.50"

    def test_negative_amount(self, formatter):
        assert formatter.format(-5, "USD") == "-$5.00"

    def test_accounting_format(self, formatter):
        assert formatter.format(-5, "USD", accounting_format=True) == "($5.00)"

    def test_positive_sign(self, formatter):
        assert formatter.format(5, "USD", show_positive_sign=True) == "+$5.00"
        assert formatter.format(0, "USD", show_positive_sign=True) == "$0.00"

    def test_forced_decimals(self, formatter):
        assert formatter.format(1234.56, "USD", decimals=0) == "$1,235"
        assert formatter.format(2, "USD", decimals=3) == "$2.000"

    def test_without_currency(self, formatter):
        assert formatter.format(1234.5, "USD", show_currency=False) == "1,234.50"

    def test_european_separators(self, formatter):
        result = formatter.format(1234.5, "EUR")
        assert result.startswith("1.234,50")
        assert result.endswith("€")

    def test_zero_decimal_currency(self, formatter):
        result = formatter.format(1500, "JPY")
        assert "1,500" in result
        assert "." not in result

    def test_compact(self, formatter):
        result = formatter.format(1_500_000, "USD", compact=True, decimals=1)
        assert result == "$1.5M"

    def test_default_currency_from_settings(self, formatter):
        result = formatter.format(10)
        assert "AED" in result
        assert "10.00" in result

    def test_money_value(self, formatter):
        assert formatter.format_money(Money(amount=Decimal("99.9"), currency="usd")) == "$99.90"

    def test_invalid_amount(self, formatter):
        with pytest.raises(ValidationError):
            formatter.format("abc", "USD")

    def test_missing_price_renders_zero(self, formatter):
        assert formatter.format_price(None, "USD") == "$0.00"


class TestFallbackFormat:
    """Tests for formatting when the locale is unknown."""

    def test_symbol_before(self, formatter, unknown_locale_currency, caplog):
        unknown_locale_currency()
        with caplog.at_level(logging.WARNING, logger="tour_engine.core.cache"):
            assert formatter.format(1234.5, "XTS") == "T$ 1,234.50"
        assert "zz-ZZ" in caplog.text

    def test_symbol_after(self, formatter, unknown_locale_currency):
        unknown_locale_currency(symbol_position="after")
        assert formatter.format(1234.5, "XTS") == "1,234.50 T$"

    def test_signs(self, formatter, unknown_locale_currency):
        unknown_locale_currency()
        assert formatter.format(-5, "XTS") == "-T$ 5.00"
        assert formatter.format(-5, "XTS", accounting_format=True) == "(T$ 5.00)"
        assert formatter.format(5, "XTS", show_positive_sign=True) == "+T$ 5.00"
        assert formatter.format(5, "XTS", show_currency=False) == "5.00"

    def test_miss_is_memoized(self, formatter, unknown_locale_currency, cache, caplog):
        unknown_locale_currency()
        with caplog.at_level(logging.WARNING, logger="tour_engine.core.cache"):
            formatter.format(1, "XTS")
            formatter.format(2, "XTS")
        assert caplog.text.count("zz-ZZ") == 1


class TestHelpers:
    """Tests for the formatting helpers built on format."""

    def test_from_minor_units(self, formatter):
        assert formatter.format_from_minor_units(123456, "USD") == "$1,234.56"

    def test_range(self, formatter):
        assert formatter.format_range(100, 500, "USD") == "$100.00 - $500.00"

    def test_balance_due_paid(self, formatter):
        assert formatter.format_balance_due(0, "USD").text == "Paid"
        assert formatter.format_balance_due("0.004", "USD").is_paid
        assert formatter.format_balance_due(None, "USD").is_paid

    def test_balance_due_outstanding(self, formatter):
        balance = formatter.format_balance_due(25, "USD")
        assert balance.text == "$25.00"
        assert not balance.is_paid
        assert balance.is_overdue

    def test_balance_due_credit(self, formatter):
        assert not formatter.format_balance_due(-10, "USD").is_overdue

    def test_compare(self, formatter):
        assert formatter.compare("10.00", 10) == 0
        assert formatter.compare(5, "10") == -1
        assert formatter.compare(Decimal("10.01"), 10) == 1


class TestParse:
    """Tests for CurrencyFormatter.parse."""

    @pytest.mark.parametrize("text,expected", [
        ("$1,234.50", Decimal("1234.50")),
        ("USD 1,234.50", Decimal("1234.50")),
        ("($5.00)", Decimal("-5.00")),
        ("-$5.00", Decimal("-5.00")),
        ("1234", Decimal("1234")),
    ])
    def test_us_formats(self, formatter, text, expected):
        assert formatter.parse(text, "USD") == expected

    def test_european_decimal_comma(self, formatter):
        assert formatter.parse("1.234,50 €", "EUR") == Decimal("1234.50")

    @pytest.mark.parametrize("code", sorted(SUPPORTED_CURRENCIES))
    def test_parses_own_output(self, formatter, code):
        assert formatter.parse(formatter.format(1234.5, code), code) == quantize_amount(1234.5, code)

    @pytest.mark.parametrize("code", ["BHD", "SAR", "ILS"])
    def test_parses_own_negative_output(self, formatter, code):
        assert formatter.parse(formatter.format(-42, code), code) == quantize_amount(-42, code)

    def test_ignores_bidi_marks(self, formatter):
        assert formatter.parse("\u200f1,234.500\xa0BHD\u200f", "BHD") == Decimal("1234.500")
        assert formatter.parse("\u061c-7.250 BHD", "BHD") == Decimal("-7.250")

    @pytest.mark.parametrize("text", ["", "   ", "abc", "$"])
    def test_garbage(self, formatter, text):
        with pytest.raises(ValidationError):
            formatter.parse(text, "USD")
