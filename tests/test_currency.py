"""Tests for currency formatting, parsing and conversion."""

from decimal import Decimal

import httpx
import pytest

from stephly.services.currency import (
    FALLBACK_RATES,
    ExchangeRateService,
    UnknownCurrencyError,
    convert_currency,
    format_currency,
    parse_currency,
)

from conftest import run


RATES = {"USD": 0.08, "EUR": 0.075}


class TestFormatting:

    def test_cedi_symbol(self):
        assert format_currency(Decimal("12.5")) == "₵12.50"

    def test_other_currency_uses_code(self):
        assert format_currency(3, "usd") == "USD 3.00"

    def test_negative(self):
        assert format_currency(Decimal("-4")) == "₵-4.00"

    def test_huge_amount_not_rounded(self):
        assert format_currency(Decimal("1e30")) == "₵1E+30"


class TestParsing:

    def test_symbols_and_commas(self):
        assert parse_currency("₵1,200.50") == Decimal("1200.50")

    def test_garbage_is_zero(self):
        assert parse_currency("lots") == Decimal("0.00")
        assert parse_currency("") == Decimal("0.00")
        assert parse_currency("nan") == Decimal("0.00")

    def test_out_of_range_is_zero(self):
        assert parse_currency("1e30") == Decimal("0.00")


class TestConversion:

    def test_same_currency(self):
        assert convert_currency(10, "GHS", "ghs", RATES) == Decimal("10.00")

    def test_from_cedis(self):
        assert convert_currency(100, "GHS", "USD", RATES) == Decimal("8.00")

    def test_to_cedis(self):
        assert convert_currency(8, "USD", "GHS", RATES) == Decimal("100.00")

    def test_cross_rate_pivots_through_cedis(self):
        assert convert_currency(8, "USD", "EUR", RATES) == Decimal("7.50")

    def test_unknown_currency(self):
        with pytest.raises(UnknownCurrencyError):
            convert_currency(1, "GHS", "JPY", RATES)


class TestExchangeRateService:

    def client(self, handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def test_fetch_rates(self):
        def handler(request):
            return httpx.Response(200, json={"base": "GHS", "rates": {"USD": 0.09, "GHS": 1}})

        service = ExchangeRateService(client=self.client(handler), url="https://rates.test/GHS")
        assert run(service.fetch_rates()) == {"USD": 0.09, "GHS": 1.0}

    def test_http_error_falls_back(self):
        service = ExchangeRateService(
            client=self.client(lambda request: httpx.Response(503)),
            url="https://rates.test/GHS",
        )
        assert run(service.fetch_rates()) == FALLBACK_RATES

    def test_bad_payload_falls_back(self):
        service = ExchangeRateService(
            client=self.client(lambda request: httpx.Response(200, json={"nope": 1})),
            url="https://rates.test/GHS",
        )
        assert run(service.fetch_rates()) == FALLBACK_RATES
