"""
Currency formatting and conversion.

Amounts are stored in the user's preferred currency (Ghana Cedi by
default). Exchange rates come from exchangerate-api.com, quoted
against GHS, so every conversion pivots through GHS.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

import httpx
import structlog

from stephly.config import get_settings
from stephly.models.finance import CENTS


logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "GHS"
CURRENCY_SYMBOL = "₵"

# Approximate GHS rates, used when the rates API can't be reached
FALLBACK_RATES: dict[str, float] = {
    "USD": 0.084,
    "EUR": 0.077,
    "GBP": 0.066,
    "NGN": 130.5,
    "ZAR": 1.52,
}

Number = Union[Decimal, int, float]


class UnknownCurrencyError(ValueError):
    """No exchange rate for the requested currency."""
    pass


def format_currency(amount: Number, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount for display.

    >>> format_currency(Decimal("12.5"))
    '₵12.50'
    >>> format_currency(3, "USD")
    'USD 3.00'
    """
    value = Decimal(str(amount))
    try:
        value = value.quantize(CENTS)
    except InvalidOperation:
        # Beyond the context precision; show it unrounded
        pass
    if currency.upper() == DEFAULT_CURRENCY:
        return f"{CURRENCY_SYMBOL}{value}"
    return f"{currency.upper()} {value}"


def parse_currency(text: str) -> Decimal:
    """Parse user-typed money ('₵1,200.50'). Anything unparseable is 0."""
    cleaned = "".join(
        ch for ch in text if ch not in (CURRENCY_SYMBOL, ",") and not ch.isspace()
    )
    try:
        value = Decimal(cleaned)
        if not value.is_finite():
            return Decimal("0.00")
        return value.quantize(CENTS)
    except InvalidOperation:
        return Decimal("0.00")


def convert_currency(
    amount: Number,
    from_currency: str,
    to_currency: str,
    rates: dict[str, float],
) -> Decimal:
    """
    Convert between two currencies using GHS-quoted rates.

    Raises:
        UnknownCurrencyError: If either side has no rate
    """
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    value = Decimal(str(amount))

    if from_currency == to_currency:
        return value.quantize(CENTS)

    def rate(code: str) -> Decimal:
        if code not in rates:
            raise UnknownCurrencyError(f"No exchange rate for {code}")
        return Decimal(str(rates[code]))

    in_ghs = value if from_currency == DEFAULT_CURRENCY else value / rate(from_currency)
    result = in_ghs if to_currency == DEFAULT_CURRENCY else in_ghs * rate(to_currency)
    return result.quantize(CENTS)


class ExchangeRateService:
    """
    Fetches live GHS exchange rates.

    Never raises on network problems: a failed fetch logs a warning
    and returns FALLBACK_RATES.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings().app
        self._client = client
        self._url = url or settings.exchange_rate_url
        self._timeout = timeout or settings.http_timeout_seconds

    async def fetch_rates(self) -> dict[str, float]:
        try:
            if self._client is not None:
                response = await self._client.get(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url)
            response.raise_for_status()
            rates = response.json()["rates"]
            return {code: float(value) for code, value in rates.items()}
        except (httpx.HTTPError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("exchange_rates_unavailable", url=self._url, error=str(e))
            return dict(FALLBACK_RATES)
