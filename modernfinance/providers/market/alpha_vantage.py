"""
Alpha Vantage Market Data Provider

Fundamentals from the OVERVIEW and GLOBAL_QUOTE endpoints, optionally
refined with revenue growth (INCOME_STATEMENT) and debt/equity
(BALANCE_SHEET). Alpha Vantage answers throttled requests with HTTP 200
and a "Note" or "Information" body, so those are detected explicitly.
"""

import asyncio
import re
from typing import Any

import httpx

from modernfinance.core.exceptions import ProviderResponseError, RateLimitExceededError
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.market import Fundamentals, Metric
from modernfinance.providers.base_provider import HTTPProvider, MarketDataProvider, ProviderConfig

logger = get_logger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.\-eE]")

# Metrics OVERVIEW does not report; refined from statements when enabled
_PLACEHOLDER_REVENUE_GROWTH = 0.15
_PLACEHOLDER_DEBT_TO_EQUITY = 0.5

_OVERVIEW_FIELDS = {
    Metric.MARKET_CAP: "MarketCapitalization",
    Metric.PE_RATIO: "PERatio",
    Metric.EPS: "EPS",
    Metric.REVENUE: "RevenueTTM",
    Metric.GROSS_MARGIN: "GrossProfitTTM",
    Metric.OPERATING_MARGIN: "OperatingMarginTTM",
    Metric.NET_MARGIN: "ProfitMargin",
    Metric.ROE: "ReturnOnEquityTTM",
    Metric.ROA: "ReturnOnAssetsTTM",
    Metric.BETA: "Beta",
    Metric.HIGH_52_WEEK: "52WeekHigh",
    Metric.LOW_52_WEEK: "52WeekLow",
    Metric.FORWARD_PE: "ForwardPE",
    Metric.PRICE_TO_BOOK: "PriceToBookRatio",
    Metric.BOOK_VALUE: "BookValue",
    Metric.AVERAGE_50_DAY: "50DayMovingAverage",
    Metric.AVERAGE_200_DAY: "200DayMovingAverage",
}


def parse_number(value: Any) -> float:
    """
    Parse an Alpha Vantage numeric string.

    "None", "-", empty and unparseable values become 0.0; stray characters
    such as "%" are stripped.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if text in ("", "None", "-"):
        return 0.0
    try:
        return float(_NON_NUMERIC.sub("", text))
    except ValueError:
        return 0.0


class AlphaVantageProvider(HTTPProvider, MarketDataProvider):
    """
    Alpha Vantage adapter.

    STAGE-MARKET.AV: Alpha Vantage fundamentals

    The free tier allows 5 requests per minute; the container wraps this
    provider's chain entry in a RateLimiter with ``request_count`` as cost.
    """

    def __init__(
        self,
        config: ProviderConfig,
        fetch_statements: bool = False,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(config, client=client)
        self.fetch_statements = fetch_statements

    @property
    def request_count(self) -> int:
        """Upstream requests issued by one fetch_fundamentals call."""
        return 4 if self.fetch_statements else 2

    async def _query(self, function: str, symbol: str) -> dict[str, Any]:
        payload = await self._request(
            "GET",
            "/query",
            params={"function": function, "symbol": symbol, "apikey": self.config.api_key},
        )
        if not isinstance(payload, dict):
            raise ProviderResponseError(
                "Alpha Vantage returned an unexpected payload",
                details={"provider": self.name, "function": function},
            )

        throttle = payload.get("Note") or payload.get("Information")
        if throttle:
            raise RateLimitExceededError(
                "Alpha Vantage request throttled",
                details={"provider": self.name, "function": function, "message": throttle},
            )
        if "Error Message" in payload:
            raise ProviderResponseError(
                payload["Error Message"],
                details={"provider": self.name, "function": function, "symbol": symbol},
            )
        return payload

    async def get_overview(self, symbol: str) -> Fundamentals:
        overview = await self._query("OVERVIEW", symbol)
        if not overview.get("Symbol"):
            raise ProviderResponseError(
                f"No overview data for {symbol}",
                details={"provider": self.name, "symbol": symbol},
            )

        fundamentals = {name: parse_number(overview.get(field)) for name, field in _OVERVIEW_FIELDS.items()}

        # GrossProfitTTM is absolute; express it as a margin of revenue
        revenue = fundamentals[Metric.REVENUE]
        fundamentals[Metric.GROSS_MARGIN] = (
            fundamentals[Metric.GROSS_MARGIN] / revenue if revenue else 0.0
        )
        fundamentals[Metric.DIVIDEND_YIELD] = parse_number(overview.get("DividendYield")) / 100
        fundamentals[Metric.REVENUE_GROWTH] = parse_number(
            overview.get("QuarterlyRevenueGrowthYOY", _PLACEHOLDER_REVENUE_GROWTH)
        )
        fundamentals[Metric.DEBT_TO_EQUITY] = _PLACEHOLDER_DEBT_TO_EQUITY
        fundamentals[Metric.EBITDA] = parse_number(overview.get("EBITDA"))
        return fundamentals

    async def get_quote(self, symbol: str) -> Fundamentals:
        payload = await self._query("GLOBAL_QUOTE", symbol)
        quote = payload.get("Global Quote") or {}
        price = parse_number(quote.get("05. price"))
        if not price:
            raise ProviderResponseError(
                f"No quote data for {symbol}",
                details={"provider": self.name, "symbol": symbol},
            )
        return {
            Metric.PRICE: price,
            Metric.VOLUME: parse_number(quote.get("06. volume")),
            Metric.CHANGE: parse_number(quote.get("09. change")),
            Metric.CHANGE_PERCENT: parse_number(quote.get("10. change percent")),
        }

    async def _statement_metrics(self, symbol: str) -> Fundamentals:
        """Revenue growth and D/E from annual reports; empty on any failure."""
        income, balance = await asyncio.gather(
            self._query("INCOME_STATEMENT", symbol),
            self._query("BALANCE_SHEET", symbol),
            return_exceptions=True,
        )
        metrics: Fundamentals = {}

        if isinstance(income, dict):
            reports = income.get("annualReports") or []
            if len(reports) > 1:
                current = parse_number(reports[0].get("totalRevenue"))
                previous = parse_number(reports[1].get("totalRevenue"))
                if current and previous:
                    metrics[Metric.REVENUE_GROWTH] = (current - previous) / previous
        else:
            logger.debug("Income statement unavailable", provider=self.name, symbol=symbol, error=str(income))

        if isinstance(balance, dict):
            reports = balance.get("annualReports") or []
            if reports:
                latest = reports[0]
                debt = parse_number(latest.get("longTermDebt")) + parse_number(latest.get("shortTermDebt"))
                equity = parse_number(latest.get("totalShareholderEquity"))
                if equity > 0:
                    metrics[Metric.DEBT_TO_EQUITY] = debt / equity
        else:
            logger.debug("Balance sheet unavailable", provider=self.name, symbol=symbol, error=str(balance))

        return metrics

    async def fetch_fundamentals(self, symbol: str) -> Fundamentals:
        """
        Fetch overview and quote for ``symbol``.

        Raises:
            RateLimitExceededError: Alpha Vantage throttled the request
            ProviderResponseError: Overview has no Symbol or quote has no price
            ProviderError: Transport or HTTP failures
        """
        symbol = symbol.upper()
        overview, quote = await asyncio.gather(self.get_overview(symbol), self.get_quote(symbol))
        fundamentals = {**overview, **quote}

        if self.fetch_statements:
            fundamentals.update(await self._statement_metrics(symbol))

        log_stage(
            logger,
            "MARKET.AV",
            "Fetched Alpha Vantage fundamentals",
            symbol=symbol,
            metric_count=len(fundamentals),
        )
        return fundamentals
