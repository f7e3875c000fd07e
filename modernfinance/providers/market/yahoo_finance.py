"""
Yahoo Finance Market Data Provider

Keyless fundamentals from the quoteSummary endpoint. Each metric is read
from the first module that reports it, as ``{"raw": <number>}``.
"""

from typing import Any

import httpx

from modernfinance.core.exceptions import ProviderResponseError
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.market import Fundamentals, Metric
from modernfinance.providers.base_provider import HTTPProvider, MarketDataProvider, ProviderConfig

logger = get_logger(__name__)

QUOTE_SUMMARY_MODULES = "price,summaryDetail,defaultKeyStatistics,financialData"

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# metric -> (module, field) candidates, first non-empty wins
_FIELD_MAP: dict[str, tuple[tuple[str, str], ...]] = {
    Metric.MARKET_CAP: (("price", "marketCap"), ("summaryDetail", "marketCap")),
    Metric.PE_RATIO: (("summaryDetail", "trailingPE"),),
    Metric.FORWARD_PE: (("summaryDetail", "forwardPE"),),
    Metric.EPS: (("defaultKeyStatistics", "trailingEps"),),
    Metric.REVENUE: (("financialData", "totalRevenue"),),
    Metric.REVENUE_GROWTH: (("financialData", "revenueGrowth"),),
    Metric.GROSS_MARGIN: (("financialData", "grossMargins"),),
    Metric.OPERATING_MARGIN: (("financialData", "operatingMargins"),),
    Metric.NET_MARGIN: (("financialData", "profitMargins"),),
    Metric.ROE: (("financialData", "returnOnEquity"),),
    Metric.ROA: (("financialData", "returnOnAssets"),),
    Metric.DEBT_TO_EQUITY: (("financialData", "debtToEquity"),),
    Metric.CURRENT_RATIO: (("financialData", "currentRatio"),),
    Metric.QUICK_RATIO: (("financialData", "quickRatio"),),
    Metric.FREE_CASH_FLOW: (("financialData", "freeCashflow"),),
    Metric.DIVIDEND_YIELD: (("summaryDetail", "dividendYield"),),
    Metric.BETA: (("summaryDetail", "beta"), ("defaultKeyStatistics", "beta")),
    Metric.HIGH_52_WEEK: (("summaryDetail", "fiftyTwoWeekHigh"),),
    Metric.LOW_52_WEEK: (("summaryDetail", "fiftyTwoWeekLow"),),
    Metric.PRICE: (("price", "regularMarketPrice"), ("financialData", "currentPrice")),
    Metric.VOLUME: (("price", "regularMarketVolume"), ("summaryDetail", "volume")),
    Metric.PRICE_TO_BOOK: (("defaultKeyStatistics", "priceToBook"),),
    Metric.BOOK_VALUE: (("defaultKeyStatistics", "bookValue"),),
    Metric.TOTAL_CASH: (("financialData", "totalCash"),),
    Metric.TOTAL_DEBT: (("financialData", "totalDebt"),),
    Metric.EBITDA: (("financialData", "ebitda"),),
    Metric.EBITDA_MARGIN: (("financialData", "ebitdaMargins"),),
    Metric.EARNINGS_GROWTH: (("financialData", "earningsGrowth"),),
    Metric.AVERAGE_50_DAY: (("summaryDetail", "fiftyDayAverage"),),
    Metric.AVERAGE_200_DAY: (("summaryDetail", "twoHundredDayAverage"),),
}


def _raw(result: dict[str, Any], module: str, field: str) -> float | None:
    value = (result.get(module) or {}).get(field)
    if isinstance(value, dict):
        value = value.get("raw")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def map_quote_summary(result: dict[str, Any]) -> Fundamentals:
    """Flatten one quoteSummary result into named metrics (0.0 when unreported)."""
    fundamentals: Fundamentals = {}
    for metric, candidates in _FIELD_MAP.items():
        value = None
        for module, field in candidates:
            value = _raw(result, module, field)
            if value:
                break
        fundamentals[metric] = value or 0.0

    # Yahoo reports debt/equity as a percentage
    fundamentals[Metric.DEBT_TO_EQUITY] /= 100
    return fundamentals


class YahooFinanceProvider(HTTPProvider, MarketDataProvider):
    """
    Yahoo Finance adapter.

    STAGE-MARKET.YF: Yahoo Finance fundamentals
    """

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient | None = None):
        super().__init__(config, client=client)

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT}

    async def fetch_fundamentals(self, symbol: str) -> Fundamentals:
        """
        Fetch quoteSummary fundamentals for ``symbol``.

        Raises:
            ProviderResponseError: Empty result, reported error or no price
            ProviderError: Transport or HTTP failures
        """
        symbol = symbol.upper()
        payload = await self._request(
            "GET",
            f"/v10/finance/quoteSummary/{symbol}",
            params={"modules": QUOTE_SUMMARY_MODULES},
        )

        summary = (payload or {}).get("quoteSummary") or {}
        results = summary.get("result") or []
        if summary.get("error") or not results:
            raise ProviderResponseError(
                f"Yahoo Finance: no fundamentals for {symbol}",
                details={"provider": self.name, "symbol": symbol, "error": summary.get("error")},
            )

        fundamentals = map_quote_summary(results[0])
        if not fundamentals[Metric.PRICE]:
            raise ProviderResponseError(
                f"Yahoo Finance: no price for {symbol}",
                details={"provider": self.name, "symbol": symbol},
            )

        log_stage(
            logger,
            "MARKET.YF",
            "Fetched Yahoo Finance fundamentals",
            symbol=symbol,
            metric_count=len(fundamentals),
        )
        return fundamentals
