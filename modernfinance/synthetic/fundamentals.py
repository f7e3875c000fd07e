"""
Synthetic Market Data

Last-resort fundamentals and sentiment, served when no market data
provider answered. Fixed per-symbol tables for a few well-known tickers
(AAPL, GOOGL/GOOG, TSLA) and a generic large-cap profile for everything
else.

Also holds the heuristic that derives a MarketSentiment from real
fundamentals, since no configured provider reports sentiment directly.
"""

import random

from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.models.market import Fundamentals, MarketSentiment, Metric

logger = get_logger(__name__)

_AAPL: Fundamentals = {
    Metric.MARKET_CAP: 3_000_000_000_000,
    Metric.PE_RATIO: 32.5,
    Metric.EPS: 6.05,
    Metric.REVENUE: 383_285_000_000,
    Metric.REVENUE_GROWTH: 0.08,
    Metric.GROSS_MARGIN: 0.434,
    Metric.OPERATING_MARGIN: 0.302,
    Metric.NET_MARGIN: 0.253,
    Metric.ROE: 1.478,
    Metric.ROA: 0.289,
    Metric.DEBT_TO_EQUITY: 1.95,
    Metric.CURRENT_RATIO: 0.94,
    Metric.QUICK_RATIO: 0.91,
    Metric.FREE_CASH_FLOW: 99_800_000_000,
    Metric.DIVIDEND_YIELD: 0.0044,
    Metric.BETA: 1.25,
    Metric.HIGH_52_WEEK: 199.62,
    Metric.LOW_52_WEEK: 164.08,
    Metric.PRICE: 196.50,
    Metric.VOLUME: 53_423_100,
}

_GOOGL: Fundamentals = {
    Metric.MARKET_CAP: 2_000_000_000_000,
    Metric.PE_RATIO: 27.8,
    Metric.EPS: 5.80,
    Metric.REVENUE: 307_394_000_000,
    Metric.REVENUE_GROWTH: 0.13,
    Metric.GROSS_MARGIN: 0.573,
    Metric.OPERATING_MARGIN: 0.278,
    Metric.NET_MARGIN: 0.213,
    Metric.ROE: 0.295,
    Metric.ROA: 0.188,
    Metric.DEBT_TO_EQUITY: 0.12,
    Metric.CURRENT_RATIO: 2.35,
    Metric.QUICK_RATIO: 2.35,
    Metric.FREE_CASH_FLOW: 69_495_000_000,
    Metric.DIVIDEND_YIELD: 0.0,
    Metric.BETA: 1.06,
    Metric.HIGH_52_WEEK: 179.49,
    Metric.LOW_52_WEEK: 120.21,
    Metric.PRICE: 161.30,
    Metric.VOLUME: 22_154_800,
}

_TSLA: Fundamentals = {
    Metric.MARKET_CAP: 800_000_000_000,
    Metric.PE_RATIO: 75.2,
    Metric.EPS: 3.40,
    Metric.REVENUE: 96_773_000_000,
    Metric.REVENUE_GROWTH: 0.19,
    Metric.GROSS_MARGIN: 0.273,
    Metric.OPERATING_MARGIN: 0.097,
    Metric.NET_MARGIN: 0.103,
    Metric.ROE: 0.241,
    Metric.ROA: 0.089,
    Metric.DEBT_TO_EQUITY: 0.28,
    Metric.CURRENT_RATIO: 1.69,
    Metric.QUICK_RATIO: 1.08,
    Metric.FREE_CASH_FLOW: 7_500_000_000,
    Metric.DIVIDEND_YIELD: 0.0,
    Metric.BETA: 2.02,
    Metric.HIGH_52_WEEK: 299.29,
    Metric.LOW_52_WEEK: 152.37,
    Metric.PRICE: 255.80,
    Metric.VOLUME: 97_456_300,
}

_DEFAULT: Fundamentals = {
    Metric.MARKET_CAP: 50_000_000_000,
    Metric.PE_RATIO: 25.0,
    Metric.EPS: 4.20,
    Metric.REVENUE: 10_000_000_000,
    Metric.REVENUE_GROWTH: 0.15,
    Metric.GROSS_MARGIN: 0.45,
    Metric.OPERATING_MARGIN: 0.20,
    Metric.NET_MARGIN: 0.15,
    Metric.ROE: 0.22,
    Metric.ROA: 0.12,
    Metric.DEBT_TO_EQUITY: 0.5,
    Metric.CURRENT_RATIO: 1.8,
    Metric.QUICK_RATIO: 1.5,
    Metric.FREE_CASH_FLOW: 1_500_000_000,
    Metric.DIVIDEND_YIELD: 0.015,
    Metric.BETA: 1.3,
    Metric.HIGH_52_WEEK: 120.0,
    Metric.LOW_52_WEEK: 80.0,
    Metric.PRICE: 105.0,
    Metric.VOLUME: 5_000_000,
}

_FUNDAMENTALS_BY_SYMBOL = {
    "AAPL": _AAPL,
    "GOOGL": _GOOGL,
    "GOOG": _GOOGL,
    "TSLA": _TSLA,
}

_SENTIMENT_BY_SYMBOL = {
    "AAPL": (4.3, 0.82, 245, "positive"),
    "GOOGL": (4.1, 0.75, 189, "stable"),
    "GOOG": (4.1, 0.75, 189, "stable"),
    "TSLA": (3.5, 0.68, 412, "volatile"),
}
_DEFAULT_SENTIMENT = (3.8, 0.7, 75, "neutral")


def generate_synthetic_fundamentals(symbol: str) -> Fundamentals:
    """
    STAGE-SYNTH.2: Synthetic fundamentals

    Returns a fresh copy so callers may mutate it.
    """
    symbol = symbol.upper()
    log_stage(logger, "SYNTH.2", "Serving synthetic fundamentals", level="debug", symbol=symbol)
    return {
        name: float(value)
        for name, value in _FUNDAMENTALS_BY_SYMBOL.get(symbol, _DEFAULT).items()
    }


def generate_synthetic_sentiment(symbol: str) -> MarketSentiment:
    """STAGE-SYNTH.3: Synthetic sentiment."""
    rating, social, volume, trend = _SENTIMENT_BY_SYMBOL.get(symbol.upper(), _DEFAULT_SENTIMENT)
    return MarketSentiment(
        analyst_rating=rating,
        social_sentiment=social,
        news_volume=volume,
        sentiment_trend=trend,
    )


def derive_sentiment(fundamentals: Fundamentals, rng: random.Random | None = None) -> MarketSentiment:
    """
    Derive sentiment from P/E, revenue growth and ROE.

    Each metric votes +1, 0 or -1; the average vote maps onto a 1-5 analyst
    rating around 3.5 and a 0-1 social score around 0.5. News volume has no
    source and is sampled from 50-149.
    """
    rng = rng or random.Random()
    votes = 0

    pe_ratio = fundamentals.get(Metric.PE_RATIO, 0.0)
    if 0 < pe_ratio < 15:
        votes += 1
    elif pe_ratio > 30:
        votes -= 1

    revenue_growth = fundamentals.get(Metric.REVENUE_GROWTH, 0.0)
    if revenue_growth > 0.15:
        votes += 1
    elif revenue_growth < 0:
        votes -= 1

    roe = fundamentals.get(Metric.ROE, 0.0)
    if roe > 0.20:
        votes += 1
    elif roe < 0.10:
        votes -= 1

    average = votes / 3
    if average > 0.3:
        trend = "positive"
    elif average < -0.3:
        trend = "negative"
    else:
        trend = "neutral"

    return MarketSentiment(
        analyst_rating=round(3.5 + average, 2),
        social_sentiment=round(0.5 + average * 0.3, 2),
        news_volume=rng.randint(50, 149),
        sentiment_trend=trend,
    )
