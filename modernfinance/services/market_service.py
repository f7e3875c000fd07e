"""
Market Service
==============

WHAT IS THIS SERVICE?
---------------------
MarketService answers the two market questions clients ask per symbol:
1. Fundamentals: a flat {metric name: value} mapping
2. Sentiment: analyst rating, social score, news volume, trend

Both are read through the cache (cache-aside) and, on a miss, sourced
from the market data fallback chain.

DATA FLOW:
----------
get_fundamentals(symbol)
    -> cache "fundamentals:<SYMBOL>" (TTL 300s, tags symbol:<SYMBOL>, fundamentals)
    -> miss: FallbackChain(alpha_vantage -> yahoo_finance -> synthetic)

get_sentiment(symbol)
    -> cache "sentiment:<SYMBOL>" (TTL 600s, tags symbol:<SYMBOL>, sentiment)
    -> miss: derived from real fundamentals, or the synthetic
             sentiment table when fundamentals were synthetic

Synthetic answers are cached like real ones; the only trace of degraded
quality is a warning log.
"""

import random

from modernfinance.core.config.constants import (
    CACHE_KEY_FUNDAMENTALS,
    CACHE_KEY_SENTIMENT,
    TAG_FUNDAMENTALS,
    TAG_SENTIMENT,
    TAG_SYMBOL_PREFIX,
)
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.market import Fundamentals, MarketSentiment
from modernfinance.providers.fallback_chain import FallbackChain
from modernfinance.synthetic.fundamentals import derive_sentiment, generate_synthetic_sentiment

logger = get_logger(__name__)


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def symbol_tag(symbol: str) -> str:
    """Invalidation tag shared by every cached artifact of ``symbol``."""
    return CacheManager.generate_key(TAG_SYMBOL_PREFIX, normalize_symbol(symbol))


def _as_fundamentals(value) -> Fundamentals | None:
    if not isinstance(value, dict):
        return None
    try:
        return {str(name): float(metric) for name, metric in value.items()}
    except (TypeError, ValueError):
        return None


# ============================================================================
# MARKET SERVICE
# ============================================================================


class MarketService:
    """
    Cached fundamentals and sentiment.

    USAGE:
    ------
    service = MarketService(cache, market_chain, settings)
    fundamentals = await service.get_fundamentals("AAPL")
    sentiment = await service.get_sentiment("AAPL")
    """

    def __init__(
        self,
        cache: CacheManager,
        market_chain: FallbackChain[Fundamentals],
        settings: Settings,
        rng: random.Random | None = None,
    ):
        """
        Args:
            cache: Cache manager (injected, owned by the container)
            market_chain: Fallback chain producing Fundamentals for a symbol
            settings: Application settings (TTLs)
            rng: Random source for derived news volume
        """
        self.cache = cache
        self.market_chain = market_chain
        self._fundamentals_ttl = settings.cache.CACHE_FUNDAMENTALS_TTL
        self._sentiment_ttl = settings.cache.CACHE_SENTIMENT_TTL
        self._rng = rng or random.Random()

    # ========================================================================
    # FUNDAMENTALS
    # ========================================================================

    async def _source_fundamentals(self, symbol: str) -> tuple[Fundamentals, bool]:
        """Run the market chain; returns (fundamentals, is_synthetic)."""
        result = await self.market_chain.execute(symbol)
        if result.is_synthetic:
            log_stage(
                logger,
                "MARKET.1",
                "All market data providers failed, serving synthetic fundamentals",
                level="warning",
                symbol=symbol,
                attempts=[attempt.provider for attempt in result.attempts],
            )
        else:
            log_stage(logger, "MARKET.1", "Fundamentals sourced", symbol=symbol, source=result.source)
        return result.value, result.is_synthetic

    async def _load_fundamentals(self, symbol: str) -> tuple[Fundamentals, bool]:
        """
        Cache-aside read of fundamentals.

        Returns (fundamentals, is_synthetic); cached entries count as real
        since their source is not recorded.
        """
        key = CacheManager.generate_key(CACHE_KEY_FUNDAMENTALS, symbol)

        cached = _as_fundamentals(await self.cache.get(key))
        if cached:
            return cached, False

        fundamentals, synthetic = await self._source_fundamentals(symbol)
        await self.cache.set(
            key,
            fundamentals,
            ttl=self._fundamentals_ttl,
            tags=[symbol_tag(symbol), TAG_FUNDAMENTALS],
        )
        return fundamentals, synthetic

    async def get_fundamentals(self, symbol: str) -> Fundamentals:
        """
        Fundamentals for ``symbol``, cached for CACHE_FUNDAMENTALS_TTL seconds.

        STAGE-MARKET.1: Fundamentals lookup

        Never raises for provider or cache failures.
        """
        fundamentals, _ = await self._load_fundamentals(normalize_symbol(symbol))
        return fundamentals

    # ========================================================================
    # SENTIMENT
    # ========================================================================

    async def _compute_sentiment(self, symbol: str) -> MarketSentiment:
        fundamentals, synthetic = await self._load_fundamentals(symbol)
        if synthetic:
            return generate_synthetic_sentiment(symbol)
        return derive_sentiment(fundamentals, self._rng)

    async def get_sentiment(self, symbol: str) -> MarketSentiment:
        """
        Market sentiment for ``symbol``, cached for CACHE_SENTIMENT_TTL seconds.

        STAGE-MARKET.2: Sentiment lookup
        """
        symbol = normalize_symbol(symbol)
        return await self.cache.get_or_set(
            CacheManager.generate_key(CACHE_KEY_SENTIMENT, symbol),
            lambda: self._compute_sentiment(symbol),
            ttl=self._sentiment_ttl,
            tags=[symbol_tag(symbol), TAG_SENTIMENT],
            model=MarketSentiment,
        )
