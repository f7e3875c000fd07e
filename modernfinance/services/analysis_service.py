"""
Analysis Service

Builds and caches the per-symbol AnalysisTemplate: fundamentals, sentiment,
competitive position and the rule-based agent perspectives. Templates
contain no LLM output, so they are cheap to rebuild and safe to pre-warm.
"""

from pydantic import ValidationError

from modernfinance.core.config.constants import CACHE_KEY_TEMPLATE, TAG_TEMPLATES
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.market import AnalysisTemplate, CompetitiveAnalysis, Fundamentals, Metric
from modernfinance.services.agent_service import AgentService
from modernfinance.services.market_service import MarketService, normalize_symbol, symbol_tag

logger = get_logger(__name__)

LEADER_MARKET_CAP = 100_000_000_000
MAJOR_MARKET_CAP = 10_000_000_000
HIGH_BARRIER_MARKET_CAP = 50_000_000_000


def generate_competitive_analysis(fundamentals: Fundamentals) -> CompetitiveAnalysis:
    """Market-cap and margin driven competitive position."""
    market_cap = fundamentals.get(Metric.MARKET_CAP) or 0.0
    margin = fundamentals.get(Metric.OPERATING_MARGIN) or 0.0

    if market_cap > LEADER_MARKET_CAP:
        position = "Market Leader"
    elif market_cap > MAJOR_MARKET_CAP:
        position = "Major Player"
    else:
        position = "Emerging Player"

    return CompetitiveAnalysis(
        market_position=position,
        competitive_advantages=[
            "High margins" if margin > 0.25 else "Cost efficiency",
            "Brand recognition",
            "Technology innovation",
        ],
        threats_from_competitors=["New market entrants", "Technology disruption"],
        barrier_to_entry=8.5 if market_cap > HIGH_BARRIER_MARKET_CAP else 6.0,
        switching_costs=7.0,
        network_effects=6.5,
        brand_strength=9.0 if market_cap > LEADER_MARKET_CAP else 7.0,
    )


class AnalysisService:
    """
    STAGE-ANALYSIS: Analysis templates

    Usage:
        template = await analysis_service.get_base_template("AAPL")
        removed = await analysis_service.invalidate_symbol("AAPL")
    """

    def __init__(
        self,
        cache: CacheManager,
        market_service: MarketService,
        agent_service: AgentService,
        settings: Settings,
    ):
        self.cache = cache
        self.market_service = market_service
        self.agent_service = agent_service
        self._template_ttl = settings.cache.CACHE_TEMPLATE_TTL

    @staticmethod
    def template_key(symbol: str) -> str:
        return CacheManager.generate_key(CACHE_KEY_TEMPLATE, normalize_symbol(symbol))

    async def generate_base_template(self, symbol: str) -> AnalysisTemplate:
        """Build a fresh template; fundamentals and sentiment come through the cache."""
        symbol = normalize_symbol(symbol)
        fundamentals = await self.market_service.get_fundamentals(symbol)
        sentiment = await self.market_service.get_sentiment(symbol)

        return AnalysisTemplate(
            symbol=symbol,
            fundamentals=fundamentals,
            market_sentiment=sentiment,
            competitive_position=generate_competitive_analysis(fundamentals),
            base_agent_perspectives=self.agent_service.generate_base_perspectives(fundamentals, sentiment),
            ttl=self._template_ttl,
        )

    async def get_cached_template(self, symbol: str) -> AnalysisTemplate | None:
        """Cached template, or None on miss, degraded backend or malformed entry."""
        key = self.template_key(symbol)
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            return AnalysisTemplate.model_validate(cached)
        except ValidationError:
            log_stage(logger, "ANALYSIS.1", "Discarding malformed cached template", level="warning", cache_key=key)
            return None

    async def get_base_template(self, symbol: str) -> AnalysisTemplate:
        """
        Cached template for ``symbol``, rebuilt on miss.

        STAGE-ANALYSIS.1: Template lookup
        """
        symbol = normalize_symbol(symbol)
        return await self.cache.get_or_set(
            self.template_key(symbol),
            lambda: self._build_template(symbol),
            ttl=self._template_ttl,
            tags=[symbol_tag(symbol), TAG_TEMPLATES],
            model=AnalysisTemplate,
        )

    async def _build_template(self, symbol: str) -> AnalysisTemplate:
        template = await self.generate_base_template(symbol)
        log_stage(logger, "ANALYSIS.1", "Analysis template built", symbol=symbol)
        return template

    async def invalidate_symbol(self, symbol: str) -> int:
        """
        Drop every cached artifact of ``symbol``.

        STAGE-ANALYSIS.2: Symbol invalidation

        Returns:
            Number of cache keys removed
        """
        symbol = normalize_symbol(symbol)
        removed = await self.cache.invalidate_by_tags([symbol_tag(symbol)])
        log_stage(logger, "ANALYSIS.2", "Symbol invalidated", symbol=symbol, removed=removed)
        return removed
