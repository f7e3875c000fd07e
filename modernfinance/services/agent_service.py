"""
Agent Service

Analyst perspectives per (agent type, symbol):

- get_perspective: LLM-backed, cached under ``perspective:<agent>:<SYMBOL>``
- generate_base_perspectives: rule-based views used in analysis templates,
  no external calls
"""

from modernfinance.core.config.constants import CACHE_KEY_PERSPECTIVE, TAG_PERSPECTIVES
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.market import (
    AgentBias,
    AgentPerspective,
    AgentType,
    FinancialContext,
    Fundamentals,
    LLMAnalysis,
    MarketSentiment,
    Metric,
    Recommendation,
)
from modernfinance.providers.fallback_chain import FallbackChain
from modernfinance.services.market_service import MarketService, normalize_symbol, symbol_tag

logger = get_logger(__name__)


def _metric(fundamentals: Fundamentals, name: str, default: float) -> float:
    """Metric value, or ``default`` when missing or zero (unreported)."""
    return fundamentals.get(name) or default


def format_large_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1_000_000_000:
        return f"{sign}${magnitude / 1_000_000_000:.1f}B"
    if magnitude >= 1_000_000:
        return f"{sign}${magnitude / 1_000_000:.1f}M"
    return f"{sign}${magnitude / 1_000:.0f}K"


class AgentService:
    """
    STAGE-AGENT: Analyst perspectives

    Usage:
        service = AgentService(cache, market_service, perspective_chain, settings)
        perspective = await service.get_perspective("risk", "AAPL")
    """

    def __init__(
        self,
        cache: CacheManager,
        market_service: MarketService,
        perspective_chain: FallbackChain[LLMAnalysis],
        settings: Settings,
    ):
        self.cache = cache
        self.market_service = market_service
        self.perspective_chain = perspective_chain
        self._perspective_ttl = settings.cache.CACHE_PERSPECTIVE_TTL

    # -------------------------------------------------------------------------
    # LLM perspectives
    # -------------------------------------------------------------------------

    async def _generate_perspective(self, agent_type: AgentType, symbol: str) -> AgentPerspective:
        fundamentals = await self.market_service.get_fundamentals(symbol)
        context = FinancialContext.from_fundamentals(symbol, fundamentals)

        result = await self.perspective_chain.execute(agent_type, context)
        log_stage(
            logger,
            "AGENT.1",
            "Perspective generated",
            level="warning" if result.is_synthetic else "info",
            symbol=symbol,
            agent_type=agent_type.value,
            source=result.source,
        )
        return AgentPerspective.from_analysis(agent_type, result.value)

    async def get_perspective(self, agent_type: AgentType | str, symbol: str) -> AgentPerspective:
        """
        One analyst's perspective on ``symbol``, cached for CACHE_PERSPECTIVE_TTL.

        STAGE-AGENT.1: Perspective lookup

        Args:
            agent_type: AgentType, display name or slug ("risk")
            symbol: Ticker symbol

        Raises:
            ValueError: Unknown agent type (caller input error)
        """
        agent_type = AgentType.parse(agent_type)
        symbol = normalize_symbol(symbol)
        key = CacheManager.generate_key(CACHE_KEY_PERSPECTIVE, agent_type.slug, symbol)

        return await self.cache.get_or_set(
            key,
            lambda: self._generate_perspective(agent_type, symbol),
            ttl=self._perspective_ttl,
            tags=[symbol_tag(symbol), TAG_PERSPECTIVES],
            model=AgentPerspective,
        )

    # -------------------------------------------------------------------------
    # Rule-based perspectives
    # -------------------------------------------------------------------------

    def generate_base_perspectives(
        self, fundamentals: Fundamentals, sentiment: MarketSentiment
    ) -> list[AgentPerspective]:
        """
        Deterministic fundamental, technical, risk, optimist and skeptical views.

        target_price is left at 0.0; clients compute their own.
        """
        return [
            self._fundamental_view(fundamentals),
            self._technical_view(fundamentals),
            self._risk_view(fundamentals, sentiment),
            self._optimist_view(fundamentals, sentiment),
            self._skeptical_view(fundamentals, sentiment),
        ]

    def _fundamental_view(self, fundamentals: Fundamentals) -> AgentPerspective:
        pe_ratio = _metric(fundamentals, Metric.PE_RATIO, 20.0)
        revenue_growth = _metric(fundamentals, Metric.REVENUE_GROWTH, 0.0)
        roe = _metric(fundamentals, Metric.ROE, 0.15)
        margin = _metric(fundamentals, Metric.OPERATING_MARGIN, 0.15)

        is_undervalued = pe_ratio < 20
        is_efficient = roe > 0.20
        score = sum([is_undervalued, revenue_growth > 0.10, is_efficient, margin > 0.20])

        if score >= 3:
            recommendation, bias = Recommendation.BUY, AgentBias.BULLISH
        elif score >= 2:
            recommendation, bias = Recommendation.HOLD, AgentBias.NEUTRAL
        else:
            recommendation, bias = Recommendation.SELL, AgentBias.BEARISH

        return AgentPerspective(
            agent_type=AgentType.FUNDAMENTAL,
            recommendation=recommendation,
            reasoning="Based on comprehensive fundamental analysis of financial metrics",
            confidence=round(0.75 + score * 0.05, 2),
            key_points=[
                f"P/E ratio of {pe_ratio:.1f} "
                + ("suggests undervaluation" if is_undervalued else "indicates fair/overvaluation"),
                f"Revenue growth of {revenue_growth * 100:.1f}%",
                f"ROE of {roe * 100:.1f}% " + ("shows strong efficiency" if is_efficient else "needs improvement"),
                f"Operating margin of {margin * 100:.1f}%",
            ],
            bias=bias,
        )

    def _technical_view(self, fundamentals: Fundamentals) -> AgentPerspective:
        price = _metric(fundamentals, Metric.PRICE, 100.0)
        high = _metric(fundamentals, Metric.HIGH_52_WEEK, 120.0)
        low = _metric(fundamentals, Metric.LOW_52_WEEK, 80.0)
        beta = _metric(fundamentals, Metric.BETA, 1.0)

        position = (price - low) / (high - low) if high > low else 0.5
        near_high = position > 0.8
        near_low = position < 0.2

        if near_low:
            recommendation, bias, level = Recommendation.BUY, AgentBias.BULLISH, "Near support levels"
        elif near_high:
            recommendation, bias, level = Recommendation.SELL, AgentBias.BEARISH, "Near resistance levels"
        else:
            recommendation, bias, level = Recommendation.HOLD, AgentBias.NEUTRAL, "In consolidation phase"

        return AgentPerspective(
            agent_type=AgentType.TECHNICAL,
            recommendation=recommendation,
            reasoning="Technical analysis based on price patterns and market indicators",
            confidence=0.70,
            key_points=[
                f"Trading at {position * 100:.0f}% of 52-week range",
                level,
                f"Beta of {beta:.2f} "
                + ("indicates high volatility" if beta > 1.5 else "suggests stable movement"),
                "Clear trend identified" if near_high or near_low else "Awaiting breakout direction",
            ],
            bias=bias,
        )

    def _risk_view(self, fundamentals: Fundamentals, sentiment: MarketSentiment) -> AgentPerspective:
        debt_to_equity = _metric(fundamentals, Metric.DEBT_TO_EQUITY, 0.5)
        current_ratio = _metric(fundamentals, Metric.CURRENT_RATIO, 1.5)
        beta = _metric(fundamentals, Metric.BETA, 1.0)

        risk_score = 0.0
        factors = []

        if debt_to_equity > 2.0:
            risk_score += 2.0
            factors.append(f"High debt levels (D/E: {debt_to_equity:.1f})")
        elif debt_to_equity > 1.0:
            risk_score += 1.0
            factors.append("Moderate debt levels")

        if current_ratio < 1.0:
            risk_score += 2.0
            factors.append(f"Liquidity concerns (Current ratio: {current_ratio:.1f})")
        elif current_ratio < 1.5:
            risk_score += 1.0
            factors.append("Adequate liquidity")

        if beta > 1.5:
            risk_score += 1.5
            factors.append(f"High volatility (Beta: {beta:.2f})")

        if sentiment.sentiment_trend in ("volatile", "negative"):
            risk_score += 1.0
            factors.append("Negative market sentiment")

        if risk_score > 4:
            recommendation = Recommendation.SELL
        elif risk_score > 2:
            recommendation = Recommendation.HOLD
        else:
            recommendation = Recommendation.BUY

        return AgentPerspective(
            agent_type=AgentType.RISK,
            recommendation=recommendation,
            reasoning="Risk assessment based on financial stability and market conditions",
            confidence=0.80,
            key_points=factors or ["Low risk profile", "Strong financial position"],
            bias=AgentBias.BEARISH if risk_score > 3 else AgentBias.NEUTRAL,
        )

    def _optimist_view(self, fundamentals: Fundamentals, sentiment: MarketSentiment) -> AgentPerspective:
        revenue_growth = _metric(fundamentals, Metric.REVENUE_GROWTH, 0.0)
        margin = _metric(fundamentals, Metric.GROSS_MARGIN, 0.30)
        free_cash_flow = _metric(fundamentals, Metric.FREE_CASH_FLOW, 1_000_000_000)

        return AgentPerspective(
            agent_type=AgentType.OPTIMIST,
            recommendation=Recommendation.BUY,
            reasoning="Focusing on growth potential and positive catalysts",
            confidence=0.85,
            key_points=[
                f"Revenue growing at {revenue_growth * 100:.1f}% annually",
                f"Strong gross margins of {margin * 100:.1f}%",
                f"Generating {format_large_currency(free_cash_flow)} in free cash flow",
                f"Positive analyst sentiment ({sentiment.analyst_rating:.1f}/5.0)",
                "Market expansion opportunities ahead",
            ],
            bias=AgentBias.BULLISH,
        )

    def _skeptical_view(self, fundamentals: Fundamentals, sentiment: MarketSentiment) -> AgentPerspective:
        pe_ratio = _metric(fundamentals, Metric.PE_RATIO, 20.0)
        debt_to_equity = _metric(fundamentals, Metric.DEBT_TO_EQUITY, 0.5)
        overvalued = pe_ratio > 30

        return AgentPerspective(
            agent_type=AgentType.SKEPTICAL,
            recommendation=Recommendation.SELL if overvalued else Recommendation.HOLD,
            reasoning="Identifying potential risks and overvaluation concerns",
            confidence=0.75,
            key_points=[
                f"P/E ratio of {pe_ratio:.1f} suggests " + ("overvaluation" if overvalued else "full valuation"),
                f"Debt/Equity ratio of {debt_to_equity:.1f}",
                "High competitive pressure" if sentiment.news_volume > 200 else "Moderate competition",
                "Market saturation risks",
                "Execution challenges ahead",
            ],
            bias=AgentBias.BEARISH,
        )
