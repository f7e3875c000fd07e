"""
Unit Tests for AgentService

LLM-backed perspectives through the perspective chain, and the rule-based
base perspectives used in analysis templates.
"""

from unittest.mock import MagicMock

import pytest

from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.market import (
    AgentBias,
    AgentPerspective,
    AgentType,
    MarketSentiment,
    Metric,
    Recommendation,
)
from modernfinance.services.agent_service import AgentService, format_large_currency
from modernfinance.services.market_service import MarketService
from tests.test_fixtures.provider_factory import ProviderTestFactory, sample_analysis, sample_fundamentals


def agent_service(cache, settings, rng, *llm_providers, market_provider=None) -> AgentService:
    market = MarketService(
        cache,
        ProviderTestFactory.market_chain(market_provider or ProviderTestFactory.market("yahoo_finance")),
        settings,
        rng=rng,
    )
    return AgentService(cache, market, ProviderTestFactory.perspective_chain(*llm_providers, rng=rng), settings)


def sentiment(trend: str = "neutral", news_volume: int = 75) -> MarketSentiment:
    return MarketSentiment(
        analyst_rating=3.8, social_sentiment=0.7, news_volume=news_volume, sentiment_trend=trend
    )


@pytest.mark.unit
class TestGetPerspective:
    @pytest.mark.asyncio
    async def test_generates_and_caches(self, cache_manager, in_memory_redis, settings, rng):
        llm = ProviderTestFactory.perspective("openai")
        service = agent_service(cache_manager, settings, rng, llm)

        perspective = await service.get_perspective(AgentType.RISK, "aapl")

        assert perspective.agent_type is AgentType.RISK
        assert perspective.recommendation is Recommendation.BUY
        assert perspective.target_price == 120.0
        agent_type, context = llm.calls[0]
        assert agent_type is AgentType.RISK
        assert context.symbol == "AAPL"
        assert context.pe_ratio == 18.0
        assert await in_memory_redis.ttl("perspective:risk:AAPL") == 1800

    @pytest.mark.asyncio
    async def test_cached_perspective_skips_chain(self, cache_manager, settings, rng):
        llm = ProviderTestFactory.perspective("openai")
        service = agent_service(cache_manager, settings, rng, llm)

        first = await service.get_perspective("risk", "AAPL")
        second = await service.get_perspective("Risk Analyst", "AAPL")

        assert second == first
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_agent_types_cached_separately(self, cache_manager, settings, rng):
        llm = ProviderTestFactory.perspective("openai")
        service = agent_service(cache_manager, settings, rng, llm)

        await service.get_perspective(AgentType.OPTIMIST, "AAPL")
        await service.get_perspective(AgentType.SKEPTICAL, "AAPL")

        assert [call[0] for call in llm.calls] == [AgentType.OPTIMIST, AgentType.SKEPTICAL]

    @pytest.mark.asyncio
    async def test_falls_through_llm_providers(self, cache_manager, settings, rng):
        failing = ProviderTestFactory.failing_perspective("openai")
        backup = ProviderTestFactory.perspective("anthropic", analysis=sample_analysis(recommendation="Sell"))
        service = agent_service(cache_manager, settings, rng, failing, backup)

        perspective = await service.get_perspective(AgentType.FUNDAMENTAL, "AAPL")

        assert perspective.recommendation is Recommendation.SELL
        assert len(failing.calls) == 1

    @pytest.mark.asyncio
    async def test_no_llm_providers_serves_synthetic(self, cache_manager, settings, rng):
        service = agent_service(cache_manager, settings, rng)

        perspective = await service.get_perspective(AgentType.FUNDAMENTAL, "AAPL")

        # sample fundamentals score 9 of 10
        assert perspective.recommendation is Recommendation.BUY
        assert len(perspective.key_points) == 5

    @pytest.mark.asyncio
    async def test_unknown_agent_type_raises(self, cache_manager, settings, rng):
        service = agent_service(cache_manager, settings, rng, ProviderTestFactory.perspective())

        with pytest.raises(ValueError):
            await service.get_perspective("astrologer", "AAPL")

    @pytest.mark.asyncio
    async def test_malformed_cached_perspective_regenerated(self, cache_manager, settings, rng):
        await cache_manager.set("perspective:risk:AAPL", {"agent_type": "Risk Analyst"})
        llm = ProviderTestFactory.perspective("openai")
        service = agent_service(cache_manager, settings, rng, llm)

        perspective = await service.get_perspective(AgentType.RISK, "AAPL")

        assert perspective.target_price == 120.0
        assert len(llm.calls) == 1
        assert AgentPerspective.model_validate(await cache_manager.get("perspective:risk:AAPL")) == perspective


@pytest.mark.unit
class TestBasePerspectives:
    @pytest.fixture
    def service(self, settings, rng):
        # rule-based views never touch the cache
        return agent_service(MagicMock(spec=CacheManager), settings, rng)

    def test_five_views_in_order(self, service):
        perspectives = service.generate_base_perspectives(sample_fundamentals(), sentiment())

        assert [p.agent_type for p in perspectives] == [
            AgentType.FUNDAMENTAL,
            AgentType.TECHNICAL,
            AgentType.RISK,
            AgentType.OPTIMIST,
            AgentType.SKEPTICAL,
        ]
        assert all(p.target_price == 0.0 for p in perspectives)

    def test_fundamental_view(self, service):
        fundamental = service.generate_base_perspectives(sample_fundamentals(), sentiment())[0]

        # P/E 18, growth 12%, ROE 25%, operating margin 28%
        assert fundamental.recommendation is Recommendation.BUY
        assert fundamental.confidence == 0.95
        assert fundamental.key_points[0] == "P/E ratio of 18.0 suggests undervaluation"

    @pytest.mark.parametrize(
        "price, expected",
        [(85.0, Recommendation.BUY), (100.0, Recommendation.HOLD), (118.0, Recommendation.SELL)],
    )
    def test_technical_view_follows_range_position(self, service, price, expected):
        technical = service.generate_base_perspectives(sample_fundamentals(Price=price), sentiment())[1]

        assert technical.recommendation is expected

    def test_technical_view_flat_range(self, service):
        fundamentals = sample_fundamentals(**{Metric.HIGH_52_WEEK: 100.0, Metric.LOW_52_WEEK: 100.0})

        technical = service.generate_base_perspectives(fundamentals, sentiment())[1]

        assert technical.key_points[0] == "Trading at 50% of 52-week range"

    def test_risk_view_low_risk(self, service):
        risk = service.generate_base_perspectives(sample_fundamentals(), sentiment())[2]

        assert risk.recommendation is Recommendation.BUY
        assert risk.bias is AgentBias.NEUTRAL

    def test_risk_view_high_risk(self, service):
        fundamentals = sample_fundamentals(
            **{Metric.DEBT_TO_EQUITY: 2.5, Metric.CURRENT_RATIO: 0.8, Metric.BETA: 1.8}
        )

        risk = service.generate_base_perspectives(fundamentals, sentiment("volatile"))[2]

        assert risk.recommendation is Recommendation.SELL
        assert risk.bias is AgentBias.BEARISH
        assert "Negative market sentiment" in risk.key_points

    def test_optimist_always_buys(self, service):
        optimist = service.generate_base_perspectives(sample_fundamentals(), sentiment())[3]

        assert optimist.recommendation is Recommendation.BUY
        assert "Generating $5.0B in free cash flow" in optimist.key_points

    def test_skeptic_sells_expensive_stocks(self, service):
        skeptic = service.generate_base_perspectives(
            sample_fundamentals(**{Metric.PE_RATIO: 45.0}), sentiment(news_volume=300)
        )[4]

        assert skeptic.recommendation is Recommendation.SELL
        assert "High competitive pressure" in skeptic.key_points

    def test_missing_metrics_use_defaults(self, service):
        perspectives = service.generate_base_perspectives({}, sentiment())

        assert len(perspectives) == 5
        assert perspectives[4].recommendation is Recommendation.HOLD


@pytest.mark.unit
class TestFormatLargeCurrency:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (2_500_000_000, "$2.5B"),
            (7_200_000, "$7.2M"),
            (45_000, "$45K"),
            (-5_000_000_000, "-$5.0B"),
            (-7_200_000, "-$7.2M"),
            (-45_000, "-$45K"),
        ],
    )
    def test_format(self, value, expected):
        assert format_large_currency(value) == expected
