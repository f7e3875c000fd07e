"""
Unit Tests for ServiceContainer

Startup wiring, chain ordering, rate limiter attachment and shutdown,
with stub providers and the in-memory cache backend.
"""

from unittest.mock import patch

import pytest

from modernfinance.container import ServiceContainer
from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.market import Metric
from tests.test_fixtures.cache_factory import CacheTestFactory
from tests.test_fixtures.provider_factory import ProviderTestFactory, sample_fundamentals
from tests.test_fixtures.settings_factory import make_settings


@pytest.fixture
def cache(settings, in_memory_redis, clock):
    return CacheManager(settings, redis_client=in_memory_redis, clock=clock)


def container_for(settings, cache, rng, market=None, perspective=None) -> ServiceContainer:
    return ServiceContainer(
        settings,
        cache=cache,
        market_providers=market if market is not None else {"yahoo_finance": ProviderTestFactory.market("yahoo_finance")},
        perspective_providers=perspective if perspective is not None else {},
        rng=rng,
        configure_logging=False,
    )


@pytest.mark.unit
class TestStartup:
    @pytest.mark.asyncio
    async def test_start_wires_services(self, settings, cache, rng):
        container = container_for(settings, cache, rng)

        await container.start()

        assert cache.is_available() is True
        assert container.market_service.cache is cache
        assert container.agent_service.market_service is container.market_service
        assert container.analysis_service.agent_service is container.agent_service
        assert container.collaboration_service.classification_chain is container.classification_chain
        assert container.warmup_service.is_running is False
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, settings, cache, rng):
        container = container_for(settings, cache, rng)

        await container.start()
        market_service = container.market_service
        await container.start()

        assert container.market_service is market_service
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_chains_follow_configured_order(self, cache, rng):
        settings = make_settings(
            MARKET_DATA_PROVIDER_ORDER=["yahoo_finance", "alpha_vantage"],
            LLM_PROVIDER_ORDER=["gemini", "openai"],
        )
        market = {
            "alpha_vantage": ProviderTestFactory.market("alpha_vantage"),
            "yahoo_finance": ProviderTestFactory.market("yahoo_finance"),
        }
        perspective = {
            "openai": ProviderTestFactory.perspective("openai"),
            "anthropic": ProviderTestFactory.perspective("anthropic"),
            "gemini": ProviderTestFactory.perspective("gemini"),
        }

        async with container_for(settings, cache, rng, market, perspective) as container:
            assert container.market_chain.provider_names == ["yahoo_finance", "alpha_vantage"]
            assert container.perspective_chain.provider_names == ["gemini", "openai"]
            assert container.classification_chain.provider_names == ["gemini", "openai"]

    @pytest.mark.asyncio
    async def test_alpha_vantage_gets_rate_limiter(self, cache, rng):
        settings = make_settings(ALPHA_VANTAGE_RATE_LIMIT=5, ALPHA_VANTAGE_RATE_WINDOW=60.0)
        market = {
            "alpha_vantage": ProviderTestFactory.market("alpha_vantage"),
            "yahoo_finance": ProviderTestFactory.market("yahoo_finance"),
        }

        async with container_for(settings, cache, rng, market) as container:
            alpha_vantage, yahoo = container.market_chain.providers
            limiter = container.limiters["alpha_vantage"]

            assert alpha_vantage.limiter is limiter
            assert alpha_vantage.cost == 1
            assert limiter.max_calls == 5
            assert yahoo.limiter is None

    @pytest.mark.asyncio
    async def test_degraded_cache_does_not_block_startup(self, settings, clock, rng):
        cache = CacheManager(settings, redis_client=CacheTestFactory.unreachable_redis(clock), clock=clock)

        async with container_for(settings, cache, rng) as container:
            fundamentals = await container.market_service.get_fundamentals("AAPL")

        assert fundamentals == sample_fundamentals()

    @pytest.mark.asyncio
    async def test_warmup_started_when_enabled(self, cache, rng):
        settings = make_settings(CACHE_WARMUP_ENABLED=True, CACHE_WARMUP_INITIAL_DELAY=60.0)

        container = container_for(settings, cache, rng)
        await container.start()

        assert container.warmup_service.is_running is True
        await container.shutdown()
        assert container.warmup_service.is_running is False

    @pytest.mark.asyncio
    async def test_builds_providers_from_settings_when_not_injected(self, cache, rng):
        settings = make_settings()

        container = ServiceContainer(settings, cache=cache, rng=rng, configure_logging=False)
        await container.start()

        assert container.market_chain.provider_names == ["yahoo_finance"]
        assert container.perspective_chain.provider_names == []
        await container.shutdown()

    @pytest.mark.asyncio
    async def test_configures_logging(self, cache, rng):
        settings = make_settings(LOG_LEVEL="DEBUG", LOG_FORMAT="console")
        container = ServiceContainer(settings, cache=cache, market_providers={}, perspective_providers={}, rng=rng)

        with patch("modernfinance.container.setup_logging") as setup:
            await container.start()

        setup.assert_called_once_with("DEBUG", "console")
        await container.shutdown()


@pytest.mark.unit
class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_template_and_invalidation(self, settings, cache, rng):
        async with container_for(settings, cache, rng) as container:
            template = await container.analysis_service.get_base_template("AAPL")
            perspective = await container.agent_service.get_perspective("optimist", "AAPL")
            removed = await container.analysis_service.invalidate_symbol("AAPL")

        assert template.fundamentals[Metric.PRICE] == 100.0
        # no LLM configured: synthetic optimist on a score-9 profile
        assert perspective.recommendation.value == "Buy"
        assert removed == 4

    @pytest.mark.asyncio
    async def test_contribution_classified_by_keywords_without_llm(self, settings, cache, rng):
        async with container_for(settings, cache, rng) as container:
            classification = await container.collaboration_service.classify_contribution(
                "Why is the margin so low?", "aapl"
            )

        assert classification.type.value == "question"
        assert classification.source == "synthetic"
        assert classification.confidence == 0.9


@pytest.mark.unit
class TestShutdown:
    @pytest.mark.asyncio
    async def test_closes_providers_and_cache(self, settings, cache, rng):
        market = {"yahoo_finance": ProviderTestFactory.market("yahoo_finance")}
        perspective = {"openai": ProviderTestFactory.perspective("openai")}
        container = container_for(settings, cache, rng, market, perspective)
        await container.start()

        await container.shutdown()

        assert market["yahoo_finance"].closed is True
        assert perspective["openai"].closed is True
        assert cache.is_available() is False

    @pytest.mark.asyncio
    async def test_provider_close_failure_does_not_stop_shutdown(self, settings, cache, rng):
        failing = ProviderTestFactory.market("yahoo_finance")
        other = ProviderTestFactory.perspective("openai")

        async def broken_close():
            raise RuntimeError("socket already closed")

        failing.close = broken_close
        container = container_for(settings, cache, rng, {"yahoo_finance": failing}, {"openai": other})
        await container.start()

        await container.shutdown()

        assert other.closed is True
        assert cache.is_available() is False

    @pytest.mark.asyncio
    async def test_shutdown_before_start_is_noop(self, settings, cache, rng):
        await container_for(settings, cache, rng).shutdown()
