"""
Service Container
=================

Owns every runtime component and its lifecycle. Nothing here is a module
level singleton: build a container from Settings, start it, use its
services, shut it down.

STARTUP SEQUENCE:
-----------------
1. Structured logging
2. Cache manager (a Redis failure leaves it degraded, startup continues)
3. Provider adapters for the configured API keys
4. Market data, perspective and contribution-classification fallback chains
5. Market, agent, analysis and collaboration services
6. Periodic cache warmup (only when CACHE_WARMUP_ENABLED)

SHUTDOWN SEQUENCE:
------------------
Reverse order: warmup task, provider clients, cache connection.

USAGE:
------
async with ServiceContainer(settings) as container:
    template = await container.analysis_service.get_base_template("AAPL")
"""

import random
from functools import partial

from modernfinance.core.config.constants import SYNTHETIC_SOURCE, MarketDataProvider
from modernfinance.core.config.provider_registry import (
    build_market_providers,
    build_perspective_providers,
    ordered,
)
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger, log_stage, setup_logging
from modernfinance.core.resilience.rate_limiter import RateLimiter
from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import Fundamentals, LLMAnalysis
from modernfinance.providers.base_provider import BaseProvider
from modernfinance.providers.fallback_chain import FallbackChain, ProviderSpec
from modernfinance.services.agent_service import AgentService
from modernfinance.services.analysis_service import AnalysisService
from modernfinance.services.cache_warmup import CacheWarmupService
from modernfinance.services.collaboration_service import CollaborationService
from modernfinance.services.market_service import MarketService
from modernfinance.synthetic import (
    classify_by_keywords,
    generate_synthetic_fundamentals,
    generate_synthetic_perspective,
)

logger = get_logger(__name__)


class ServiceContainer:
    """
    Wires settings, cache, providers and services together.

    Tests inject a prepared cache (e.g. one over an in-memory backend) and
    provider dicts; production builds everything from settings.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheManager | None = None,
        market_providers: dict | None = None,
        perspective_providers: dict | None = None,
        rng: random.Random | None = None,
        configure_logging: bool = True,
    ):
        self.settings = settings
        self.cache = cache or CacheManager(settings)
        self._market_providers = market_providers
        self._perspective_providers = perspective_providers
        self._rng = rng or random.Random()
        self._configure_logging = configure_logging

        self.providers: list[BaseProvider] = []
        self.limiters: dict[str, RateLimiter] = {}
        self.market_chain: FallbackChain[Fundamentals] | None = None
        self.perspective_chain: FallbackChain[LLMAnalysis] | None = None
        self.classification_chain: FallbackChain[ContributionLabel] | None = None
        self.market_service: MarketService | None = None
        self.agent_service: AgentService | None = None
        self.analysis_service: AnalysisService | None = None
        self.collaboration_service: CollaborationService | None = None
        self.warmup_service: CacheWarmupService | None = None
        self._started = False

    # ========================================================================
    # CHAINS
    # ========================================================================

    def _build_market_chain(self, providers: dict) -> FallbackChain[Fundamentals]:
        market = self.settings.market_data
        limiter = RateLimiter(
            MarketDataProvider.ALPHA_VANTAGE.value,
            max_calls=market.ALPHA_VANTAGE_RATE_LIMIT,
            period=market.ALPHA_VANTAGE_RATE_WINDOW,
        )
        self.limiters[limiter.name] = limiter

        specs = []
        for provider in ordered(providers, market.MARKET_DATA_PROVIDER_ORDER):
            if provider.name == MarketDataProvider.ALPHA_VANTAGE.value:
                cost = min(getattr(provider, "request_count", 1), limiter.max_calls)
                specs.append(
                    ProviderSpec(
                        provider.name,
                        provider.fetch_fundamentals,
                        timeout=market.MARKET_DATA_TIMEOUT,
                        limiter=limiter,
                        cost=cost,
                    )
                )
            else:
                specs.append(
                    ProviderSpec(provider.name, provider.fetch_fundamentals, timeout=market.MARKET_DATA_TIMEOUT)
                )

        return FallbackChain("fundamentals", specs, fallback=generate_synthetic_fundamentals)

    def _build_perspective_chain(self, providers: dict) -> FallbackChain[LLMAnalysis]:
        llm = self.settings.llm
        specs = [
            ProviderSpec(provider.name, provider.generate_analysis, timeout=llm.LLM_TIMEOUT)
            for provider in ordered(providers, llm.LLM_PROVIDER_ORDER)
        ]
        return FallbackChain(
            "perspective",
            specs,
            fallback=partial(generate_synthetic_perspective, rng=self._rng),
        )

    def _build_classification_chain(self, providers: dict) -> FallbackChain[ContributionLabel]:
        llm = self.settings.llm
        specs = [
            ProviderSpec(provider.name, provider.classify_contribution, timeout=llm.LLM_TIMEOUT)
            for provider in ordered(providers, llm.LLM_PROVIDER_ORDER)
        ]
        return FallbackChain("contribution_classification", specs, fallback=classify_by_keywords)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self) -> "ServiceContainer":
        """
        STAGE-0: Application startup
        """
        if self._started:
            return self

        if self._configure_logging:
            logging_settings = self.settings.logging
            setup_logging(logging_settings.LOG_LEVEL, logging_settings.LOG_FORMAT)

        app = self.settings.app
        log_stage(logger, "0.0", "Starting services", app=app.APP_NAME, version=app.APP_VERSION)

        await self.cache.initialize()
        log_stage(logger, "0.1", "Cache initialized", available=self.cache.is_available())

        market_providers = self._market_providers
        if market_providers is None:
            market_providers = build_market_providers(self.settings)
        perspective_providers = self._perspective_providers
        if perspective_providers is None:
            perspective_providers = build_perspective_providers(self.settings)
        self.providers = [*market_providers.values(), *perspective_providers.values()]

        self.market_chain = self._build_market_chain(market_providers)
        self.perspective_chain = self._build_perspective_chain(perspective_providers)
        self.classification_chain = self._build_classification_chain(perspective_providers)
        log_stage(
            logger,
            "0.2",
            "Provider chains built",
            market=[*self.market_chain.provider_names, SYNTHETIC_SOURCE],
            perspective=[*self.perspective_chain.provider_names, SYNTHETIC_SOURCE],
            classification=[*self.classification_chain.provider_names, SYNTHETIC_SOURCE],
        )

        self.market_service = MarketService(self.cache, self.market_chain, self.settings, rng=self._rng)
        self.agent_service = AgentService(self.cache, self.market_service, self.perspective_chain, self.settings)
        self.analysis_service = AnalysisService(
            self.cache, self.market_service, self.agent_service, self.settings
        )
        self.collaboration_service = CollaborationService(self.classification_chain)
        self.warmup_service = CacheWarmupService(self.analysis_service, self.settings)

        if self.settings.cache.CACHE_WARMUP_ENABLED:
            self.warmup_service.start()

        self._started = True
        log_stage(logger, "0.3", "Services started")
        return self

    async def shutdown(self) -> None:
        """
        STAGE-9: Application shutdown

        Every step runs even if an earlier one fails.
        """
        if not self._started:
            return

        log_stage(logger, "9.0", "Shutting down services")
        try:
            if self.warmup_service is not None:
                await self.warmup_service.stop()
        finally:
            try:
                for provider in self.providers:
                    try:
                        await provider.close()
                    except Exception as e:
                        log_stage(
                            logger,
                            "9.1",
                            "Provider close failed",
                            level="error",
                            provider=provider.name,
                            error=str(e),
                        )
            finally:
                await self.cache.shutdown()
                self._started = False
                log_stage(logger, "9.2", "Services stopped")

    async def __aenter__(self) -> "ServiceContainer":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
