"""
Provider Registry

Builds the market data and LLM provider adapters from settings.

Architectural Decision: Centralized provider registration
- Conditional registration based on API key availability
- Chain order comes from MARKET_DATA_PROVIDER_ORDER / LLM_PROVIDER_ORDER
- Adding a provider is a registry entry plus a settings name, no service change
"""

from modernfinance.core.config.constants import LLMProvider, MarketDataProvider
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger
from modernfinance.providers.base_provider import (
    MarketDataProvider as MarketDataSource,
    PerspectiveProvider,
    ProviderConfig,
)
from modernfinance.providers.llm import (
    AnthropicPerspectiveProvider,
    GeminiPerspectiveProvider,
    OpenAIPerspectiveProvider,
)
from modernfinance.providers.market import AlphaVantageProvider, YahooFinanceProvider

logger = get_logger(__name__)


def build_market_providers(settings: Settings) -> dict[str, MarketDataSource]:
    """
    Market data adapters keyed by provider name.

    Alpha Vantage needs a key; Yahoo Finance is always registered.
    """
    market = settings.market_data
    providers: dict[str, MarketDataSource] = {}

    if market.ALPHA_VANTAGE_API_KEY:
        providers[MarketDataProvider.ALPHA_VANTAGE.value] = AlphaVantageProvider(
            ProviderConfig(
                name=MarketDataProvider.ALPHA_VANTAGE.value,
                api_key=market.ALPHA_VANTAGE_API_KEY,
                base_url=market.ALPHA_VANTAGE_BASE_URL,
                timeout=market.MARKET_DATA_TIMEOUT,
            ),
            fetch_statements=market.ALPHA_VANTAGE_FETCH_STATEMENTS,
        )
        logger.info("Registered Alpha Vantage provider")
    else:
        logger.warning("Alpha Vantage API key not configured, provider skipped")

    providers[MarketDataProvider.YAHOO_FINANCE.value] = YahooFinanceProvider(
        ProviderConfig(
            name=MarketDataProvider.YAHOO_FINANCE.value,
            base_url=market.YAHOO_FINANCE_BASE_URL,
            timeout=market.MARKET_DATA_TIMEOUT,
        )
    )
    logger.info("Registered Yahoo Finance provider")
    return providers


def build_perspective_providers(settings: Settings) -> dict[str, PerspectiveProvider]:
    """LLM adapters keyed by provider name; only those with a configured key."""
    llm = settings.llm
    providers: dict[str, PerspectiveProvider] = {}

    def config(name: str, api_key: str, model: str, base_url: str = "") -> ProviderConfig:
        return ProviderConfig(
            name=name,
            api_key=api_key,
            base_url=base_url,
            timeout=llm.LLM_TIMEOUT,
            default_model=model,
            temperature=llm.LLM_TEMPERATURE,
            max_tokens=llm.LLM_MAX_TOKENS,
        )

    if llm.OPENAI_API_KEY:
        providers[LLMProvider.OPENAI.value] = OpenAIPerspectiveProvider(
            config(LLMProvider.OPENAI.value, llm.OPENAI_API_KEY, llm.OPENAI_MODEL)
        )
        logger.info("Registered OpenAI provider")

    if llm.ANTHROPIC_API_KEY:
        providers[LLMProvider.ANTHROPIC.value] = AnthropicPerspectiveProvider(
            config(LLMProvider.ANTHROPIC.value, llm.ANTHROPIC_API_KEY, llm.ANTHROPIC_MODEL, llm.ANTHROPIC_BASE_URL),
            api_version=llm.ANTHROPIC_VERSION,
        )
        logger.info("Registered Anthropic provider")

    if llm.GOOGLE_API_KEY:
        providers[LLMProvider.GEMINI.value] = GeminiPerspectiveProvider(
            config(LLMProvider.GEMINI.value, llm.GOOGLE_API_KEY, llm.GEMINI_MODEL)
        )
        logger.info("Registered Gemini provider")

    if not providers:
        logger.warning("No LLM provider configured, perspectives will be synthetic")
    return providers


def ordered(providers: dict, order: list[str]) -> list:
    """Registered providers in ``order``; unregistered names are skipped."""
    return [providers[name] for name in order if name in providers]
