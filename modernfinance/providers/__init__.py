"""
Providers

External data sources and the fallback chain that orders them.

- base_provider.py: ProviderConfig and the provider base classes
- fallback_chain.py: FallbackChain, ProviderSpec, FallbackResult
- market/: Alpha Vantage, Yahoo Finance
- llm/: OpenAI, Anthropic, Gemini
"""

from .base_provider import BaseProvider, MarketDataProvider, PerspectiveProvider, ProviderConfig
from .fallback_chain import FallbackChain, FallbackResult, ProviderOutcome, ProviderSpec

__all__ = [
    "BaseProvider",
    "FallbackChain",
    "FallbackResult",
    "MarketDataProvider",
    "PerspectiveProvider",
    "ProviderConfig",
    "ProviderOutcome",
    "ProviderSpec",
]
