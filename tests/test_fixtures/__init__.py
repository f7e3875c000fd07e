"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .cache_factory import CacheTestFactory, FakeClock, InMemoryRedis
from .settings_factory import make_settings
from .provider_factory import (
    ProviderTestFactory,
    StubMarketProvider,
    StubPerspectiveProvider,
    sample_analysis,
    sample_fundamentals,
    sample_label,
)

__all__ = [
    "CacheTestFactory",
    "make_settings",
    "FakeClock",
    "InMemoryRedis",
    "ProviderTestFactory",
    "StubMarketProvider",
    "StubPerspectiveProvider",
    "sample_analysis",
    "sample_fundamentals",
    "sample_label",
]
