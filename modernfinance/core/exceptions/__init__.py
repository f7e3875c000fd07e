"""
Exception Module

Structured exception hierarchy for the cache and data-sourcing core.

Module Structure:
-----------------
- **base.py**: ModernFinanceError base class + ConfigurationError
- **cache.py**: Redis / serialization exceptions
- **provider.py**: market data and LLM provider exceptions
- **rate_limit.py**: rate limiting exceptions

Usage:
------
```python
from modernfinance.core.exceptions import CacheConnectionError, ProviderTimeoutError
```
"""

from modernfinance.core.exceptions.base import ConfigurationError, ModernFinanceError
from modernfinance.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from modernfinance.core.exceptions.provider import (
    AllProvidersFailedError,
    ProviderAPIError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from modernfinance.core.exceptions.rate_limit import RateLimitError, RateLimitExceededError

__all__ = [
    # Base
    "ModernFinanceError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    # Provider
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderAuthenticationError",
    "ProviderTimeoutError",
    "ProviderAPIError",
    "ProviderResponseError",
    "AllProvidersFailedError",
    # Rate Limit
    "RateLimitError",
    "RateLimitExceededError",
]
