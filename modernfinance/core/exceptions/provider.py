"""
Provider Exceptions

All exceptions raised by external provider adapters (market data and LLM).
The fallback chain treats any of these as a signal to try the next provider.
"""

from modernfinance.core.exceptions.base import ModernFinanceError


class ProviderError(ModernFinanceError):
    """Base exception for provider errors."""
    pass


class ProviderNotAvailableError(ProviderError):
    """
    Raised when a provider cannot be reached or is not configured.

    Common causes:
    - Provider API is down
    - Network connectivity issues
    - Missing API key
    """
    pass


class ProviderAuthenticationError(ProviderError):
    """Raised when a provider rejects the configured credentials."""
    pass


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its time budget."""
    pass


class ProviderAPIError(ProviderError):
    """
    Raised when a provider API returns an error status.

    Common causes:
    - Invalid request format
    - Unsupported model or symbol
    - Provider-side failure (5xx)
    """
    pass


class ProviderResponseError(ProviderError):
    """
    Raised when a provider answers but the payload is unusable.

    Common causes:
    - Required fields missing (symbol, price)
    - No JSON object in model output
    - JSON that fails validation
    """
    pass


class AllProvidersFailedError(ProviderError):
    """
    Raised internally when every provider in a chain failed.

    The fallback chain converts this into a synthetic result; it never
    reaches callers of the services.
    """
    pass
