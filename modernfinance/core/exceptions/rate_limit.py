"""
Rate Limiting Exceptions
"""

from modernfinance.core.exceptions.base import ModernFinanceError


class RateLimitError(ModernFinanceError):
    """Base exception for rate limiting errors."""
    pass


class RateLimitExceededError(RateLimitError):
    """
    Raised when an upstream provider reports that its quota is exhausted.

    Local limiters make callers wait instead of raising; this error only
    represents an upstream HTTP 429 or an Alpha Vantage "Note"/"Information"
    throttle message. The fallback chain treats it like any provider failure.
    """
    pass
