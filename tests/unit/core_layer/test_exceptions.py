"""
Unit Tests for the Exception Hierarchy

Tests structured error payloads, context chaining and wrapping.
"""

import pytest

from modernfinance.core.exceptions import (
    AllProvidersFailedError,
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    ModernFinanceError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    RateLimitError,
    RateLimitExceededError,
)


@pytest.mark.unit
class TestModernFinanceError:
    def test_to_dict(self):
        error = ProviderResponseError(
            "No overview data for IBM", request_id="req-1", details={"provider": "alpha_vantage"}
        )

        assert error.to_dict() == {
            "error_type": "ProviderResponseError",
            "message": "No overview data for IBM",
            "request_id": "req-1",
            "details": {"provider": "alpha_vantage"},
        }

    def test_details_are_copied(self):
        details = {"provider": "yahoo_finance"}
        error = ProviderError("boom", details=details)
        error.with_context(symbol="AAPL")

        assert details == {"provider": "yahoo_finance"}

    def test_with_context_chains(self):
        error = ProviderTimeoutError("slow").with_context(provider="openai").with_context(timeout=30)

        assert error.details == {"provider": "openai", "timeout": 30}

    def test_from_exception_keeps_original(self):
        original = OSError("connection refused")
        error = CacheConnectionError.from_exception(original, host="localhost")

        assert isinstance(error, CacheConnectionError)
        assert error.message == "connection refused"
        assert error.details["original_error"] == "OSError"
        assert error.details["host"] == "localhost"

    def test_repr_includes_details(self):
        error = CacheKeyError("bad", details={"key": "k"})

        assert "CacheKeyError" in repr(error)
        assert "'key': 'k'" in repr(error)


@pytest.mark.unit
class TestHierarchy:
    @pytest.mark.parametrize(
        "error_cls, parent",
        [
            (CacheConnectionError, CacheError),
            (CacheKeyError, CacheError),
            (ProviderTimeoutError, ProviderError),
            (AllProvidersFailedError, ProviderError),
            (RateLimitExceededError, RateLimitError),
        ],
    )
    def test_subclasses(self, error_cls, parent):
        assert issubclass(error_cls, parent)
        assert issubclass(error_cls, ModernFinanceError)
