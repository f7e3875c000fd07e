"""
Base Provider Abstract Classes

Abstract bases for the two kinds of external data source:

- MarketDataProvider: symbol -> Fundamentals
- PerspectiveProvider: (agent type, financial context) -> LLMAnalysis, and
  (contribution text, symbol) -> ContributionLabel

Architectural Decision: narrow calls per provider
- The fallback chain only needs "a call that returns a value or raises"
- Adapters translate SDK / HTTP errors into ProviderError subclasses
- Retries, ordering and synthesis live in FallbackChain, not here
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from modernfinance.core.exceptions import (
    ProviderAPIError,
    ProviderAuthenticationError,
    ProviderNotAvailableError,
    ProviderTimeoutError,
    RateLimitExceededError,
)
from modernfinance.core.logging.logger import get_logger
from modernfinance.models.collaboration import ContributionLabel
from modernfinance.models.market import AgentType, FinancialContext, Fundamentals, LLMAnalysis

logger = get_logger(__name__)


@dataclass
class ProviderConfig:
    """
    Configuration for an external provider.

    Attributes:
        name: Provider name (as used in provider order settings)
        api_key: API key, None for keyless providers
        base_url: Base URL for the API
        timeout: Per-request timeout in seconds
        default_model: Model identifier (LLM providers only)
        temperature: Sampling temperature (LLM providers only)
        max_tokens: Response token cap (LLM providers only)
    """

    name: str
    api_key: str | None = None
    base_url: str = ""
    timeout: float = 30.0
    default_model: str = ""
    temperature: float = 0.7
    max_tokens: int = 800


class BaseProvider(ABC):
    """
    Common plumbing for provider adapters.

    STAGE-PROV.0: Provider initialization
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.name = config.name

        logger.info(
            "Provider initialized",
            stage="PROV.0",
            provider=config.name,
            base_url=config.base_url[:50] + "..." if len(config.base_url) > 50 else config.base_url,
        )

    async def close(self) -> None:
        """Release network resources. No-op unless the adapter owns a client."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class HTTPProvider(BaseProvider):
    """
    Provider backed by an ``httpx.AsyncClient``.

    The client is created on first use unless one is injected, and closed by
    ``close()`` only when this adapter created it.
    """

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient | None = None):
        super().__init__(config)
        self._client = client
        self._owns_client = client is None

    def _default_headers(self) -> dict[str, str]:
        return {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=self._default_headers(),
            )
        return self._client

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """
        Issue a request and return the decoded JSON body.

        STAGE-PROV.HTTP: HTTP request with error translation

        Raises:
            ProviderTimeoutError: Request exceeded the client timeout
            ProviderNotAvailableError: Transport-level failure
            ProviderAuthenticationError: HTTP 401 / 403
            RateLimitExceededError: HTTP 429
            ProviderAPIError: Any other non-2xx status or a non-JSON body
        """
        details = {"provider": self.name, "url": url}
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name} request timed out", details=details) from e
        except httpx.RequestError as e:
            raise ProviderNotAvailableError(
                f"Could not connect to {self.name}", details={**details, "error": str(e)}
            ) from e

        status = response.status_code
        if status in (401, 403):
            raise ProviderAuthenticationError(
                f"{self.name} rejected the configured credentials", details={**details, "status": status}
            )
        if status == 429:
            raise RateLimitExceededError(f"{self.name} rate limit exceeded", details=details)
        if status >= 400:
            raise ProviderAPIError(
                f"{self.name} returned HTTP {status}",
                details={**details, "status": status, "body": response.text[:200]},
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderAPIError(f"{self.name} returned a non-JSON body", details=details) from e

    async def close(self) -> None:
        # An injected client belongs to the caller and stays attached
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class MarketDataProvider(BaseProvider):
    """Source of fundamental metrics for a symbol."""

    @abstractmethod
    async def fetch_fundamentals(self, symbol: str) -> Fundamentals:
        """
        Fetch normalized fundamentals for ``symbol``.

        Raises:
            ProviderError: On any failure, including unusable payloads
        """


class PerspectiveProvider(BaseProvider):
    """Source of an analyst perspective, usually an LLM."""

    @abstractmethod
    async def generate_analysis(self, agent_type: AgentType, context: FinancialContext) -> LLMAnalysis:
        """
        Produce a validated analysis for ``agent_type`` on ``context``.

        Raises:
            ProviderError: On any failure, including unparseable output
        """

    @abstractmethod
    async def classify_contribution(self, text: str, symbol: str | None = None) -> ContributionLabel:
        """
        Label a user contribution and name the analysts it concerns.

        Raises:
            ProviderError: On any failure, including unparseable output
        """
