"""
Provider Fallback Chain

Ordered-list-of-closures orchestrator shared by every capability that has
more than one upstream source (market data, analyst perspectives).

Algorithm (per execute call, no state carried between calls):
1. For each ProviderSpec in configured order:
   a. Wait on the provider's rate limiter, if it has one
   b. Run the call under asyncio.wait_for(timeout)
   c. Success -> return immediately; later providers are never invoked
   d. Any exception (timeout included) -> log, record, try the next one
2. Every provider failed -> log a warning and return the fallback's result

Callers never see a provider error; degraded quality is visible only in
logs and in FallbackResult.source.
"""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from modernfinance.core.config.constants import SYNTHETIC_SOURCE
from modernfinance.core.exceptions import AllProvidersFailedError, ProviderTimeoutError
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.core.resilience.rate_limiter import RateLimiter

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderSpec(Generic[T]):
    """
    One entry of a fallback chain.

    Attributes:
        name: Provider name used in logs and FallbackResult.source
        call: Async callable receiving the chain's execute() arguments
        timeout: Upper bound for one attempt, in seconds
        limiter: Optional per-provider rate limiter
        cost: Limiter slots one call consumes (upstream requests per call)
    """

    name: str
    call: Callable[..., Awaitable[T]]
    timeout: float = 30.0
    limiter: RateLimiter | None = None
    cost: int = 1


@dataclass(frozen=True)
class ProviderOutcome:
    """Result of one attempt: who was tried, whether it worked, how long it took."""

    provider: str
    success: bool
    latency_ms: float
    error: str | None = None
    error_type: str | None = None


@dataclass(frozen=True)
class FallbackResult(Generic[T]):
    value: T
    source: str
    attempts: list[ProviderOutcome] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYNTHETIC_SOURCE


class FallbackChain(Generic[T]):
    """
    Try providers in order, fall back to a synthetic generator.

    STAGE-CHAIN: Provider fallback orchestration

    Usage:
        chain = FallbackChain(
            "fundamentals",
            [ProviderSpec("alpha_vantage", av.fetch_fundamentals, timeout=10, limiter=av_limiter),
             ProviderSpec("yahoo_finance", yahoo.fetch_fundamentals, timeout=10)],
            fallback=generate_synthetic_fundamentals,
        )
        result = await chain.execute("AAPL")
    """

    def __init__(
        self,
        capability: str,
        providers: Sequence[ProviderSpec[T]],
        fallback: Callable[..., T | Awaitable[T]],
    ):
        self.capability = capability
        self.providers = list(providers)
        self.fallback = fallback

    @property
    def provider_names(self) -> list[str]:
        return [spec.name for spec in self.providers]

    async def _attempt(self, spec: ProviderSpec[T], *args: Any, **kwargs: Any) -> T:
        if spec.limiter is not None:
            await spec.limiter.acquire(spec.cost)
        try:
            return await asyncio.wait_for(spec.call(*args, **kwargs), timeout=spec.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"{spec.name} did not answer within {spec.timeout}s",
                details={"provider": spec.name, "capability": self.capability},
            ) from e

    async def execute(self, *args: Any, **kwargs: Any) -> FallbackResult[T]:
        """
        Run the chain for one request.

        STAGE-CHAIN.1: Provider attempts
        STAGE-CHAIN.2: Synthetic fallback

        Args:
            *args, **kwargs: Forwarded unchanged to every provider call and
                to the fallback

        Returns:
            FallbackResult with the first successful value, or the
            fallback's value and source "synthetic"
        """
        attempts: list[ProviderOutcome] = []

        for spec in self.providers:
            start = time.perf_counter()
            try:
                value = await self._attempt(spec, *args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                latency_ms = round((time.perf_counter() - start) * 1000, 2)
                attempts.append(
                    ProviderOutcome(
                        provider=spec.name,
                        success=False,
                        latency_ms=latency_ms,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                )
                log_stage(
                    logger,
                    "CHAIN.1",
                    "Provider failed, advancing fallback chain",
                    level="warning",
                    capability=self.capability,
                    provider=spec.name,
                    error_type=type(e).__name__,
                    error=str(e),
                    latency_ms=latency_ms,
                )
                continue

            latency_ms = round((time.perf_counter() - start) * 1000, 2)
            attempts.append(ProviderOutcome(provider=spec.name, success=True, latency_ms=latency_ms))
            log_stage(
                logger,
                "CHAIN.1",
                "Provider succeeded",
                capability=self.capability,
                provider=spec.name,
                latency_ms=latency_ms,
            )
            return FallbackResult(value=value, source=spec.name, attempts=attempts)

        exhausted = AllProvidersFailedError(
            f"All providers failed for {self.capability}",
            details={"capability": self.capability, "tried": self.provider_names},
        )
        log_stage(
            logger,
            "CHAIN.2",
            "Serving synthetic result",
            level="warning",
            error=exhausted.message,
            **exhausted.details,
        )

        value = self.fallback(*args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
        return FallbackResult(value=value, source=SYNTHETIC_SOURCE, attempts=attempts)
