"""
Cache Warmup Service

Pre-populates analysis templates for popular symbols so the first client
request for them is a cache hit. Symbols that already have a cached
template are skipped; a failure on one symbol never stops the run.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from modernfinance.core.config.constants import POPULAR_SYMBOLS
from modernfinance.core.config.settings import Settings
from modernfinance.core.logging.logger import get_logger, log_stage
from modernfinance.services.analysis_service import AnalysisService

logger = get_logger(__name__)


@dataclass
class WarmupReport:
    warmed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"warmed": self.warmed, "skipped": self.skipped, "failed": self.failed}


class CacheWarmupService:
    """
    STAGE-WARMUP: Cache warmup

    Usage:
        report = await warmup.warm()          # one pass over POPULAR_SYMBOLS
        warmup.start(); ...; await warmup.stop()   # periodic background runs
    """

    def __init__(
        self,
        analysis_service: AnalysisService,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        cache_settings = settings.cache
        self.analysis_service = analysis_service
        self.interval = cache_settings.CACHE_WARMUP_INTERVAL
        self.initial_delay = cache_settings.CACHE_WARMUP_INITIAL_DELAY
        self.symbol_delay = cache_settings.CACHE_WARMUP_SYMBOL_DELAY
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    async def warm(self, symbols: Iterable[str] = POPULAR_SYMBOLS) -> WarmupReport:
        """
        Build and cache templates for ``symbols`` that are not cached yet.

        STAGE-WARMUP.1: Warmup pass
        """
        report = WarmupReport()
        log_stage(logger, "WARMUP.1", "Running cache warmup")

        for symbol in symbols:
            try:
                if await self.analysis_service.get_cached_template(symbol) is not None:
                    report.skipped.append(symbol)
                    log_stage(logger, "WARMUP.1", "Already cached, skipping", level="debug", symbol=symbol)
                    continue

                await self.analysis_service.get_base_template(symbol)
                report.warmed.append(symbol)
            except Exception as e:
                report.failed[symbol] = str(e)
                log_stage(
                    logger,
                    "WARMUP.1",
                    "Failed to warm cache for symbol",
                    level="error",
                    symbol=symbol,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            if self.symbol_delay > 0:
                await self._sleep(self.symbol_delay)

        log_stage(
            logger,
            "WARMUP.1",
            "Cache warmup completed",
            warmed=len(report.warmed),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
        return report

    async def _run_periodically(self) -> None:
        await self._sleep(self.initial_delay)
        while True:
            await self.warm()
            await self._sleep(self.interval)

    def start(self) -> None:
        """Schedule periodic warmup on the running loop. No-op if already running."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run_periodically(), name="cache-warmup")
            log_stage(logger, "WARMUP.0", "Cache warmup scheduled", interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log_stage(logger, "WARMUP.9", "Cache warmup stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
