"""
Unit Tests for CacheWarmupService
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from modernfinance.core.config.constants import POPULAR_SYMBOLS
from modernfinance.services.agent_service import AgentService
from modernfinance.services.analysis_service import AnalysisService
from modernfinance.services.cache_warmup import CacheWarmupService, WarmupReport
from modernfinance.services.market_service import MarketService
from tests.test_fixtures.provider_factory import ProviderTestFactory
from tests.test_fixtures.settings_factory import make_settings


@pytest.fixture
def analysis_mock():
    analysis = MagicMock(spec=AnalysisService)
    analysis.get_cached_template = AsyncMock(return_value=None)
    analysis.get_base_template = AsyncMock()
    return analysis


@pytest.mark.unit
class TestWarm:
    @pytest.mark.asyncio
    async def test_warms_skips_and_records_failures(self, analysis_mock, settings):
        def build(symbol):
            if symbol == "BAD":
                raise RuntimeError("boom")

        analysis_mock.get_cached_template.side_effect = lambda symbol: object() if symbol == "AAPL" else None
        analysis_mock.get_base_template.side_effect = build

        report = await CacheWarmupService(analysis_mock, settings).warm(["AAPL", "MSFT", "BAD", "NVDA"])

        assert report.warmed == ["MSFT", "NVDA"]
        assert report.skipped == ["AAPL"]
        assert report.failed == {"BAD": "boom"}

    @pytest.mark.asyncio
    async def test_cached_lookup_failure_does_not_stop_run(self, analysis_mock, settings):
        analysis_mock.get_cached_template.side_effect = [ConnectionError("reset"), None]

        report = await CacheWarmupService(analysis_mock, settings).warm(["AAPL", "MSFT"])

        assert report.warmed == ["MSFT"]
        assert "AAPL" in report.failed

    @pytest.mark.asyncio
    async def test_defaults_to_popular_symbols(self, analysis_mock, settings):
        report = await CacheWarmupService(analysis_mock, settings).warm()

        assert report.warmed == list(POPULAR_SYMBOLS)

    @pytest.mark.asyncio
    async def test_pauses_between_warmed_symbols(self, analysis_mock):
        sleep = AsyncMock()
        service = CacheWarmupService(analysis_mock, make_settings(CACHE_WARMUP_SYMBOL_DELAY=0.5), sleep=sleep)

        await service.warm(["AAPL", "MSFT"])

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_no_pause_when_delay_is_zero(self, analysis_mock, settings):
        sleep = AsyncMock()

        await CacheWarmupService(analysis_mock, settings, sleep=sleep).warm(["AAPL"])

        sleep.assert_not_called()

    def test_report_to_dict(self):
        report = WarmupReport(warmed=["AAPL"], skipped=["MSFT"], failed={"BAD": "boom"})

        assert report.to_dict() == {"warmed": ["AAPL"], "skipped": ["MSFT"], "failed": {"BAD": "boom"}}


@pytest.mark.unit
class TestWarmAgainstCache:
    @pytest.mark.asyncio
    async def test_second_pass_skips_everything(self, cache_manager, settings, rng):
        market = MarketService(
            cache_manager, ProviderTestFactory.market_chain(ProviderTestFactory.market()), settings, rng=rng
        )
        agents = AgentService(cache_manager, market, ProviderTestFactory.perspective_chain(rng=rng), settings)
        warmup = CacheWarmupService(AnalysisService(cache_manager, market, agents, settings), settings)

        first = await warmup.warm(["AAPL", "MSFT"])
        second = await warmup.warm(["AAPL", "MSFT"])

        assert first.warmed == ["AAPL", "MSFT"]
        assert second.warmed == []
        assert second.skipped == ["AAPL", "MSFT"]


@pytest.mark.unit
class TestPeriodicWarmup:
    @pytest.mark.asyncio
    async def test_runs_after_initial_delay_then_every_interval(self, analysis_mock):
        settings = make_settings(CACHE_WARMUP_INITIAL_DELAY=10.0, CACHE_WARMUP_INTERVAL=3600.0)
        sleep = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])
        service = CacheWarmupService(analysis_mock, settings, sleep=sleep)

        service.start()
        with pytest.raises(asyncio.CancelledError):
            await service._task

        assert [call.args[0] for call in sleep.await_args_list] == [10.0, 3600.0, 3600.0]
        assert analysis_mock.get_base_template.await_count == 2 * len(POPULAR_SYMBOLS)
        assert service.is_running is False
        await service.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_cancels(self, analysis_mock, settings):
        service = CacheWarmupService(analysis_mock, make_settings(CACHE_WARMUP_INITIAL_DELAY=60.0))

        service.start()
        task = service._task
        service.start()

        assert service._task is task
        assert service.is_running is True

        await service.stop()

        assert service.is_running is False
        assert task.cancelled()
        analysis_mock.get_base_template.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, analysis_mock, settings):
        await CacheWarmupService(analysis_mock, settings).stop()
