"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import random
import sys

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from modernfinance.infrastructure.cache.cache_manager import CacheManager  # noqa: E402
from tests.test_fixtures.cache_factory import CacheTestFactory  # noqa: E402
from tests.test_fixtures.settings_factory import make_settings  # noqa: E402

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (pyproject.toml); tests still carry
# @pytest.mark.asyncio for readability.


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def settings():
    """Default test settings."""
    return make_settings()


@pytest.fixture
def rng():
    """Seeded random source for deterministic synthetic output."""
    return random.Random(42)


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def clock():
    """Controllable monotonic clock shared by the fake backend and the cache."""
    return CacheTestFactory.clock()


@pytest.fixture
def in_memory_redis(clock):
    """
    In-memory Redis stand-in.

    Honors TTLs against ``clock``; set ``.down = True`` to simulate an outage.
    """
    return CacheTestFactory.in_memory_redis(clock)


@pytest.fixture
async def cache_manager(settings, in_memory_redis, clock):
    """CacheManager connected to the in-memory backend."""
    manager = CacheManager(settings, redis_client=in_memory_redis, clock=clock)
    await manager.initialize()
    yield manager
    await manager.shutdown()


@pytest.fixture
async def degraded_cache_manager(settings, clock):
    """CacheManager whose backend refused the initial connection."""
    redis = CacheTestFactory.unreachable_redis(clock)
    manager = CacheManager(settings, redis_client=redis, clock=clock)
    await manager.initialize()
    yield manager
    await manager.shutdown()
