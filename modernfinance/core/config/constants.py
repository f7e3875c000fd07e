"""
System Constants and Enumerations

This module defines constants and enumerations shared across the cache and
data-sourcing core.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for key prefixes, tags and stage names
- Type-safe enums for provider identity
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage`` field of structured log entries.

    Format: {PREFIX}_{DESCRIPTIVE_NAME}
    - PREFIX: component the entry comes from (CACHE, TAG, CHAIN, ...)
    - DESCRIPTIVE_NAME: uppercase description with underscores
    """

    INITIALIZATION = "0.0_INITIALIZATION"
    CACHE = "CACHE_STORE"
    TAG_INDEX = "TAG_INDEX"
    FALLBACK_CHAIN = "CHAIN_FALLBACK"
    RATE_LIMITING = "RL_RATE_LIMITING"
    SYNTHETIC = "SYNTH_GENERATION"
    MARKET_DATA = "MARKET_DATA"
    AGENT = "AGENT_PERSPECTIVE"
    WARMUP = "WARMUP_CACHE"
    SHUTDOWN = "9.0_SHUTDOWN"


# ============================================================================
# Providers
# ============================================================================


class MarketDataProvider(str, Enum):
    """Supported market data providers."""

    ALPHA_VANTAGE = "alpha_vantage"
    YAHOO_FINANCE = "yahoo_finance"


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


# Source name reported when every real provider failed
SYNTHETIC_SOURCE = "synthetic"

# ============================================================================
# Cache Key Prefixes and Tags
# ============================================================================

KEY_SEPARATOR = ":"

CACHE_KEY_FUNDAMENTALS = "fundamentals"
CACHE_KEY_SENTIMENT = "sentiment"
CACHE_KEY_PERSPECTIVE = "perspective"
CACHE_KEY_TEMPLATE = "template"

TAG_SYMBOL_PREFIX = "symbol"
TAG_FUNDAMENTALS = "fundamentals"
TAG_SENTIMENT = "sentiment"
TAG_PERSPECTIVES = "perspectives"
TAG_TEMPLATES = "templates"

# ============================================================================
# Synthetic Generation
# ============================================================================

MIN_KEY_POINTS = 5
CONFIDENCE_MIN = 0.65
CONFIDENCE_MAX = 0.90

# Symbols pre-populated by the warmup service
POPULAR_SYMBOLS = (
    "AAPL",
    "GOOGL",
    "MSFT",
    "AMZN",
    "TSLA",
    "META",
    "NVDA",
    "JPM",
    "V",
    "JNJ",
    "UNH",
    "HD",
    "PG",
    "DIS",
    "MA",
)
