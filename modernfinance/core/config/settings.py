#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
cache and data-sourcing core. All configuration is centralized here to ensure
consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Nested read-only views per concern (redis, cache, market_data, llm, ...)

Settings is the only process-wide object. Runtime components (cache manager,
provider chains, services) receive it through their constructors.
"""

from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_MARKET_DATA_PROVIDERS = ("alpha_vantage", "yahoo_finance")
KNOWN_LLM_PROVIDERS = ("openai", "anthropic", "gemini")


class RedisSettings(BaseSettings):
    """
    Redis configuration for the shared cache backend.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_TLS: bool = Field(default=False, description="Use TLS for the Redis connection")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connect timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_RECONNECT_INTERVAL: float = Field(
        default=5.0, description="Seconds to wait before retrying an unreachable backend"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache TTLs and tag index configuration.

    STAGE-2: Cache TTL configuration

    Different TTLs for different content types; the tag index lives in its
    own keyspace under CACHE_TAG_PREFIX.
    """

    ENABLE_CACHING: bool = Field(default=True, description="Master switch for the cache layer")
    CACHE_DEFAULT_TTL: int = Field(default=3600, description="Default TTL (1 hour)")
    CACHE_SHORT_TTL: int = Field(default=300, description="Short TTL (5 minutes)")
    CACHE_LONG_TTL: int = Field(default=86400, description="Long TTL (24 hours)")
    CACHE_FUNDAMENTALS_TTL: int = Field(default=300, description="Fundamentals TTL")
    CACHE_SENTIMENT_TTL: int = Field(default=600, description="Sentiment TTL")
    CACHE_PERSPECTIVE_TTL: int = Field(default=1800, description="Agent perspective TTL")
    CACHE_TEMPLATE_TTL: int = Field(default=3600, description="Analysis template TTL")
    CACHE_TAG_PREFIX: str = Field(default="tag", description="Keyspace prefix for tag sets")
    CACHE_WARMUP_ENABLED: bool = Field(default=False, description="Run the periodic warmup task")
    CACHE_WARMUP_INTERVAL: float = Field(default=3600.0, description="Seconds between warmup runs")
    CACHE_WARMUP_INITIAL_DELAY: float = Field(default=10.0, description="Delay before the first run")
    CACHE_WARMUP_SYMBOL_DELAY: float = Field(default=0.5, description="Pause between warmed symbols")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class MarketDataSettings(BaseSettings):
    """
    Market data provider configuration.

    STAGE-0.2: Market data provider configuration

    Alpha Vantage free tier allows 5 calls per minute; the limiter makes
    excess callers wait instead of failing.
    """

    ALPHA_VANTAGE_API_KEY: str | None = Field(default=None, description="Alpha Vantage API key")
    ALPHA_VANTAGE_BASE_URL: str = Field(
        default="https://www.alphavantage.co", description="Alpha Vantage base URL"
    )
    ALPHA_VANTAGE_RATE_LIMIT: int = Field(default=5, description="Calls allowed per window")
    ALPHA_VANTAGE_RATE_WINDOW: float = Field(default=60.0, description="Rate window in seconds")
    ALPHA_VANTAGE_FETCH_STATEMENTS: bool = Field(
        default=False, description="Also fetch income statement and balance sheet"
    )
    YAHOO_FINANCE_BASE_URL: str = Field(
        default="https://query1.finance.yahoo.com", description="Yahoo Finance base URL"
    )
    MARKET_DATA_TIMEOUT: float = Field(default=10.0, description="Per-provider call timeout")
    MARKET_DATA_PROVIDER_ORDER: list[str] = Field(
        default=["alpha_vantage", "yahoo_finance"], description="Fallback order"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LLMProviderSettings(BaseSettings):
    """
    LLM Provider API configurations.

    STAGE-0.3: LLM provider configuration

    Supports: OpenAI, Anthropic, Google Gemini
    """

    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4-turbo-preview", description="OpenAI model")
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    ANTHROPIC_BASE_URL: str = Field(default="https://api.anthropic.com/v1", description="Anthropic base URL")
    ANTHROPIC_MODEL: str = Field(default="claude-3-opus-20240229", description="Anthropic model")
    ANTHROPIC_VERSION: str = Field(default="2023-06-01", description="Anthropic API version header")
    GOOGLE_API_KEY: str | None = Field(default=None, description="Google Gemini API key")
    GEMINI_MODEL: str = Field(default="gemini-pro", description="Gemini model")
    LLM_TIMEOUT: float = Field(default=30.0, description="Per-provider call timeout")
    LLM_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(default=800, description="Maximum output tokens")
    LLM_PROVIDER_ORDER: list[str] = Field(
        default=["openai", "anthropic", "gemini"], description="Fallback order"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Modern Finance Cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        order = settings.llm.LLM_PROVIDER_ORDER
    """

    # Redis settings
    REDIS_URL: str | None = Field(default=None, description="Redis URL (overrides host/port)")
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_TLS: bool = Field(default=False, description="Use TLS for the Redis connection")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connect timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_RECONNECT_INTERVAL: float = Field(default=5.0, description="Backend retry interval")

    # Cache settings
    ENABLE_CACHING: bool = Field(default=True, description="Master switch for the cache layer")
    CACHE_DEFAULT_TTL: int = Field(default=3600, description="Default TTL (1 hour)")
    CACHE_SHORT_TTL: int = Field(default=300, description="Short TTL (5 minutes)")
    CACHE_LONG_TTL: int = Field(default=86400, description="Long TTL (24 hours)")
    CACHE_FUNDAMENTALS_TTL: int = Field(default=300, description="Fundamentals TTL")
    CACHE_SENTIMENT_TTL: int = Field(default=600, description="Sentiment TTL")
    CACHE_PERSPECTIVE_TTL: int = Field(default=1800, description="Agent perspective TTL")
    CACHE_TEMPLATE_TTL: int = Field(default=3600, description="Analysis template TTL")
    CACHE_TAG_PREFIX: str = Field(default="tag", description="Keyspace prefix for tag sets")
    CACHE_WARMUP_ENABLED: bool = Field(default=False, description="Run the periodic warmup task")
    CACHE_WARMUP_INTERVAL: float = Field(default=3600.0, description="Seconds between warmup runs")
    CACHE_WARMUP_INITIAL_DELAY: float = Field(default=10.0, description="Delay before the first run")
    CACHE_WARMUP_SYMBOL_DELAY: float = Field(default=0.5, description="Pause between warmed symbols")

    # Market data settings
    ALPHA_VANTAGE_API_KEY: str | None = Field(default=None, description="Alpha Vantage API key")
    ALPHA_VANTAGE_BASE_URL: str = Field(default="https://www.alphavantage.co")
    ALPHA_VANTAGE_RATE_LIMIT: int = Field(default=5, description="Calls allowed per window")
    ALPHA_VANTAGE_RATE_WINDOW: float = Field(default=60.0, description="Rate window in seconds")
    ALPHA_VANTAGE_FETCH_STATEMENTS: bool = Field(
        default=False, description="Also fetch income statement and balance sheet"
    )
    YAHOO_FINANCE_BASE_URL: str = Field(default="https://query1.finance.yahoo.com")
    MARKET_DATA_TIMEOUT: float = Field(default=10.0, description="Per-provider call timeout")
    MARKET_DATA_PROVIDER_ORDER: list[str] = Field(default=["alpha_vantage", "yahoo_finance"])

    # LLM provider settings
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4-turbo-preview", description="OpenAI model")
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    ANTHROPIC_BASE_URL: str = Field(default="https://api.anthropic.com/v1")
    ANTHROPIC_MODEL: str = Field(default="claude-3-opus-20240229", description="Anthropic model")
    ANTHROPIC_VERSION: str = Field(default="2023-06-01", description="Anthropic API version header")
    GOOGLE_API_KEY: str | None = Field(default=None, description="Google Gemini API key")
    GEMINI_MODEL: str = Field(default="gemini-pro", description="Gemini model")
    LLM_TIMEOUT: float = Field(default=30.0, description="Per-provider call timeout")
    LLM_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(default=800, description="Maximum output tokens")
    LLM_PROVIDER_ORDER: list[str] = Field(default=["openai", "anthropic", "gemini"])

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    APP_NAME: str = Field(default="Modern Finance Cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @model_validator(mode="after")
    def apply_redis_url(self):
        """Split a REDIS_URL (as provided by Railway) into host/port/password."""
        if self.REDIS_URL:
            parsed = urlparse(self.REDIS_URL)
            self.REDIS_HOST = parsed.hostname or self.REDIS_HOST
            self.REDIS_PORT = parsed.port or self.REDIS_PORT
            if parsed.password:
                self.REDIS_PASSWORD = parsed.password
            if parsed.scheme == "rediss":
                self.REDIS_TLS = True
        return self

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("MARKET_DATA_PROVIDER_ORDER")
    @classmethod
    def validate_market_data_order(cls, v):
        """Only known market data providers may be ordered."""
        unknown = [name for name in v if name not in KNOWN_MARKET_DATA_PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown market data providers: {unknown}")
        return v

    @field_validator("LLM_PROVIDER_ORDER")
    @classmethod
    def validate_llm_order(cls, v):
        """Only known LLM providers may be ordered."""
        unknown = [name for name in v if name not in KNOWN_LLM_PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown LLM providers: {unknown}")
        return v

    # Nested configuration views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_TLS=self.REDIS_TLS,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_RECONNECT_INTERVAL=self.REDIS_RECONNECT_INTERVAL,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            ENABLE_CACHING=self.ENABLE_CACHING,
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_SHORT_TTL=self.CACHE_SHORT_TTL,
            CACHE_LONG_TTL=self.CACHE_LONG_TTL,
            CACHE_FUNDAMENTALS_TTL=self.CACHE_FUNDAMENTALS_TTL,
            CACHE_SENTIMENT_TTL=self.CACHE_SENTIMENT_TTL,
            CACHE_PERSPECTIVE_TTL=self.CACHE_PERSPECTIVE_TTL,
            CACHE_TEMPLATE_TTL=self.CACHE_TEMPLATE_TTL,
            CACHE_TAG_PREFIX=self.CACHE_TAG_PREFIX,
            CACHE_WARMUP_ENABLED=self.CACHE_WARMUP_ENABLED,
            CACHE_WARMUP_INTERVAL=self.CACHE_WARMUP_INTERVAL,
            CACHE_WARMUP_INITIAL_DELAY=self.CACHE_WARMUP_INITIAL_DELAY,
            CACHE_WARMUP_SYMBOL_DELAY=self.CACHE_WARMUP_SYMBOL_DELAY,
        )

    @property
    def market_data(self) -> MarketDataSettings:
        """Get market data provider settings."""
        return MarketDataSettings(
            ALPHA_VANTAGE_API_KEY=self.ALPHA_VANTAGE_API_KEY,
            ALPHA_VANTAGE_BASE_URL=self.ALPHA_VANTAGE_BASE_URL,
            ALPHA_VANTAGE_RATE_LIMIT=self.ALPHA_VANTAGE_RATE_LIMIT,
            ALPHA_VANTAGE_RATE_WINDOW=self.ALPHA_VANTAGE_RATE_WINDOW,
            ALPHA_VANTAGE_FETCH_STATEMENTS=self.ALPHA_VANTAGE_FETCH_STATEMENTS,
            YAHOO_FINANCE_BASE_URL=self.YAHOO_FINANCE_BASE_URL,
            MARKET_DATA_TIMEOUT=self.MARKET_DATA_TIMEOUT,
            MARKET_DATA_PROVIDER_ORDER=self.MARKET_DATA_PROVIDER_ORDER,
        )

    @property
    def llm(self) -> LLMProviderSettings:
        """Get LLM provider settings."""
        return LLMProviderSettings(
            OPENAI_API_KEY=self.OPENAI_API_KEY,
            OPENAI_MODEL=self.OPENAI_MODEL,
            ANTHROPIC_API_KEY=self.ANTHROPIC_API_KEY,
            ANTHROPIC_BASE_URL=self.ANTHROPIC_BASE_URL,
            ANTHROPIC_MODEL=self.ANTHROPIC_MODEL,
            ANTHROPIC_VERSION=self.ANTHROPIC_VERSION,
            GOOGLE_API_KEY=self.GOOGLE_API_KEY,
            GEMINI_MODEL=self.GEMINI_MODEL,
            LLM_TIMEOUT=self.LLM_TIMEOUT,
            LLM_TEMPERATURE=self.LLM_TEMPERATURE,
            LLM_MAX_TOKENS=self.LLM_MAX_TOKENS,
            LLM_PROVIDER_ORDER=self.LLM_PROVIDER_ORDER,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the settings instance, creating it on first use.

    STAGE-0.4: Settings initialization
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
