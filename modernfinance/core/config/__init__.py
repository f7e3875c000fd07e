"""
Configuration Module

- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Stage names, provider identities, key prefixes and tags
- **provider_registry.py**: Builds provider adapters for the configured API keys
"""

from .settings import Settings, get_settings, reload_settings

__all__ = ["Settings", "get_settings", "reload_settings"]
