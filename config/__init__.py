"""Configuration module for the docs MCP server.

Provides build settings loaded from YAML and serve-time settings.
"""

from .settings import (
    DEFAULT_CONFIG,
    BuildConfig,
    ServerConfig,
    load_build_config
)

__all__ = [
    'DEFAULT_CONFIG',
    'BuildConfig',
    'ServerConfig',
    'load_build_config'
]
