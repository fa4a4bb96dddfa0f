"""
Configuration package for the web page screensaver.
"""

from .main import Config, DEFAULT_CONFIG
from .dataclasses import (
    DEFAULT_URLS,
    ScreenPreferences,
    ScreensaverConfig,
    BrowserConfig,
    LoggingConfig,
)
from ..exceptions import ConfigError

__all__ = [
    "Config",
    "DEFAULT_CONFIG",
    "DEFAULT_URLS",
    "ScreenPreferences",
    "ScreensaverConfig",
    "BrowserConfig",
    "LoggingConfig",
    "ConfigError",
]
