"""
Runtime configuration for the installer rewards engine.

Settings come from environment variables only; see settings.py.
"""

from .settings import Settings, get_settings, parse_thresholds
from .log import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    "parse_thresholds",
    "configure_logging",
]
