"""
Configuration module for the recommendation service.

Environment-driven values come from pydantic-settings (``config.settings``);
algorithm tuning constants live in frozen dataclasses (``config.constants``).

Usage:
    from config import get_settings

    settings = get_settings()
    timeout = settings.generator_timeout_seconds
"""

from config.settings import Settings, get_settings, get_settings_for_testing

__all__ = ["Settings", "get_settings", "get_settings_for_testing"]
