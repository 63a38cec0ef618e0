"""Configuration package."""

from evalexpr.config.settings import ReplSettings, load_settings

__all__ = ["ReplSettings", "load_settings"]
