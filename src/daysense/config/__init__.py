"""DaySense configuration."""

from daysense.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
