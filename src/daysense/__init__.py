"""DaySense - energy-aware daily planning and flow scoring."""

__version__ = "0.1.0"
