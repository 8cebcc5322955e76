"""Two-step bottle recycling verification: identify the bottle, then confirm the deposit."""

__version__ = "0.1.0"
