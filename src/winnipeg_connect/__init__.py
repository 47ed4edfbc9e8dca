"""Winnipeg Connect: a local service marketplace with escrow payments."""

__version__ = "0.1.0"
