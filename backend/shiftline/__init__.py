"""Shift session and event tracking engine for production lines."""

__version__ = "0.1.0"
