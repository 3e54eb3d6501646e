"""Structured JSON log events, a console renderer, non-blocking ring-buffer writers and an HTTP response recorder."""

__version__ = "0.1.0"