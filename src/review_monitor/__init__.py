"""Incremental Chrome Web Store review and issue notifier."""

__version__ = "0.1.0"
