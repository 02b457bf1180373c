"""Source adapters for fetching comment threads."""

from review_monitor.adapters.sources.webstore_client import WebStoreThreadClient

__all__ = ["WebStoreThreadClient"]
