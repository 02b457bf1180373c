"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from review_monitor.core.entities import Category, Notification


class ThreadSource(ABC):
    """Interface for fetching raw comment threads of a tracked source."""

    @abstractmethod
    async def fetch_threads(
        self, source_id: str, categories: list[Category]
    ) -> dict[Category, list[dict]]:
        """Fetch raw annotations per requested category."""
        pass


class TemplateRenderer(ABC):
    """Interface for rendering notifications."""

    @abstractmethod
    def render(self, category: Category, context: Mapping[str, Any]) -> Notification:
        """Render subject and body for an item of the given category."""
        pass


class NotificationTransport(ABC):
    """Interface for delivering notifications."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver one notification or raise DeliveryError."""
        pass
