"""Core domain layer."""

from review_monitor.core.decoder import ScriptResultDecoder
from review_monitor.core.differ import latest_timestamp, new_items
from review_monitor.core.entities import (
    Author,
    Category,
    Frontier,
    Issue,
    Item,
    Notification,
    Review,
    Source,
    SourceReport,
    SyncReport,
    Watermark,
)
from review_monitor.core.errors import (
    ConfigError,
    DecodeError,
    DeliveryError,
    FrontierError,
    ReviewMonitorError,
    TransportError,
)
from review_monitor.core.frontier import FrontierStore
from review_monitor.core.interfaces import NotificationTransport, TemplateRenderer, ThreadSource
from review_monitor.core.normalizer import (
    author_from_annotation,
    issue_from_annotation,
    review_from_annotation,
)

__all__ = [
    "Author",
    "Category",
    "Frontier",
    "Issue",
    "Item",
    "Notification",
    "Review",
    "Source",
    "SourceReport",
    "SyncReport",
    "Watermark",
    "ConfigError",
    "DecodeError",
    "DeliveryError",
    "FrontierError",
    "ReviewMonitorError",
    "TransportError",
    "FrontierStore",
    "ScriptResultDecoder",
    "NotificationTransport",
    "TemplateRenderer",
    "ThreadSource",
    "author_from_annotation",
    "issue_from_annotation",
    "review_from_annotation",
    "latest_timestamp",
    "new_items",
]
