"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class Category(str, Enum):
    """Kind of comment thread tracked for a source."""

    REVIEWS = "reviews"
    ISSUES = "issues"

    @property
    def group(self) -> str:
        """Remote group tag selecting review or issue semantics."""
        return _GROUPS[self]


_GROUPS = {
    Category.REVIEWS: "chrome_webstore",
    Category.ISSUES: "chrome_webstore_support",
}


@dataclass(frozen=True)
class Source:
    """Tracked catalog entry."""

    id: str
    name: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Source id cannot be empty")


@dataclass(frozen=True)
class Author:
    """Author of a review or issue."""

    name: Optional[str] = None
    profile_url: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class Review:
    """User review with a star rating."""

    author: Author
    comment: str
    rating: int
    created_at: int

    category = Category.REVIEWS

    def __post_init__(self) -> None:
        if not 0 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 0 and 5, got {self.rating}")

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)


@dataclass(frozen=True)
class Issue:
    """Support issue report."""

    author: Author
    title: str
    comment: str
    type: str
    created_at: int

    category = Category.ISSUES

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)


Item = Union[Review, Issue]


@dataclass
class Watermark:
    """Highest acknowledged creation timestamp per category."""

    reviews: int = 0
    issues: int = 0

    def get(self, category: Category) -> int:
        return getattr(self, category.value)

    def advance(self, category: Category, timestamp: int) -> None:
        """Move the category watermark forward; never moves it back."""
        current = self.get(category)
        setattr(self, category.value, max(current, timestamp))


Frontier = dict[str, Watermark]


@dataclass
class SourceReport:
    """Outcome of synchronizing one source."""

    source: Source
    bootstrapped: bool = False
    notified: dict[Category, int] = field(
        default_factory=lambda: {category: 0 for category in Category}
    )


@dataclass
class SyncReport:
    """Outcome of a whole synchronization run."""

    sources: list[SourceReport]

    @property
    def total_notified(self) -> int:
        return sum(sum(report.notified.values()) for report in self.sources)


@dataclass(frozen=True)
class Notification:
    """Rendered message for one new item."""

    subject: str
    body: str
