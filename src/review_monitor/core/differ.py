"""Incremental diffing of fetched items against a watermark."""

from typing import Optional, Sequence

from review_monitor.core.entities import Item


def new_items(items: Sequence[Item], watermark: Optional[int]) -> list[Item]:
    """Select items created after the watermark, oldest first.

    Args:
        items: Items in fetch order
        watermark: Last acknowledged timestamp, or None if the category was
            never scanned (every item is new)

    Returns:
        Items with ``created_at > watermark`` sorted ascending. The sort is
        stable so equal timestamps keep their fetch order.
    """
    if watermark is None:
        selected = list(items)
    else:
        selected = [item for item in items if item.created_at > watermark]

    return sorted(selected, key=lambda item: item.created_at)


def latest_timestamp(items: Sequence[Item], default: int = 0) -> int:
    """Highest creation timestamp among items."""
    return max((item.created_at for item in items), default=default)
