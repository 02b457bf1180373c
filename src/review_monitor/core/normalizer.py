"""Mapping of raw annotations into reviews and issues."""

from typing import Any

from review_monitor.core.entities import Author, Issue, Review


def _nested(record: Any, *path: str) -> Any:
    """Follow a key path, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(record, dict):
            return None
        record = record.get(key)
    return record


def _rating(value: Any) -> int:
    """Whole star count clamped to 0..5; unreadable ratings count as 0."""
    try:
        stars = int(float(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(max(stars, 0), 5)


def author_from_annotation(annotation: dict) -> Author:
    entity = annotation.get("entity")
    if not isinstance(entity, dict):
        return Author()

    return Author(
        name=entity.get("displayName"),
        profile_url=entity.get("profileUrl"),
        avatar_url=entity.get("authorPhotoUrl"),
    )


def review_from_annotation(annotation: dict) -> Review:
    """Build a review; raises KeyError if the creation timestamp is absent."""
    return Review(
        author=author_from_annotation(annotation),
        comment=annotation.get("comment") or "",
        rating=_rating(annotation.get("starRating")),
        created_at=int(annotation["creationTimestamp"]),
    )


def issue_from_annotation(annotation: dict) -> Issue:
    """Build an issue; raises KeyError if the timestamp is absent."""
    issue_type = _nested(annotation, "attributes", "sfrAttributes", "issueType") or ""

    return Issue(
        author=author_from_annotation(annotation),
        title=annotation.get("title") or "",
        comment=annotation.get("comment") or "",
        type=str(issue_type).lower(),
        created_at=int(annotation["timestamp"]),
    )
