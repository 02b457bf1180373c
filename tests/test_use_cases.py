"""Tests for use cases."""

from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Optional
from unittest.mock import AsyncMock, Mock, patch

import pytest

from review_monitor.adapters.templates import JinjaTemplateRenderer
from review_monitor.config import Settings
from review_monitor.core import (
    Category,
    DeliveryError,
    Frontier,
    FrontierStore,
    Notification,
    NotificationTransport,
    Source,
    ThreadSource,
    TransportError,
    Watermark,
    issue_from_annotation,
    review_from_annotation,
)
from review_monitor.use_cases import NotificationDispatcher, SyncService

SOURCE = Source(id="abc", name="My Extension")
OTHER = Source(id="def", name="Other Extension")


def review(ts: int, comment: str = "") -> dict:
    return {
        "entity": {"displayName": "Ann"},
        "comment": comment or f"review {ts}",
        "starRating": 5,
        "creationTimestamp": ts,
    }


def issue(ts: int, title: str = "") -> dict:
    return {
        "title": title or f"issue {ts}",
        "attributes": {"sfrAttributes": {"issueType": "Problem"}},
        "timestamp": ts,
    }


def review_item(ts: int):
    return review_from_annotation(review(ts))


def issue_item(ts: int):
    return issue_from_annotation(issue(ts))


class FakeThreadSource(ThreadSource):
    """Serve canned annotations per source id."""

    def __init__(self, threads: dict[str, dict[Category, list[dict]]]) -> None:
        self.threads = threads
        self.fetched: list[str] = []

    async def fetch_threads(
        self, source_id: str, categories: list[Category]
    ) -> dict[Category, list[dict]]:
        self.fetched.append(source_id)
        result = self.threads[source_id]
        if isinstance(result, Exception):
            raise result
        return {category: result.get(category, []) for category in categories}


class FakeTransport(NotificationTransport):
    """Record deliveries, optionally failing on the n-th send."""

    def __init__(self, fail_on: Optional[int] = None) -> None:
        self.sent: list[Notification] = []
        self.fail_on = fail_on

    async def send(self, notification: Notification) -> None:
        if self.fail_on is not None and len(self.sent) + 1 == self.fail_on:
            raise DeliveryError("SMTP down")
        self.sent.append(notification)


class RecordingStore(FrontierStore):
    """Frontier store that remembers every saved snapshot."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.snapshots: list[dict] = []

    def save(self, frontier: Frontier) -> None:
        super().save(frontier)
        self.snapshots.append(
            {key: (value.reviews, value.issues) for key, value in frontier.items()}
        )


def make_service(
    store: FrontierStore,
    threads: FakeThreadSource,
    transport: NotificationTransport,
) -> SyncService:
    settings = Settings(
        sources=[SOURCE],
        templates={"default": {"subject": "{{ source_name }}: {{ comment or title }}"}},
    )
    dispatcher = NotificationDispatcher(
        renderer=JinjaTemplateRenderer(settings.template_for),
        transport=transport,
        store=store,
        min_interval=0,
    )
    return SyncService(threads, store, dispatcher)


@pytest.mark.asyncio
async def test_bootstrap_suppresses_notifications() -> None:
    """Test that a first scan only seeds the watermark."""
    with TemporaryDirectory() as tmpdir:
        store = FrontierStore(Path(tmpdir) / "frontier.json")
        threads = FakeThreadSource({
            SOURCE.id: {Category.REVIEWS: [review(ts) for ts in [10, 20, 30, 40, 50]]},
        })
        transport = FakeTransport()

        report = await make_service(store, threads, transport).run([SOURCE])

        assert transport.sent == []
        assert report.sources[0].bootstrapped
        assert report.total_notified == 0
        assert store.load() == {SOURCE.id: Watermark(reviews=50, issues=0)}


@pytest.mark.asyncio
async def test_new_items_notified_in_order_with_per_item_save() -> None:
    """Test delivery order and that progress is saved after each item."""
    with TemporaryDirectory() as tmpdir:
        store = RecordingStore(Path(tmpdir) / "frontier.json")
        store.save({SOURCE.id: Watermark(reviews=3, issues=100)})
        store.snapshots.clear()

        threads = FakeThreadSource({
            SOURCE.id: {
                Category.REVIEWS: [review(5), review(1), review(9), review(3)],
                Category.ISSUES: [issue(150), issue(90), issue(120)],
            },
        })
        transport = FakeTransport()

        report = await make_service(store, threads, transport).run([SOURCE])

        assert [n.subject for n in transport.sent] == [
            "My Extension: review 5",
            "My Extension: review 9",
            "My Extension: issue 120",
            "My Extension: issue 150",
        ]
        assert store.snapshots == [
            {SOURCE.id: (5, 100)},
            {SOURCE.id: (9, 100)},
            {SOURCE.id: (9, 120)},
            {SOURCE.id: (9, 150)},
        ]
        assert report.sources[0].notified == {Category.REVIEWS: 2, Category.ISSUES: 2}


@pytest.mark.asyncio
async def test_rerun_is_idempotent_and_monotonic() -> None:
    """Test that unchanged remote data yields nothing on the next run."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "frontier.json"
        threads = FakeThreadSource({
            SOURCE.id: {
                Category.REVIEWS: [review(10), review(20)],
                Category.ISSUES: [issue(5)],
            },
        })

        await make_service(FrontierStore(path), threads, FakeTransport()).run([SOURCE])
        first = FrontierStore(path).load()

        threads.threads[SOURCE.id][Category.REVIEWS].append(review(30))
        transport = FakeTransport()
        await make_service(FrontierStore(path), threads, transport).run([SOURCE])
        second = FrontierStore(path).load()

        assert len(transport.sent) == 1
        assert second[SOURCE.id].reviews >= first[SOURCE.id].reviews
        assert second[SOURCE.id].issues >= first[SOURCE.id].issues

        transport = FakeTransport()
        await make_service(FrontierStore(path), threads, transport).run([SOURCE])

        assert transport.sent == []
        assert FrontierStore(path).load() == second


@pytest.mark.asyncio
async def test_crash_resumes_after_last_saved_item() -> None:
    """Test that a failed delivery is retried and earlier ones are not."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "frontier.json"
        FrontierStore(path).save({SOURCE.id: Watermark(reviews=0, issues=0)})
        threads = FakeThreadSource({
            SOURCE.id: {Category.REVIEWS: [review(1), review(2), review(3)]},
        })

        failing = FakeTransport(fail_on=2)
        with pytest.raises(DeliveryError):
            await make_service(FrontierStore(path), threads, failing).run([SOURCE])

        assert [n.subject for n in failing.sent] == ["My Extension: review 1"]
        assert FrontierStore(path).load()[SOURCE.id].reviews == 1

        transport = FakeTransport()
        await make_service(FrontierStore(path), threads, transport).run([SOURCE])

        assert [n.subject for n in transport.sent] == [
            "My Extension: review 2",
            "My Extension: review 3",
        ]
        assert FrontierStore(path).load()[SOURCE.id].reviews == 3


@pytest.mark.asyncio
async def test_failure_aborts_remaining_sources() -> None:
    """Test that one failing source stops the run but keeps saved progress."""
    with TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "frontier.json"
        FrontierStore(path).save({SOURCE.id: Watermark(reviews=0, issues=0)})
        third = Source(id="ghi", name="Third")
        threads = FakeThreadSource({
            SOURCE.id: {Category.REVIEWS: [review(7)]},
            OTHER.id: TransportError("HTTP 500"),
            third.id: {},
        })
        transport = FakeTransport()

        with pytest.raises(TransportError):
            await make_service(FrontierStore(path), threads, transport).run(
                [SOURCE, OTHER, third]
            )

        assert threads.fetched == [SOURCE.id, OTHER.id]
        assert len(transport.sent) == 1
        assert FrontierStore(path).load() == {SOURCE.id: Watermark(reviews=7, issues=0)}


@pytest.mark.asyncio
async def test_render_failure_does_not_advance_watermark() -> None:
    """Test that an item that could not be rendered stays pending."""
    with TemporaryDirectory() as tmpdir:
        store = FrontierStore(Path(tmpdir) / "frontier.json")
        frontier = {SOURCE.id: Watermark(reviews=0, issues=0)}

        renderer = Mock()
        renderer.render.side_effect = DeliveryError("bad template")
        transport = FakeTransport()
        dispatcher = NotificationDispatcher(renderer, transport, store, min_interval=0)

        with pytest.raises(DeliveryError):
            await dispatcher.dispatch(SOURCE, Category.REVIEWS, [review_item(4)], frontier)

        assert transport.sent == []
        assert frontier[SOURCE.id].reviews == 0
        assert store.load() == {}


@pytest.mark.asyncio
async def test_dispatcher_rate_limits_consecutive_deliveries() -> None:
    """Test that deliveries after the first wait out the minimum interval."""
    with TemporaryDirectory() as tmpdir:
        store = FrontierStore(Path(tmpdir) / "frontier.json")
        frontier = {SOURCE.id: Watermark()}
        renderer = Mock()
        renderer.render.return_value = Notification(subject="s", body="b")
        transport = AsyncMock(spec=NotificationTransport)
        dispatcher = NotificationDispatcher(renderer, transport, store, min_interval=5.0)

        with patch("review_monitor.use_cases.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            sent = await dispatcher.dispatch(
                SOURCE, Category.ISSUES, [issue_item(ts) for ts in [1, 2, 3]], frontier
            )

        assert sent == 3
        assert transport.send.await_count == 3
        assert mock_sleep.await_count == 2
        for call in mock_sleep.await_args_list:
            assert 0 < call.args[0] <= 5.0
        assert frontier[SOURCE.id].issues == 3
