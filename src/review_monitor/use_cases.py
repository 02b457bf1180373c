"""Business logic use cases."""

import asyncio
from dataclasses import asdict
from typing import Any, Callable, Optional, Sequence

import structlog

from review_monitor.core import (
    Category,
    Frontier,
    FrontierStore,
    Item,
    NotificationTransport,
    Source,
    SourceReport,
    SyncReport,
    TemplateRenderer,
    ThreadSource,
    Watermark,
    issue_from_annotation,
    latest_timestamp,
    new_items,
    review_from_annotation,
)

NORMALIZERS: dict[Category, Callable[[dict], Item]] = {
    Category.REVIEWS: review_from_annotation,
    Category.ISSUES: issue_from_annotation,
}

CATEGORY_LABELS = {
    Category.REVIEWS: "review",
    Category.ISSUES: "issue",
}


def notification_context(source: Source, item: Item) -> dict[str, Any]:
    """Template variables for one item."""
    context = asdict(item)
    context.update(
        source_id=source.id,
        source_name=source.name,
        category=item.category.value,
        category_label=CATEGORY_LABELS[item.category],
        created=item.created,
    )
    return context


class NotificationDispatcher:
    """Deliver one notification per new item and persist progress after each."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        transport: NotificationTransport,
        store: FrontierStore,
        min_interval: float = 1.0,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.renderer = renderer
        self.transport = transport
        self.store = store
        self.min_interval = min_interval
        self.log = logger or structlog.stdlib.get_logger()
        self._last_delivery_time: Optional[float] = None

    def bootstrap(
        self,
        source: Source,
        frontier: Frontier,
        items: dict[Category, Sequence[Item]],
    ) -> Watermark:
        """Acknowledge the whole history of a source seen for the first time.

        No notifications are sent; each watermark jumps to the newest item.
        """
        watermark = Watermark(
            **{
                category.value: latest_timestamp(items.get(category, []))
                for category in Category
            }
        )
        frontier[source.id] = watermark
        self.store.save(frontier)

        self.log.info(
            "source_bootstrapped",
            source=source.name,
            source_id=source.id,
            reviews=watermark.reviews,
            issues=watermark.issues,
        )
        return watermark

    async def dispatch(
        self,
        source: Source,
        category: Category,
        items: Sequence[Item],
        frontier: Frontier,
    ) -> int:
        """Notify items in order, saving the frontier after every delivery.

        Returns:
            Number of notifications delivered
        """
        watermark = frontier[source.id]
        sent = 0

        for item in items:
            notification = self.renderer.render(category, notification_context(source, item))

            await self._rate_limit_delay()
            await self.transport.send(notification)
            self._last_delivery_time = asyncio.get_running_loop().time()

            watermark.advance(category, item.created_at)
            self.store.save(frontier)
            sent += 1

            self.log.info(
                "notification_sent",
                source=source.name,
                category=category.value,
                created_at=item.created_at,
                watermark=watermark.get(category),
            )

        return sent

    async def _rate_limit_delay(self) -> None:
        """Keep at least min_interval seconds between consecutive deliveries."""
        if self._last_delivery_time is None:
            return

        elapsed = asyncio.get_running_loop().time() - self._last_delivery_time
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)


class SyncService:
    """Drive configured sources through fetch, diff and dispatch."""

    def __init__(
        self,
        thread_source: ThreadSource,
        store: FrontierStore,
        dispatcher: NotificationDispatcher,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.thread_source = thread_source
        self.store = store
        self.dispatcher = dispatcher
        self.log = logger or structlog.stdlib.get_logger()

    async def fetch_items(self, source: Source) -> dict[Category, list[Item]]:
        """Fetch and normalize both threads of a source."""
        categories = list(Category)
        threads = await self.thread_source.fetch_threads(source.id, categories)

        return {
            category: [NORMALIZERS[category](annotation) for annotation in threads[category]]
            for category in categories
        }

    async def sync_source(self, source: Source, frontier: Frontier) -> SourceReport:
        """Synchronize one source; failures propagate to the caller."""
        report = SourceReport(source=source)
        items = await self.fetch_items(source)

        if source.id not in frontier:
            self.dispatcher.bootstrap(source, frontier, items)
            report.bootstrapped = True
            return report

        watermark = frontier[source.id]
        pending = {
            category: new_items(items[category], watermark.get(category))
            for category in Category
        }

        for category in Category:
            self.log.info(
                "new_items_found",
                source=source.name,
                category=category.value,
                count=len(pending[category]),
            )
            report.notified[category] = await self.dispatcher.dispatch(
                source, category, pending[category], frontier
            )

        return report

    async def run(self, sources: Sequence[Source]) -> SyncReport:
        """Synchronize sources in order.

        The first failure aborts the run. Everything delivered before it is
        already reflected in the persisted frontier.
        """
        frontier = self.store.load()
        reports: list[SourceReport] = []

        for source in sources:
            self.log.info("sync_source_started", source=source.name, source_id=source.id)
            reports.append(await self.sync_source(source, frontier))

        report = SyncReport(sources=reports)
        self.log.info(
            "sync_completed",
            sources=len(reports),
            bootstrapped=sum(1 for r in reports if r.bootstrapped),
            notified=report.total_notified,
        )
        return report
