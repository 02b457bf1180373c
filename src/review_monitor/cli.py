"""CLI entry point for review monitor."""

import asyncio
from pathlib import Path

import structlog
import typer

from review_monitor.adapters.notifications import EmailTransport, SlackTransport
from review_monitor.adapters.sources import WebStoreThreadClient
from review_monitor.adapters.templates import JinjaTemplateRenderer
from review_monitor.config import Settings, get_settings
from review_monitor.core import (
    FrontierStore,
    NotificationTransport,
    ReviewMonitorError,
    ScriptResultDecoder,
    SyncReport,
)
from review_monitor.logging_config import configure_logging, get_logger
from review_monitor.use_cases import NotificationDispatcher, SyncService


def main(
    config: Path = typer.Option(..., "--config", help="Path to the YAML config file"),
    frontier: Path = typer.Option(..., "--frontier", help="Path to the frontier state file"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """Notify about new Chrome Web Store reviews and issues."""
    configure_logging(log_level, json_logs)
    log = get_logger("review_monitor")

    try:
        settings = get_settings(config)
        asyncio.run(async_run(settings, frontier, log))
    except ReviewMonitorError as e:
        log.error("scan_failed", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(code=1) from e


def app() -> None:
    """CLI entry point."""
    typer.run(main)


def build_transport(
    settings: Settings, log: structlog.stdlib.BoundLogger
) -> NotificationTransport:
    if settings.notifications.transport == "slack":
        return SlackTransport(settings.slack_webhook_url or "", logger=log)
    return EmailTransport(settings.email, logger=log)


def build_service(
    settings: Settings, frontier_path: Path, log: structlog.stdlib.BoundLogger
) -> SyncService:
    """Wire collaborators for one run."""
    store = FrontierStore(frontier_path, logger=log)

    thread_source = WebStoreThreadClient(
        settings.remote,
        decoder=ScriptResultDecoder(settings.remote.callback),
        logger=log,
    )

    dispatcher = NotificationDispatcher(
        renderer=JinjaTemplateRenderer(settings.template_for),
        transport=build_transport(settings, log),
        store=store,
        min_interval=settings.notifications.min_interval,
        logger=log,
    )

    return SyncService(thread_source, store, dispatcher, logger=log)


async def async_run(
    settings: Settings, frontier_path: Path, log: structlog.stdlib.BoundLogger
) -> SyncReport:
    """Async implementation of the scan."""
    log.info(
        "scan_started",
        sources=[source.name for source in settings.sources],
        transport=settings.notifications.transport,
        frontier=str(frontier_path),
    )

    service = build_service(settings, frontier_path, log)
    return await service.run(settings.sources)


if __name__ == "__main__":
    app()
