"""Durable per-source watermarks."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from review_monitor.core.entities import Category, Frontier, Watermark
from review_monitor.core.errors import FrontierError


class FrontierStore:
    """Persist the frontier as a JSON file keyed by source id.

    Every save replaces the whole file atomically: the mapping is written to a
    temporary file in the same directory, synced to disk and renamed over the
    target, so an interrupted save leaves the previous state intact.
    """

    def __init__(
        self, path: Path, logger: Optional[structlog.stdlib.BoundLogger] = None
    ) -> None:
        self.path = Path(path)
        self.log = logger or structlog.stdlib.get_logger()

    def load(self) -> Frontier:
        """Read the frontier; a missing file means nothing was scanned yet."""
        if not self.path.exists():
            self.log.info("frontier_not_found", path=str(self.path))
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise FrontierError(f"Could not read frontier {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise FrontierError(f"Frontier {self.path} must be a mapping of source ids")

        frontier: Frontier = {}
        for source_id, entry in data.items():
            frontier[source_id] = self._parse_entry(source_id, entry)

        self.log.info("frontier_loaded", path=str(self.path), sources=len(frontier))
        return frontier

    def save(self, frontier: Frontier) -> None:
        """Write the full frontier durably."""
        data = {
            source_id: {category.value: watermark.get(category) for category in Category}
            for source_id, watermark in frontier.items()
        }
        payload = json.dumps(data, indent=2, ensure_ascii=False)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise FrontierError(f"Could not save frontier {self.path}: {e}") from e

        self.log.debug("frontier_saved", path=str(self.path), sources=len(frontier))

    def _parse_entry(self, source_id: str, entry: object) -> Watermark:
        if not isinstance(entry, dict):
            raise FrontierError(f"Frontier entry for '{source_id}' must be a mapping")

        values: dict[str, int] = {}
        for category in Category:
            value = entry.get(category.value, 0)
            if isinstance(value, bool) or not isinstance(value, int):
                raise FrontierError(
                    f"Frontier entry for '{source_id}' has non-integer {category.value}: {value!r}"
                )
            values[category.value] = value

        return Watermark(**values)
