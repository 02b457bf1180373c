"""Chrome Web Store comment thread client."""

import json
from typing import Optional

import httpx
import structlog

from review_monitor.config import RemoteConfig
from review_monitor.core import Category, ScriptResultDecoder, ThreadSource, TransportError


class WebStoreThreadClient(ThreadSource):
    """Fetch review and support threads for extensions in one request."""

    def __init__(
        self,
        remote: Optional[RemoteConfig] = None,
        decoder: Optional[ScriptResultDecoder] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.remote = remote or RemoteConfig()
        self.decoder = decoder or ScriptResultDecoder(self.remote.callback)
        self.log = logger or structlog.stdlib.get_logger()

    def build_request(self, source_id: str, categories: list[Category]) -> dict:
        """Build the request envelope.

        Each category gets its own thread spec whose ``id`` is the slot used to
        find that category's result in the response.
        """
        specs = [
            {
                "type": "CommentThread",
                "url": self.remote.permalink.format(id=source_id),
                "groups": category.group,
                "sortby": "date",
                "startindex": "0",
                "numresults": str(self.remote.page_size),
                "id": _slot_id(index),
            }
            for index, category in enumerate(categories)
        ]

        return {
            "appId": self.remote.app_id,
            "version": self.remote.version,
            "hl": self.remote.locale,
            "specs": specs,
            "internedKeys": [],
            "internedValues": [],
        }

    async def fetch_raw(self, source_id: str, categories: list[Category]) -> str:
        """Send the envelope and return the raw response body."""
        request = self.build_request(source_id, categories)

        self.log.info(
            "fetching_threads",
            source_id=source_id,
            categories=[category.value for category in categories],
        )

        async with httpx.AsyncClient(timeout=self.remote.timeout) as client:
            try:
                response = await client.post(
                    self.remote.endpoint,
                    data={"req": json.dumps(request)},
                )
            except httpx.HTTPError as e:
                raise TransportError(f"Thread fetch for {source_id} failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Thread fetch for {source_id} returned HTTP {response.status_code}"
            )

        return response.text

    async def fetch_threads(
        self, source_id: str, categories: list[Category]
    ) -> dict[Category, list[dict]]:
        """Fetch and decode annotations per category."""
        body = await self.fetch_raw(source_id, categories)
        arguments = self.decoder.decode(body)

        threads = {
            category: self.decoder.locate_slot(arguments, _slot_id(index))
            for index, category in enumerate(categories)
        }

        self.log.debug(
            "threads_decoded",
            source_id=source_id,
            **{category.value: len(annotations) for category, annotations in threads.items()},
        )
        return threads


def _slot_id(index: int) -> str:
    return str(index)
