"""Slack notification transport."""

import re
from typing import Optional

import httpx
import structlog

from review_monitor.core import DeliveryError, Notification, NotificationTransport


class SlackTransport(NotificationTransport):
    """Send notifications to Slack via webhook."""

    def __init__(
        self,
        webhook_url: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.log = logger or structlog.stdlib.get_logger()

    def _convert_html_to_mrkdwn(self, text: str) -> str:
        """Convert rendered HTML body to Slack mrkdwn format.

        Args:
            text: HTML text

        Returns:
            Text in Slack mrkdwn format
        """
        # Links <a href="url">text</a> to <url|text>
        text = re.sub(r'<a\s+[^>]*href="([^"]+)"[^>]*>(.*?)</a>', r'<\1|\2>', text)

        # Bold and italic
        text = re.sub(r'</?(b|strong)>', '*', text)
        text = re.sub(r'</?(i|em)>', '_', text)

        # Line breaks and paragraphs
        text = re.sub(r'<br\s*/?>|</p>', '\n', text)
        text = re.sub(r'<(?!https?://)[^>|]+>', '', text)

        # Slack expects &lt; &gt; &amp; to stay escaped in message text
        text = text.replace('&#39;', "'").replace('&#34;', '"').replace('&quot;', '"')

        return text.strip()

    async def send(self, notification: Notification) -> None:
        message = f"*{notification.subject}*\n\n{self._convert_html_to_mrkdwn(notification.body)}"

        payload = {
            "text": message,
            "mrkdwn": True,
        }

        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise DeliveryError(f"Slack delivery failed: {e}") from e

        self.log.debug("slack_message_sent")
