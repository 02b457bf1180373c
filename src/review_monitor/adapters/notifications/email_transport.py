"""SMTP email transport."""

from email.message import EmailMessage
from typing import Optional

import aiosmtplib
import structlog

from review_monitor.config import EmailConfig
from review_monitor.core import DeliveryError, Notification, NotificationTransport


class EmailTransport(NotificationTransport):
    """Send notifications as HTML email."""

    def __init__(
        self,
        config: EmailConfig,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.config = config
        self.log = logger or structlog.stdlib.get_logger()

    def build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message["Subject"] = notification.subject
        message.set_content(notification.body, subtype="html")
        return message

    async def send(self, notification: Notification) -> None:
        message = self.build_message(notification)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.password,
                start_tls=self.config.start_tls,
                use_tls=self.config.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"SMTP delivery to {self.config.host} failed: {e}") from e

        self.log.debug("email_sent", host=self.config.host, recipients=len(self.config.recipients))
