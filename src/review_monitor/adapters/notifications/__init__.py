"""Notification transports."""

from review_monitor.adapters.notifications.email_transport import EmailTransport
from review_monitor.adapters.notifications.slack_transport import SlackTransport

__all__ = ["EmailTransport", "SlackTransport"]
