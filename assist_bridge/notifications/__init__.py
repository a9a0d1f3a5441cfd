"""Outbound operator notifications."""

from .base import NotificationError, Notifier
from .slack import SlackNotifier, build_ticket_blocks

__all__ = ["NotificationError", "Notifier", "SlackNotifier", "build_ticket_blocks"]
