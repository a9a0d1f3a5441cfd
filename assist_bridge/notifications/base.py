from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from assist_bridge.tickets.models import Ticket


class NotificationError(RuntimeError):
    """Raised when the messaging platform rejects or never receives an alert."""


@runtime_checkable
class Notifier(Protocol):
    """Capability used to alert operators about a new ticket."""

    async def notify(self, ticket: "Ticket") -> None:
        """Deliver the alert or raise :class:`NotificationError`."""

    async def aclose(self) -> None:
        """Release any underlying connections."""
