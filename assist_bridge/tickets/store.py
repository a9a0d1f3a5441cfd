"""In-memory registry of assist tickets."""

from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Iterator

from .models import Ticket
from .state import TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)


class TicketServiceError(RuntimeError):
    """Base error for ticket coordination issues."""


class WaiterAlreadyAttachedError(TicketServiceError):
    """Raised when a second waiter tries to attach to a ticket."""


class TicketStore:
    """Registry of live tickets.

    Every method takes the store lock for the duration of a single dict
    operation and never awaits while holding it, so a resolve and an expiry
    racing for the same ticket are serialised and exactly one of them claims
    the terminal transition.
    """

    def __init__(self) -> None:
        self._tickets: dict[str, Ticket] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tickets)

    def __contains__(self, ticket_id: object) -> bool:
        with self._lock:
            return ticket_id in self._tickets

    def __iter__(self) -> Iterator[Ticket]:
        with self._lock:
            return iter(list(self._tickets.values()))

    def add(self, ticket: Ticket) -> None:
        with self._lock:
            if ticket.id in self._tickets:
                raise TicketServiceError(f"Ticket {ticket.id} already exists")
            self._tickets[ticket.id] = ticket

    def get(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            return self._tickets.get(ticket_id)

    def discard(self, ticket_id: str) -> None:
        with self._lock:
            self._tickets.pop(ticket_id, None)

    def attach_waiter(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None:
                return None
            if ticket.waiting:
                raise WaiterAlreadyAttachedError(f"Ticket {ticket_id} already has a waiter")
            ticket.waiting = True
            return ticket

    def detach_waiter(self, ticket_id: str) -> None:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is not None:
                ticket.waiting = False

    def resolve(self, ticket_id: str, answer: str, *, actor: str | None = None) -> Ticket | None:
        """Claim ``PENDING -> RESOLVED`` and fire the ticket's signal.

        A ticket with an attached waiter is removed right away. Without a
        waiter the answer stays buffered in the signal until one attaches.
        """
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            if ticket is None or TicketStateMachine.is_terminal(ticket.status):
                return None
            TicketStateMachine.assert_transition(ticket.status, TicketStatus.RESOLVED)
            ticket.status = TicketStatus.RESOLVED
            ticket.answer = answer
            ticket.resolved_by = actor
            if not ticket.signal.done():
                ticket.signal.set_result(answer)
            if ticket.waiting:
                del self._tickets[ticket_id]
            return ticket

    def expire(self, ticket_id: str) -> Ticket | None:
        """Claim the terminal transition for a waiter whose deadline elapsed.

        Returns the ticket as ``EXPIRED``, or as ``RESOLVED`` when an answer
        committed first. The ticket is removed in both cases.
        """
        with self._lock:
            ticket = self._tickets.pop(ticket_id, None)
            if ticket is None:
                return None
            if ticket.status is TicketStatus.PENDING:
                TicketStateMachine.assert_transition(ticket.status, TicketStatus.EXPIRED)
                ticket.status = TicketStatus.EXPIRED
                ticket.signal.cancel()
            return ticket

    def purge_stale(self, older_than: datetime) -> list[str]:
        """Drop tickets created before ``older_than`` that nobody waits on."""

        purged: list[str] = []
        with self._lock:
            for ticket_id, ticket in list(self._tickets.items()):
                if ticket.waiting or ticket.created_at >= older_than:
                    continue
                if not TicketStateMachine.is_terminal(ticket.status):
                    TicketStateMachine.assert_transition(ticket.status, TicketStatus.EXPIRED)
                    ticket.status = TicketStatus.EXPIRED
                    ticket.signal.cancel()
                del self._tickets[ticket_id]
                purged.append(ticket_id)
        return purged
