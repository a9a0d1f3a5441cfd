"""Create, wait on and resolve assist tickets."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from opentelemetry import trace

from assist_bridge.notifications.base import NotificationError, Notifier

from .models import AssistRequest, Ticket, WaitResult, WaitStatus
from .state import TicketStateMachine, TicketStatus
from .store import TicketStore, WaiterAlreadyAttachedError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TicketCoordinator:
    """Orchestrates the ticket lifecycle between caller and operator.

    The coordinator owns no state of its own beyond in-flight notification
    tasks; every ticket mutation goes through the injected :class:`TicketStore`.
    """

    def __init__(
        self,
        store: TicketStore,
        notifier: Notifier,
        *,
        default_timeout: float = 60.0,
        min_timeout: float = 1.0,
        max_timeout: float = 120.0,
    ) -> None:
        if not 0 <= min_timeout <= default_timeout <= max_timeout:
            raise ValueError("Expected 0 <= min_timeout <= default_timeout <= max_timeout")
        self.store = store
        self.notifier = notifier
        self.default_timeout = default_timeout
        self.min_timeout = min_timeout
        self.max_timeout = max_timeout
        self._notifications: set[asyncio.Task[None]] = set()

    def clamp_timeout(self, value: Any = None) -> float:
        """Bound a caller supplied timeout in seconds.

        Missing or unparseable values fall back to the default.
        """
        if value is None or value == "":
            return self.default_timeout
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            return self.default_timeout
        if math.isnan(seconds):
            return self.default_timeout
        return min(self.max_timeout, max(self.min_timeout, seconds))

    async def create_ticket(self, request: AssistRequest | None = None) -> Ticket:
        with tracer.start_as_current_span("tickets.create") as span:
            ticket = Ticket(
                id=str(uuid4()),
                created_at=datetime.now(timezone.utc),
                signal=asyncio.get_running_loop().create_future(),
                request=request or AssistRequest(),
                status=TicketStateMachine.initial_state(),
            )
            self.store.add(ticket)
            span.set_attribute("ticket.id", ticket.id)
            logger.info(
                "Created assist ticket %s (conversation=%s)", ticket.id, ticket.request.conversation_id
            )

        task = asyncio.create_task(self._notify(ticket), name=f"notify-{ticket.id}")
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)
        return ticket

    async def _notify(self, ticket: Ticket) -> None:
        with tracer.start_as_current_span("tickets.notify") as span:
            span.set_attribute("ticket.id", ticket.id)
            try:
                await self.notifier.notify(ticket)
            except NotificationError as exc:
                span.record_exception(exc)
                logger.error("Failed to notify operators about ticket %s: %s", ticket.id, exc)
            except Exception as exc:
                span.record_exception(exc)
                logger.exception("Unexpected notifier failure for ticket %s", ticket.id)

    async def wait(self, ticket_id: str, timeout: Any = None) -> WaitResult:
        """Suspend until ``ticket_id`` is answered or the timeout elapses."""

        seconds = self.clamp_timeout(timeout)
        with tracer.start_as_current_span("tickets.wait") as span:
            span.set_attribute("ticket.id", ticket_id)
            span.set_attribute("ticket.wait_timeout", seconds)
            try:
                ticket = self.store.attach_waiter(ticket_id)
            except WaiterAlreadyAttachedError:
                logger.warning("Rejected second waiter for ticket %s", ticket_id)
                return WaitResult(WaitStatus.CONFLICT)
            if ticket is None:
                return WaitResult(WaitStatus.NOT_FOUND)

            try:
                answer = await asyncio.wait_for(asyncio.shield(ticket.signal), timeout=seconds)
            except asyncio.TimeoutError:
                self.store.expire(ticket_id)
                if ticket.status is TicketStatus.RESOLVED and ticket.answer is not None:
                    span.set_attribute("ticket.outcome", WaitStatus.ANSWERED.value)
                    return WaitResult.answered(ticket.answer)
                logger.info("Ticket %s timed out after %.1fs", ticket_id, seconds)
                span.set_attribute("ticket.outcome", WaitStatus.TIMEOUT.value)
                return WaitResult(WaitStatus.TIMEOUT)
            except asyncio.CancelledError:
                self.store.detach_waiter(ticket_id)
                logger.info("Waiter for ticket %s went away", ticket_id)
                raise

            self.store.discard(ticket_id)
            span.set_attribute("ticket.outcome", WaitStatus.ANSWERED.value)
            return WaitResult.answered(answer)

    def resolve(self, ticket_id: str, answer: str, *, actor: str | None = None) -> bool:
        """Deliver ``answer`` to ``ticket_id``.

        Returns False for unknown, expired or already answered tickets.
        """
        with tracer.start_as_current_span("tickets.resolve") as span:
            span.set_attribute("ticket.id", ticket_id)
            ticket = self.store.resolve(ticket_id, answer, actor=actor)
            if ticket is None:
                logger.info("Ignored answer for unknown or closed ticket %s", ticket_id)
                return False
            if not ticket.waiting:
                logger.info("Buffered early answer for ticket %s", ticket_id)
            logger.info("Ticket %s answered by %s", ticket_id, actor or "unknown")
            return True

    def sweep(self, max_age: float) -> int:
        """Drop tickets older than ``max_age`` seconds that nobody waits on."""

        cutoff = datetime.now(timezone.utc) - timedelta(seconds=max_age)
        purged = self.store.purge_stale(cutoff)
        if purged:
            logger.info("Purged %d stale tickets", len(purged))
        return len(purged)

    async def run_sweeper(self, *, interval: float, max_age: float) -> None:
        """Periodically purge stale tickets until cancelled."""

        while True:
            await asyncio.sleep(interval)
            self.sweep(max_age)

    async def flush_notifications(self) -> None:
        if self._notifications:
            await asyncio.gather(*list(self._notifications))

    async def aclose(self) -> None:
        for task in list(self._notifications):
            task.cancel()
        await asyncio.gather(*list(self._notifications), return_exceptions=True)
        self._notifications.clear()
