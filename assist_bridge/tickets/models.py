from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .state import TicketStatus


@dataclass(slots=True)
class AssistRequest:
    """Question raised by the voice agent for a human operator."""

    conversation_id: str | None = None
    lang: str | None = None
    question: str = ""
    context: Any = None


@dataclass(slots=True)
class Ticket:
    """Correlation record for one outstanding caller question.

    ``signal`` is the ticket's one-shot resolution slot: the waiter awaits it
    and a resolution sets its result exactly once.
    """

    id: str
    created_at: datetime
    signal: asyncio.Future[str] = field(repr=False)
    request: AssistRequest = field(default_factory=AssistRequest)
    status: TicketStatus = TicketStatus.PENDING
    answer: str | None = None
    resolved_by: str | None = None
    waiting: bool = False


class WaitStatus(str, Enum):
    """Outcomes reported to a caller waiting on a ticket."""

    ANSWERED = "answered"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class WaitResult:
    status: WaitStatus
    answer: str | None = None

    @classmethod
    def answered(cls, answer: str) -> "WaitResult":
        return cls(WaitStatus.ANSWERED, answer)

    def as_payload(self) -> dict[str, str]:
        payload = {"status": self.status.value}
        if self.answer is not None:
            payload["answer"] = self.answer
            payload["answer_en"] = self.answer
        return payload
