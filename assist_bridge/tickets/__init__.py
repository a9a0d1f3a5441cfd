"""Ticket correlation between waiting callers and operator answers."""

from .commands import AnswerCommand, parse_answer_text
from .coordinator import TicketCoordinator
from .models import AssistRequest, Ticket, WaitResult, WaitStatus
from .state import InvalidTicketTransitionError, TicketStateMachine, TicketStatus
from .store import TicketServiceError, TicketStore, WaiterAlreadyAttachedError

__all__ = [
    "AnswerCommand",
    "AssistRequest",
    "InvalidTicketTransitionError",
    "Ticket",
    "TicketCoordinator",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketStore",
    "WaitResult",
    "WaitStatus",
    "WaiterAlreadyAttachedError",
    "parse_answer_text",
]
