from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for an assist ticket."""

    PENDING = "pending"
    RESOLVED = "resolved"
    EXPIRED = "expired"


class InvalidTicketTransitionError(ValueError):
    """Raised when a ticket is asked to leave a terminal state."""


class TicketStateMachine:
    """Validate ticket lifecycle transitions."""

    _TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.PENDING: {TicketStatus.RESOLVED, TicketStatus.EXPIRED},
        TicketStatus.RESOLVED: set(),
        TicketStatus.EXPIRED: set(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.PENDING

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return not cls._TRANSITIONS.get(status)

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise InvalidTicketTransitionError(
                f"Invalid ticket status transition: {current.value} -> {new.value}"
            )
