from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AnswerCommand:
    """Operator reply parsed from ``<ticket_id> <answer text...>``."""

    ticket_id: str
    answer: str


def parse_answer_text(text: str | None) -> AnswerCommand:
    """Split slash-command text into the ticket id and the answer.

    The answer is the remaining words joined with single spaces.
    """

    tokens = (text or "").split()
    if not tokens:
        return AnswerCommand(ticket_id="", answer="")
    return AnswerCommand(ticket_id=tokens[0], answer=" ".join(tokens[1:]))
