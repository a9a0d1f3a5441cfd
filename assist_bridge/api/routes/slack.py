from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from assist_bridge.core.config import Settings
from assist_bridge.dependencies.slack import SlackPayload, get_app_settings
from assist_bridge.dependencies.tickets import TicketCoordinatorDep
from assist_bridge.tickets.commands import parse_answer_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"], default_response_class=PlainTextResponse)


@router.post("/command")
async def slash_command(
    payload: SlackPayload,
    coordinator: TicketCoordinatorDep,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> str:
    answer_command = settings.slack_answer_command
    if payload.get("command") != answer_command:
        logger.info("Ignored unknown Slack command %r", payload.get("command"))
        return "Unknown command."

    parsed = parse_answer_text(payload.get("text"))
    if parsed.ticket_id and not parsed.answer:
        return f"Usage: {answer_command} <ticket_id> <answer>"

    user_name = payload.get("user_name", "")
    if not parsed.ticket_id or not coordinator.resolve(parsed.ticket_id, parsed.answer, actor=user_name):
        return f"Ticket not found or expired: {parsed.ticket_id}"
    return f"Sent to caller for {parsed.ticket_id} (from {user_name})."


@router.post("/interact")
async def interaction(_: SlackPayload) -> str:
    return "ok"
