"""Slack ``chat.postMessage`` notifier for new assist tickets."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from assist_bridge.tickets.models import Ticket

from .base import NotificationError

logger = logging.getLogger(__name__)


def build_ticket_blocks(ticket: Ticket, *, answer_command: str = "/answer") -> list[dict[str, Any]]:
    """Return the Block Kit layout posted for ``ticket``."""

    request = ticket.request
    details = json.dumps(
        {"conversation_id": request.conversation_id, "context": request.context},
        indent=2,
        ensure_ascii=False,
        default=str,
    )
    return [
        {"type": "header", "text": {"type": "plain_text", "text": f"Assist: {ticket.id}"}},
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Lang:* {request.lang}\n*Q:* {request.question}"},
        },
        {"type": "section", "text": {"type": "mrkdwn", "text": f"```{details}```"}},
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"Reply in Slack with: `{answer_command} {ticket.id} your answer`",
                }
            ],
        },
    ]


class SlackNotifier:
    """Post new-ticket alerts to a Slack channel with a bot token."""

    def __init__(
        self,
        *,
        token: str,
        channel: str,
        api_url: str = "https://slack.com/api",
        answer_command: str = "/answer",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._channel = channel
        self._answer_command = answer_command
        self._client = client or httpx.AsyncClient(base_url=api_url.rstrip("/"), timeout=timeout)

    def build_payload(self, ticket: Ticket) -> dict[str, Any]:
        return {
            "channel": self._channel,
            "text": f"Assist ticket {ticket.id}",
            "blocks": build_ticket_blocks(ticket, answer_command=self._answer_command),
        }

    async def notify(self, ticket: Ticket) -> None:
        try:
            response = await self._client.post(
                "/chat.postMessage",
                json=self.build_payload(ticket),
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Slack request failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotificationError(f"Slack API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise NotificationError("Slack API returned a non-JSON body") from exc

        if not data.get("ok"):
            raise NotificationError(f"Slack post error: {data.get('error', 'unknown_error')}")
        logger.debug("Posted assist ticket %s to Slack channel %s", ticket.id, self._channel)

    async def aclose(self) -> None:
        await self._client.aclose()
