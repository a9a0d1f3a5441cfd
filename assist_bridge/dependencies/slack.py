from __future__ import annotations

import logging
from typing import Annotated
from urllib.parse import parse_qsl

from fastapi import Depends, HTTPException, Request

from assist_bridge.core.config import Settings, get_settings
from assist_bridge.security.signature import verify_signature

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_HEADER = "X-Slack-Signature"


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


async def verify_slack_request(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict[str, str]:
    """Reject unsigned Slack requests and decode the form body of signed ones.

    The signature is checked against the raw bytes before any decoding.
    """

    raw_body = await request.body()
    valid = verify_signature(
        settings.slack_signing_secret,
        request.headers.get(TIMESTAMP_HEADER),
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
    )
    if not valid:
        logger.warning("Rejected Slack request to %s with bad signature", request.url.path)
        raise HTTPException(status_code=401, detail="bad signature")
    return dict(parse_qsl(raw_body.decode("utf-8", "replace"), keep_blank_values=True))


SlackPayload = Annotated[dict[str, str], Depends(verify_slack_request)]
