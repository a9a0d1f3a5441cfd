from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from assist_bridge.tickets.coordinator import TicketCoordinator


async def get_ticket_coordinator(request: Request) -> TicketCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Ticket coordinator is not configured")
    return coordinator


TicketCoordinatorDep = Annotated[TicketCoordinator, Depends(get_ticket_coordinator)]
