from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from assist_bridge.dependencies.tickets import TicketCoordinatorDep
from assist_bridge.tickets.models import AssistRequest, WaitStatus

router = APIRouter(prefix="/assist", tags=["assist"])


class AssistRequestPayload(BaseModel):
    conversation_id: str | None = Field(default=None)
    lang: str | None = Field(default=None)
    question: str = Field(default="")
    context: Any = Field(default=None)

    def to_request(self) -> AssistRequest:
        return AssistRequest(
            conversation_id=self.conversation_id,
            lang=self.lang,
            question=self.question,
            context=self.context,
        )


class TicketCreatedResponse(BaseModel):
    ticket_id: str


@router.post("/request", response_model=TicketCreatedResponse)
async def create_assist_request(
    coordinator: TicketCoordinatorDep,
    payload: Annotated[AssistRequestPayload | None, Body()] = None,
) -> TicketCreatedResponse:
    payload = payload or AssistRequestPayload()
    ticket = await coordinator.create_ticket(payload.to_request())
    return TicketCreatedResponse(ticket_id=ticket.id)


@router.get("/wait")
async def wait_for_answer(
    coordinator: TicketCoordinatorDep,
    ticket_id: str = Query(...),
    timeout: str | None = Query(default=None, description="Seconds to wait, clamped server side"),
) -> JSONResponse:
    result = await coordinator.wait(ticket_id, timeout)
    status_code = 409 if result.status is WaitStatus.CONFLICT else 200
    return JSONResponse(status_code=status_code, content=result.as_payload())
