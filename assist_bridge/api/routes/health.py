from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness check", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"
