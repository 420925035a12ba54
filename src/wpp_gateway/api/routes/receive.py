"""Message retrieval endpoints. These do not consume quota."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap

router = APIRouter(prefix="/receive", tags=["receive"])


@router.get("/{session}/unread")
async def unread_messages(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    result = unwrap(await pipeline.fetch_unread(caller, session))
    return JSONResponse(content=result)


@router.get("/{session}/chat/{phone}")
async def chat_messages(
    session: str, phone: str, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    result = unwrap(await pipeline.fetch_chat(caller, session, phone))
    return JSONResponse(content=result)
