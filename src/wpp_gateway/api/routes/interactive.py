"""Interactive message endpoints: lists, buttons, polls, quick replies."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.models.payloads import ButtonsSend, ListSend, PollSend, ReplySend

router = APIRouter(prefix="/interactive", tags=["interactive"])


@router.post("/send-list")
async def send_list(
    body: ListSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-buttons")
async def send_buttons(
    body: ButtonsSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Legacy button message (1-3 buttons); still accepted by the provider."""
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-poll")
async def send_poll(
    body: PollSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Send a poll with 2-12 choices; single-select unless ``options`` says so."""
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-reply")
async def send_reply(
    body: ReplySend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))
