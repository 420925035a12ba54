"""Text message endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.models.payloads import TextSend

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/send")
async def send_message(
    body: TextSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Send a text message.

    Counts against the account's daily limit and the session's
    anti-block ceiling. The provider response is returned unchanged.
    """
    result = unwrap(await pipeline.send(caller, body))
    return JSONResponse(content=result)
