"""Session lifecycle endpoints."""

from __future__ import annotations

import base64

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.api.schemas import (
    CreateSessionRequest,
    QRCodeBase64Response,
    SessionResponse,
    TeardownResponse,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("")
async def create_session(
    body: CreateSessionRequest,
    caller: CallerDep,
    pipeline: PipelineDep,
) -> SessionResponse:
    """Bind a phone to a provider session for the calling account.

    Idempotent for the owner: repeating the call returns the existing
    session. A phone held by another account is rejected with 403.
    """
    session = unwrap(
        await pipeline.create_session(caller, body.phone, body.description)
    )
    return SessionResponse.from_domain(session)


@router.post("/{session}/start")
async def start_session(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Start the provider session; the provider response is returned as-is."""
    result = unwrap(await pipeline.start_session(caller, session))
    return JSONResponse(content=result)


@router.post("/{session}/refresh-token")
async def refresh_token(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> SessionResponse:
    refreshed = unwrap(await pipeline.refresh_token(caller, session))
    return SessionResponse.from_domain(refreshed)


@router.get("/{session}/status")
async def session_status(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Provider status body, verbatim. Also refreshes the stored state."""
    result = unwrap(await pipeline.session_status(caller, session))
    return JSONResponse(content=result)


@router.get("/{session}/qrcode", response_class=Response)
async def qrcode_png(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> Response:
    image = unwrap(await pipeline.qrcode(caller, session))
    return Response(content=image, media_type="image/png")


@router.get("/{session}/qrcode/base64")
async def qrcode_base64(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> QRCodeBase64Response:
    image = unwrap(await pipeline.qrcode(caller, session))
    return QRCodeBase64Response(
        session=session, base64=base64.b64encode(image).decode("ascii")
    )


@router.delete("/{session}")
async def delete_session(
    session: str, caller: CallerDep, pipeline: PipelineDep
) -> TeardownResponse:
    """Tear down the session and free its phone.

    Provider cleanup is best-effort; the local record is always removed.
    """
    result = unwrap(await pipeline.delete_session(caller, session))
    return TeardownResponse.from_result(result)
