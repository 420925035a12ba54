"""Media send endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.models.payloads import FileSend, ImageSend, StickerSend, VoiceSend

router = APIRouter(prefix="/media", tags=["media"])


@router.post("/send-image")
async def send_image(
    body: ImageSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Send an image from inline ``base64`` or a provider-side ``path``."""
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-file")
async def send_file(
    body: FileSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Send a document; inline uploads require ``filename``."""
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-voice")
async def send_voice(
    body: VoiceSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    """Send a push-to-talk voice note from ``base64Ptt`` or ``path``."""
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))


@router.post("/send-sticker")
async def send_sticker(
    body: StickerSend, caller: CallerDep, pipeline: PipelineDep
) -> JSONResponse:
    return JSONResponse(content=unwrap(await pipeline.send(caller, body)))
