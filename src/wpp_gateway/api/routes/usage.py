"""Quota usage report."""

from __future__ import annotations

from fastapi import APIRouter

from wpp_gateway.api.deps import CallerDep, PipelineDep
from wpp_gateway.api.responses import unwrap
from wpp_gateway.api.schemas import UsageResponse

router = APIRouter(tags=["usage"])


@router.get("/usage")
async def usage(caller: CallerDep, pipeline: PipelineDep) -> UsageResponse:
    """Today's account usage and per-session anti-block counters."""
    report = unwrap(await pipeline.usage(caller))
    return UsageResponse.from_report(report)
