"""FastAPI dependency injection."""

from __future__ import annotations

from typing import Annotated, cast

from fastapi import Depends, Request

from wpp_gateway.api.responses import unwrap
from wpp_gateway.models.account import Account
from wpp_gateway.pipeline import RequestPipeline

__all__ = [
    "AdminDep",
    "CallerDep",
    "PipelineDep",
    "get_admin",
    "get_caller",
    "get_pipeline",
]


async def get_pipeline(request: Request) -> RequestPipeline:
    """Retrieve RequestPipeline from app state.

    Initialized during lifespan startup.
    """
    return cast(RequestPipeline, request.app.state.pipeline)


PipelineDep = Annotated[RequestPipeline, Depends(get_pipeline)]


async def get_caller(request: Request, pipeline: PipelineDep) -> Account:
    """Resolve the calling account from request headers.

    Runs before the request body is validated, so a bad credential is
    reported as 401 even when the body is invalid too.

    Raises:
        GatewayErrorResult: No scheme accepted the credentials.
    """
    return unwrap(await pipeline.authenticate(request.headers))


async def get_admin(request: Request, pipeline: PipelineDep) -> Account:
    """Like ``get_caller`` but also requires an ADMIN account (403 otherwise)."""
    return unwrap(await pipeline.authenticate(request.headers, admin=True))


CallerDep = Annotated[Account, Depends(get_caller)]
AdminDep = Annotated[Account, Depends(get_admin)]
