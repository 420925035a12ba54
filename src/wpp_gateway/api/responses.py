"""Translate core result values into HTTP responses."""

from __future__ import annotations

from typing import TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse

from wpp_gateway.errors import GatewayError

T = TypeVar("T")


class GatewayErrorResult(Exception):
    """Carries a ``GatewayError`` value out of a route handler."""

    def __init__(self, error: GatewayError) -> None:
        super().__init__(error.message)
        self.error = error


def unwrap(result: T | GatewayError) -> T:
    """Return the success value or abort the route with its error.

    Raises:
        GatewayErrorResult: ``result`` is a classified failure.
    """
    if isinstance(result, GatewayError):
        raise GatewayErrorResult(result)
    return result


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_body())


async def gateway_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render ``{"error", "kind", ...context}`` with the mapped status."""
    if not isinstance(exc, GatewayErrorResult):
        raise exc
    return error_response(exc.error)
