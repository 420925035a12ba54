"""HTTP client wired to an in-memory pipeline."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from wpp_gateway.api.app import app
from wpp_gateway.api.deps import get_pipeline
from wpp_gateway.pipeline import RequestPipeline


@pytest.fixture()
async def client(pipeline: RequestPipeline) -> AsyncGenerator[AsyncClient]:
    """AsyncClient whose routes run against the unit-test pipeline."""
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
