"""Tests for FastAPI bootstrap: health, CORS-free errors, exception handlers."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from tests.unit.fakes import Factory
from wpp_gateway.config import StorageBackend, settings


class TestHealth:
    async def test_memory_backend_healthy(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The in-memory backend reports ok without touching a database."""
        monkeypatch.setattr(settings, "storage_backend", StorageBackend.MEMORY)
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["checks"] == {"store": "ok"}
        assert "timestamp" in body

    async def test_store_timeout_degrades(self, client: AsyncClient) -> None:
        with patch(
            "wpp_gateway.api.app._check_store",
            AsyncMock(side_effect=TimeoutError()),
        ):
            response = await client.get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["store"] == "error: TimeoutError"

    async def test_database_error_degrades(self, client: AsyncClient) -> None:
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        with patch(
            "wpp_gateway.api.app._check_store", AsyncMock(side_effect=error)
        ):
            response = await client.get("/health")
        assert response.status_code == 503
        assert response.json()["checks"]["store"] == "error: OperationalError"


class TestErrorBodies:
    async def test_missing_credentials_body(self, client: AsyncClient) -> None:
        """Every classified failure renders as {error, kind, ...}."""
        response = await client.get("/api/usage")
        assert response.status_code == 401
        assert response.json() == {"error": "missing credentials", "kind": "credential"}

    async def test_validation_error_is_422(
        self, client: AsyncClient, make_account: Factory
    ) -> None:
        _account, headers = await make_account()
        response = await client.post(
            "/api/messages/send", json={"session": "wpp_1"}, headers=headers
        )
        assert response.status_code == 422

    async def test_bad_credentials_win_over_bad_body(
        self, client: AsyncClient
    ) -> None:
        """Credentials are resolved before the body is validated."""
        response = await client.post(
            "/api/messages/send", json={"session": "wpp_1"}, headers={"X-Api-Key": "k"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid api key"

        response = await client.post("/api/sessions", json={"phone": "12"})
        assert response.status_code == 401
        assert response.json()["kind"] == "credential"

    async def test_non_admin_forbidden_before_body_check(
        self, client: AsyncClient, make_account: Factory
    ) -> None:
        _account, headers = await make_account()
        response = await client.post(
            "/admin/accounts", json={"daily_limit": -1}, headers=headers
        )
        assert response.status_code == 403
        assert response.json()["kind"] == "authorization"
