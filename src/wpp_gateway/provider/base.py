"""Outbound provider contract."""

from __future__ import annotations

import abc
from typing import Any

from wpp_gateway.errors import ProviderRejectedError, ProviderUnavailableError


class ProviderCallError(Exception):
    """A provider call failed at the transport or HTTP level.

    Attributes:
        status_code: Provider HTTP status, None for transport failures.
        body: Decoded provider response body, if any.
        dispatched: False only when the request provably never left the
            gateway (connection refused, connect timeout, pool exhausted).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        dispatched: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
        self.dispatched = dispatched

    @property
    def rejected_status(self) -> int | None:
        """The provider status when it is a 4xx rejection, else None."""
        if self.status_code is not None and 400 <= self.status_code < 500:
            return self.status_code
        return None

    @property
    def is_rejection(self) -> bool:
        return self.rejected_status is not None


def provider_failure(
    exc: ProviderCallError, session: str | None = None
) -> ProviderRejectedError | ProviderUnavailableError:
    """Classify a provider exception into the gateway error taxonomy."""
    rejected = exc.rejected_status
    if rejected is not None:
        return ProviderRejectedError(
            message="provider rejected the request",
            provider_status=rejected,
            provider_body=exc.body,
            session=session,
        )
    return ProviderUnavailableError(
        message=f"provider unavailable: {exc.message}",
        session=session,
        provider_status=exc.status_code,
    )


class ProviderGateway(abc.ABC):
    """WPPConnect-compatible session and messaging API.

    Every method raises ``ProviderCallError`` on failure; successful
    calls return the provider's decoded body unchanged.
    """

    @abc.abstractmethod
    async def generate_token(self, session: str) -> str:
        """Mint a bearer token for ``session`` using the server secret."""

    @abc.abstractmethod
    async def start_session(self, session: str, token: str) -> dict[str, Any]:
        """Start (or resume) the session without waiting for a QR scan."""

    @abc.abstractmethod
    async def status_session(self, session: str, token: str) -> dict[str, Any]: ...

    @abc.abstractmethod
    async def check_connection(self, session: str, token: str) -> bool: ...

    @abc.abstractmethod
    async def qrcode_image(self, session: str, token: str) -> bytes:
        """Current QR code as PNG bytes."""

    @abc.abstractmethod
    async def logout_session(self, session: str, token: str) -> None: ...

    @abc.abstractmethod
    async def close_session(self, session: str, token: str) -> None: ...

    @abc.abstractmethod
    async def send(
        self, session: str, token: str, endpoint: str, body: dict[str, Any]
    ) -> Any:
        """POST ``body`` to the session-scoped send ``endpoint``."""

    @abc.abstractmethod
    async def all_unread_messages(self, session: str, token: str) -> Any: ...

    @abc.abstractmethod
    async def all_messages_in_chat(
        self, session: str, token: str, phone: str
    ) -> Any: ...

    async def aclose(self) -> None:  # noqa: B027
        """Release transport resources."""
