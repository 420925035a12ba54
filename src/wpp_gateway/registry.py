"""Session registry: phone-to-provider-session mapping and lifecycle.

The registry owns every write to session records. Methods return the
updated ``Session`` (or provider payload) on success and a
``GatewayError`` value on failure; provider exceptions are classified
here and never escape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from wpp_gateway.errors import (
    AuthorizationError,
    GatewayError,
    ProviderUnavailableError,
    SessionStateError,
    SessionStateReason,
)
from wpp_gateway.models.account import Account
from wpp_gateway.models.session import (
    LifecycleState,
    Session,
    normalize_phone,
    session_name_for,
)
from wpp_gateway.provider.base import (
    ProviderCallError,
    ProviderGateway,
    provider_failure,
)
from wpp_gateway.storage.base import PhoneAlreadyBoundError, SessionStore

logger = structlog.get_logger()

# One retry covers the lost-insert race; a second loss means a real conflict.
_CREATE_ATTEMPTS = 2

# Keys a WPPConnect body uses to report the connection itself.
_STATE_FIELDS = ("status", "state")


def _reports_connected(response: Any) -> bool:
    """True only for an explicit connection signal.

    Free text such as ``"Client is not connected"`` never counts.
    """
    if isinstance(response, str):
        return response.strip().upper() == LifecycleState.CONNECTED
    if not isinstance(response, dict):
        return False
    for field in _STATE_FIELDS:
        value = response.get(field)
        if isinstance(value, str) and value.strip().upper() == LifecycleState.CONNECTED:
            return True
    if response.get("connected") is True:
        return True
    nested = response.get("response")
    return isinstance(nested, dict) and _reports_connected(nested)


def map_provider_state(response: Any) -> str:
    """Derive a lifecycle state from a raw provider response.

    Precedence:
        1. non-empty ``qrcode`` or ``urlcode`` -> QRCODE
        2. ``status``/``state`` equal to CONNECTED, or ``connected: true``,
           at the top level or inside ``response`` -> CONNECTED
        3. the provider's ``status`` string, uppercased
        4. UNKNOWN
    """
    if isinstance(response, dict):
        if response.get("qrcode") or response.get("urlcode"):
            return LifecycleState.QRCODE

    if _reports_connected(response):
        return LifecycleState.CONNECTED

    if isinstance(response, dict):
        status = response.get("status")
        if isinstance(status, str) and status.strip():
            return status.strip().upper()
    return LifecycleState.UNKNOWN


@dataclass(frozen=True)
class TeardownResult:
    """Local removal always happens; provider cleanup is reported separately."""

    session: str
    provider_cleanup_ok: bool
    provider_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session,
            "deleted": True,
            "provider_cleanup": "ok" if self.provider_cleanup_ok else "failed",
            "provider_error": self.provider_error,
        }


class SessionRegistry:
    """Brokers session creation, token refresh, start, status and teardown."""

    def __init__(self, sessions: SessionStore, provider: ProviderGateway) -> None:
        self._sessions = sessions
        self._provider = provider

    async def get(self, session_name: str) -> Session | None:
        return await self._sessions.get(session_name)

    async def list_for_owner(self, account: Account) -> list[Session]:
        return await self._sessions.list_for_owner(account.account_key)

    async def assert_ownership(
        self, session_name: str, account: Account
    ) -> Session | GatewayError:
        """Fetch ``session_name`` and check it belongs to ``account``.

        Absent sessions are ``not_found`` (404); sessions owned by anyone
        else are ``authorization`` (403).
        """
        session = await self._sessions.get(session_name)
        if session is None:
            return SessionStateError(
                message="session not found",
                reason=SessionStateReason.NOT_FOUND,
                session=session_name,
            )
        if not session.owned_by(account.account_key):
            return AuthorizationError(
                message="session does not belong to client", session=session_name
            )
        return session

    async def resolve_or_create(
        self,
        account: Account,
        phone: str,
        description: str | None = None,
    ) -> Session | GatewayError:
        """Return the caller's live session for ``phone``, creating one if needed."""
        digits = normalize_phone(phone)
        for _ in range(_CREATE_ATTEMPTS):
            existing = await self._sessions.get_by_phone(digits)
            if existing is not None and not existing.is_terminal:
                if not existing.owned_by(account.account_key):
                    return AuthorizationError(
                        message="phone already registered by another client",
                        phone=digits,
                    )
                if existing.provider_token is None:
                    return await self.refresh_token(existing)
                return existing

            if existing is not None:
                # Terminal sessions free the phone for anyone.
                await self._sessions.delete(existing.session_name)

            try:
                created = await self._sessions.insert(
                    Session(
                        session_name=session_name_for(digits),
                        owner_account_key=account.account_key,
                        phone=digits,
                        description=description,
                        lifecycle_state=LifecycleState.CREATED,
                    )
                )
            except PhoneAlreadyBoundError:
                logger.debug("session_insert_race_lost", phone=digits)
                continue

            logger.info(
                "session_created",
                session=created.session_name,
                account=account.key_prefix,
                phone=digits,
            )
            return await self._mint(created, discard_on_failure=True)

        return AuthorizationError(
            message="phone already registered by another client", phone=digits
        )

    async def refresh_token(self, session: Session) -> Session | GatewayError:
        """Mint a new provider token; the session must be started again."""
        if session.is_terminal:
            return self._terminal(session)
        return await self._mint(session, discard_on_failure=False)

    async def start(self, session: Session) -> dict[str, Any] | GatewayError:
        """Send the start directive and persist the mapped state.

        Returns the provider response unchanged.
        """
        if session.is_terminal:
            return self._terminal(session)
        if session.provider_token is None:
            return self._not_ready(session)
        try:
            response = await self._provider.start_session(
                session.session_name, session.provider_token
            )
        except ProviderCallError as exc:
            return provider_failure(exc, session.session_name)
        await self._transition(session, map_provider_state(response))
        return response

    async def sync_status(self, session: Session) -> dict[str, Any] | GatewayError:
        """Query provider status, persist the mapped state, return body verbatim."""
        if session.provider_token is None:
            return self._not_ready(session)
        try:
            response = await self._provider.status_session(
                session.session_name, session.provider_token
            )
        except ProviderCallError as exc:
            return provider_failure(exc, session.session_name)
        await self._transition(session, map_provider_state(response))
        return response

    async def fetch_qrcode(self, session: Session) -> bytes | GatewayError:
        if session.provider_token is None:
            return self._not_ready(session)
        try:
            return await self._provider.qrcode_image(
                session.session_name, session.provider_token
            )
        except ProviderCallError as exc:
            return provider_failure(exc, session.session_name)

    async def teardown(self, session: Session) -> TeardownResult:
        """Best-effort provider logout/close, then unconditional local removal.

        A failed connection check counts as "not connected"; close is
        always attempted. Cleanup is reported failed if any step failed.
        """
        errors: list[str] = []
        token = session.provider_token
        if token is not None:
            connected = False
            try:
                connected = await self._provider.check_connection(
                    session.session_name, token
                )
            except ProviderCallError as exc:
                errors.append(exc.message)
            if connected:
                try:
                    await self._provider.logout_session(session.session_name, token)
                except ProviderCallError as exc:
                    errors.append(exc.message)
            try:
                await self._provider.close_session(session.session_name, token)
            except ProviderCallError as exc:
                errors.append(exc.message)

        error = "; ".join(errors) or None
        if error is not None:
            logger.warning(
                "provider_cleanup_failed",
                session=session.session_name,
                error=error,
            )

        await self._sessions.delete(session.session_name)
        logger.info(
            "session_deleted",
            session=session.session_name,
            provider_cleanup_ok=error is None,
        )
        return TeardownResult(
            session=session.session_name,
            provider_cleanup_ok=error is None,
            provider_error=error,
        )

    async def _mint(
        self, session: Session, *, discard_on_failure: bool
    ) -> Session | GatewayError:
        try:
            token = await self._provider.generate_token(session.session_name)
        except ProviderCallError as exc:
            if discard_on_failure:
                # Never leave a CREATED row without a token behind.
                await self._sessions.delete(session.session_name)
                return ProviderUnavailableError(
                    message=f"failed to create provider token: {exc.message}",
                    session=session.session_name,
                    provider_status=exc.status_code,
                )
            return provider_failure(exc, session.session_name)

        updated = await self._sessions.update(
            session.session_name,
            lifecycle_state=LifecycleState.TOKEN_CREATED,
            provider_token=token,
        )
        if updated is None:
            return self._not_found(session.session_name)
        self._log_transition(session, updated.lifecycle_state)
        return updated

    async def _transition(self, session: Session, state: str) -> Session | None:
        updated = await self._sessions.update(
            session.session_name, lifecycle_state=state
        )
        self._log_transition(session, state)
        return updated

    @staticmethod
    def _log_transition(session: Session, state: str) -> None:
        if session.lifecycle_state != state:
            logger.info(
                "session_state_changed",
                session=session.session_name,
                previous=str(session.lifecycle_state),
                state=str(state),
            )

    @staticmethod
    def _not_found(session_name: str) -> SessionStateError:
        return SessionStateError(
            message="session not found",
            reason=SessionStateReason.NOT_FOUND,
            session=session_name,
        )

    @staticmethod
    def _not_ready(session: Session) -> SessionStateError:
        return SessionStateError(
            message="session not ready",
            reason=SessionStateReason.NOT_READY,
            session=session.session_name,
            state=str(session.lifecycle_state),
        )

    @staticmethod
    def _terminal(session: Session) -> SessionStateError:
        return SessionStateError(
            message="session is closed",
            reason=SessionStateReason.TERMINAL,
            session=session.session_name,
            state=str(session.lifecycle_state),
        )

    def readiness(self, session: Session) -> SessionStateError | None:
        """None when the session may send or receive right now."""
        if session.is_terminal:
            return self._terminal(session)
        if not session.is_ready:
            return self._not_ready(session)
        return None

    def ready_token(self, session: Session) -> str | SessionStateError:
        """Provider token of a session that may send or receive right now."""
        not_ready = self.readiness(session)
        if not_ready is not None:
            return not_ready
        if session.provider_token is None:
            return self._not_ready(session)
        return session.provider_token
