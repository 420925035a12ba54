"""Per-request orchestration.

Every public method takes the raw inbound headers (or an already
resolved ``Account``), resolves the caller and returns either a
success value or a ``GatewayError``. Send-type calls follow a fixed
order:

    credential -> account quota -> session ownership -> readiness
    -> session quota -> provider -> keep or release reservations

Reservations are released only when the provider call was never
dispatched; once the request may have reached the provider it is billed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import structlog

from wpp_gateway.auth.keys import generate_api_key, hash_api_key
from wpp_gateway.auth.resolver import (
    CredentialResolver,
    build_resolver,
    require_admin,
)
from wpp_gateway.clock import Clock, make_clock
from wpp_gateway.config import Settings
from wpp_gateway.errors import GatewayError, QuotaScope
from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.models.payloads import SendBase
from wpp_gateway.models.session import Session
from wpp_gateway.provider.base import (
    ProviderCallError,
    ProviderGateway,
    provider_failure,
)
from wpp_gateway.quota import QuotaLedger
from wpp_gateway.registry import SessionRegistry, TeardownResult
from wpp_gateway.storage.base import AccountStore
from wpp_gateway.storage.factory import Stores

logger = structlog.get_logger()

Headers = Mapping[str, str]
# Raw inbound headers, or an account already resolved by the HTTP layer.
Caller = Headers | Account


@dataclass(frozen=True)
class SessionUsage:
    session: str
    phone: str
    status: str
    used: int
    limit: int


@dataclass(frozen=True)
class UsageReport:
    date: date
    used: int
    limit: int | None
    sessions: list[SessionUsage] = field(default_factory=list)

    @property
    def remaining(self) -> int | None:
        return None if self.limit is None else max(self.limit - self.used, 0)


@dataclass(frozen=True)
class AccountUsage:
    account: Account
    used_today: int


@dataclass(frozen=True)
class IssuedAccount:
    """A freshly created account together with its one-time raw key."""

    account: Account
    api_key: str


@dataclass
class _Reservations:
    """Quota units held by one request, released together if never dispatched."""

    ledger: QuotaLedger
    today: date
    held: list[tuple[QuotaScope, str]] = field(default_factory=list)

    def add(self, scope: QuotaScope, key: str) -> None:
        self.held.append((scope, key))

    async def release(self) -> None:
        for scope, key in reversed(self.held):
            await self.ledger.release(scope, key, self.today)
        self.held.clear()


class RequestPipeline:
    def __init__(
        self,
        resolver: CredentialResolver,
        ledger: QuotaLedger,
        registry: SessionRegistry,
        provider: ProviderGateway,
        accounts: AccountStore,
    ) -> None:
        self._resolver = resolver
        self._ledger = ledger
        self._registry = registry
        self._provider = provider
        self._accounts = accounts

    @property
    def ledger(self) -> QuotaLedger:
        return self._ledger

    async def authenticate(
        self, caller: Caller, *, admin: bool = False
    ) -> Account | GatewayError:
        if isinstance(caller, Account):
            account = caller
        else:
            resolved = await self._resolver.resolve(caller)
            if isinstance(resolved, GatewayError):
                return resolved
            account = resolved
        if admin:
            denied = require_admin(account)
            if denied is not None:
                return denied
        return account

    # --- Send ---

    async def send(self, caller: Caller, payload: SendBase) -> Any | GatewayError:
        """Forward one send-type payload under both daily quotas."""
        account = await self.authenticate(caller)
        if isinstance(account, GatewayError):
            return account

        today = self._ledger.today()
        reservations = _Reservations(self._ledger, today)

        decision = await self._ledger.check_and_consume(
            QuotaScope.ACCOUNT, account.account_key, account.daily_limit, today
        )
        if not decision.allowed:
            return decision.to_error()
        reservations.add(QuotaScope.ACCOUNT, account.account_key)

        # Nothing below has reached the provider until send() is awaited.
        try:
            prepared = await self._prepare_send(account, payload, reservations)
        except BaseException:
            await reservations.release()
            raise
        if isinstance(prepared, GatewayError):
            await reservations.release()
            return prepared
        session, token, body = prepared

        try:
            response = await self._provider.send(
                session.session_name, token, payload.endpoint, body
            )
        except ProviderCallError as exc:
            if not exc.dispatched:
                await reservations.release()
            return provider_failure(exc, session.session_name)

        logger.info(
            "message_forwarded",
            session=session.session_name,
            endpoint=payload.endpoint,
            account=account.key_prefix,
            to=payload.phone,
        )
        return response

    async def _prepare_send(
        self, account: Account, payload: SendBase, reservations: _Reservations
    ) -> tuple[Session, str, dict[str, Any]] | GatewayError:
        """Ownership, readiness and the session reservation, before dispatch."""
        session = await self._registry.assert_ownership(payload.session, account)
        if isinstance(session, GatewayError):
            return session

        token = self._registry.ready_token(session)
        if isinstance(token, GatewayError):
            return token

        decision = await self._ledger.check_and_consume(
            QuotaScope.SESSION, session.session_name, today=reservations.today
        )
        if not decision.allowed:
            return decision.to_error(session.session_name)
        reservations.add(QuotaScope.SESSION, session.session_name)
        return session, token, payload.provider_body()

    # --- Session management ---

    async def create_session(
        self, caller: Caller, phone: str, description: str | None = None
    ) -> Session | GatewayError:
        account = await self.authenticate(caller)
        if isinstance(account, GatewayError):
            return account
        return await self._registry.resolve_or_create(account, phone, description)

    async def start_session(
        self, caller: Caller, session_name: str
    ) -> dict[str, Any] | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        return await self._registry.start(session)

    async def refresh_token(
        self, caller: Caller, session_name: str
    ) -> Session | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        return await self._registry.refresh_token(session)

    async def session_status(
        self, caller: Caller, session_name: str
    ) -> dict[str, Any] | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        return await self._registry.sync_status(session)

    async def qrcode(self, caller: Caller, session_name: str) -> bytes | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        return await self._registry.fetch_qrcode(session)

    async def delete_session(
        self, caller: Caller, session_name: str
    ) -> TeardownResult | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        return await self._registry.teardown(session)

    # --- Receive ---

    async def fetch_unread(self, caller: Caller, session_name: str) -> Any:
        ready = await self._connected_session(caller, session_name)
        if isinstance(ready, GatewayError):
            return ready
        session, token = ready
        try:
            return await self._provider.all_unread_messages(
                session.session_name, token
            )
        except ProviderCallError as exc:
            return provider_failure(exc, session.session_name)

    async def fetch_chat(self, caller: Caller, session_name: str, phone: str) -> Any:
        ready = await self._connected_session(caller, session_name)
        if isinstance(ready, GatewayError):
            return ready
        session, token = ready
        try:
            return await self._provider.all_messages_in_chat(
                session.session_name, token, phone
            )
        except ProviderCallError as exc:
            return provider_failure(exc, session.session_name)

    # --- Usage ---

    async def usage(self, caller: Caller) -> UsageReport | GatewayError:
        account = await self.authenticate(caller)
        if isinstance(account, GatewayError):
            return account
        today = self._ledger.today()
        sessions = await self._registry.list_for_owner(account)
        per_session = [
            SessionUsage(
                session=s.session_name,
                phone=s.phone,
                status=str(s.lifecycle_state),
                used=await self._ledger.usage(
                    QuotaScope.SESSION, s.session_name, today
                ),
                limit=self._ledger.session_daily_limit,
            )
            for s in sessions
        ]
        return UsageReport(
            date=today,
            used=await self._ledger.usage(
                QuotaScope.ACCOUNT, account.account_key, today
            ),
            limit=account.daily_limit,
            sessions=per_session,
        )

    # --- Admin ---

    async def create_account(
        self,
        caller: Caller,
        *,
        name: str,
        daily_limit: int | None,
        source_kind: SourceKind = SourceKind.INTERNAL,
    ) -> IssuedAccount | GatewayError:
        admin = await self.authenticate(caller, admin=True)
        if isinstance(admin, GatewayError):
            return admin
        raw_key, key_hash, key_prefix = generate_api_key()
        account = await self._accounts.get_or_create(
            Account(
                account_key=key_hash,
                key_prefix=key_prefix,
                name=name,
                source_kind=source_kind,
                daily_limit=daily_limit,
            )
        )
        logger.info(
            "account_created",
            account=account.key_prefix,
            source_kind=str(source_kind),
            created_by=admin.key_prefix,
        )
        return IssuedAccount(account=account, api_key=raw_key)

    async def list_accounts(
        self, caller: Caller
    ) -> list[AccountUsage] | GatewayError:
        admin = await self.authenticate(caller, admin=True)
        if isinstance(admin, GatewayError):
            return admin
        today = self._ledger.today()
        return [
            AccountUsage(account=a, used_today=a.usage_on(today))
            for a in await self._accounts.list_all()
        ]

    async def ensure_admin(
        self, raw_key: str, name: str = "bootstrap-admin"
    ) -> Account:
        """Make sure an ADMIN account exists for ``raw_key`` (startup bootstrap)."""
        return await self._accounts.get_or_create(
            Account(
                account_key=hash_api_key(raw_key),
                key_prefix=raw_key[:12],
                name=name,
                source_kind=SourceKind.ADMIN,
                daily_limit=None,
            )
        )

    # --- Helpers ---

    async def _owned_session(
        self, caller: Caller, session_name: str
    ) -> Session | GatewayError:
        account = await self.authenticate(caller)
        if isinstance(account, GatewayError):
            return account
        return await self._registry.assert_ownership(session_name, account)

    async def _connected_session(
        self, caller: Caller, session_name: str
    ) -> tuple[Session, str] | GatewayError:
        session = await self._owned_session(caller, session_name)
        if isinstance(session, GatewayError):
            return session
        token = self._registry.ready_token(session)
        if isinstance(token, GatewayError):
            return token
        return session, token


def build_pipeline(
    settings: Settings,
    stores: Stores,
    provider: ProviderGateway,
    clock: Clock | None = None,
) -> RequestPipeline:
    """Wire resolver, ledger and registry over one set of stores."""
    ledger = QuotaLedger(
        stores.accounts,
        stores.session_counters,
        session_daily_limit=settings.session_daily_limit,
        clock=clock or make_clock(settings.quota_timezone),
    )
    return RequestPipeline(
        resolver=build_resolver(settings, stores.accounts),
        ledger=ledger,
        registry=SessionRegistry(stores.sessions, provider),
        provider=provider,
        accounts=stores.accounts,
    )
