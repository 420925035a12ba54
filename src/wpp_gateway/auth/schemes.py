"""Credential scheme strategies.

Each scheme inspects the (lower-cased) request headers and answers with
an ``Account``, a ``CredentialError``, or ``None`` when the scheme does
not apply to this request.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from typing import Protocol

import structlog

from wpp_gateway.auth.keys import hash_api_key, partner_credential
from wpp_gateway.errors import CredentialError
from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.storage.base import AccountStore

logger = structlog.get_logger()

Headers = Mapping[str, str]


class CredentialScheme(Protocol):
    name: str

    async def resolve(self, headers: Headers) -> Account | CredentialError | None: ...


class PartnerProxyScheme:
    """Requests relayed by a partner marketplace proxy.

    The proxy proves its origin with a shared secret header and names the
    end user in a second header. Accounts are provisioned on first sight
    with no daily limit; billing happens on the partner side.
    """

    name = "partner_proxy"

    def __init__(
        self,
        accounts: AccountStore,
        *,
        secret: str,
        secret_header: str = "X-RapidAPI-Proxy-Secret",
        user_header: str = "X-RapidAPI-User",
    ) -> None:
        self._accounts = accounts
        self._secret = secret
        self._secret_header = secret_header.lower()
        self._user_header = user_header.lower()

    async def resolve(self, headers: Headers) -> Account | CredentialError | None:
        presented = headers.get(self._secret_header)
        if presented is None:
            return None
        if not secrets.compare_digest(presented.encode(), self._secret.encode()):
            return CredentialError(message="invalid proxy origin")

        user_id = headers.get(self._user_header, "").strip()
        if not user_id:
            return None

        account_key = hash_api_key(partner_credential(user_id))
        account = await self._accounts.get(account_key)
        if account is not None:
            return account

        account = await self._accounts.get_or_create(
            Account(
                account_key=account_key,
                key_prefix=f"partner_{user_id}"[:32],
                name=f"partner:{user_id}",
                source_kind=SourceKind.PARTNER_PROXY,
                daily_limit=None,
            )
        )
        logger.info(
            "partner_account_provisioned",
            account=account.key_prefix,
            partner_user=user_id,
        )
        return account


class InternalKeyScheme:
    """Gateway-issued API keys (INTERNAL and ADMIN accounts)."""

    name = "internal_key"

    def __init__(self, accounts: AccountStore, *, header: str = "X-Api-Key") -> None:
        self._accounts = accounts
        self._header = header.lower()

    async def resolve(self, headers: Headers) -> Account | CredentialError | None:
        raw_key = headers.get(self._header)
        if not raw_key:
            return None

        account = await self._accounts.get(hash_api_key(raw_key))
        # Partner identities are reachable only through the proxy scheme.
        if account is None or account.source_kind == SourceKind.PARTNER_PROXY:
            return CredentialError(message="invalid api key")
        return account
