"""Turn inbound headers into one authenticated account."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from wpp_gateway.auth.schemes import (
    CredentialScheme,
    InternalKeyScheme,
    PartnerProxyScheme,
)
from wpp_gateway.config import Settings
from wpp_gateway.errors import AuthorizationError, CredentialError
from wpp_gateway.models.account import Account
from wpp_gateway.storage.base import AccountStore

logger = structlog.get_logger()


class CredentialResolver:
    """Ordered chain of credential schemes; the first answer wins."""

    def __init__(self, schemes: Sequence[CredentialScheme]) -> None:
        self._schemes = list(schemes)

    @property
    def schemes(self) -> list[CredentialScheme]:
        return list(self._schemes)

    async def resolve(self, headers: Mapping[str, str]) -> Account | CredentialError:
        normalized = {k.lower(): v for k, v in headers.items()}
        for scheme in self._schemes:
            outcome = await scheme.resolve(normalized)
            if outcome is None:
                continue
            if isinstance(outcome, CredentialError):
                logger.info(
                    "credential_rejected", scheme=scheme.name, error=outcome.message
                )
                return outcome
            logger.debug(
                "account_resolved",
                scheme=scheme.name,
                account=outcome.key_prefix,
                source_kind=str(outcome.source_kind),
            )
            return outcome
        return CredentialError(message="missing credentials")


def require_admin(account: Account) -> AuthorizationError | None:
    """Admin routes accept ADMIN accounts only."""
    if account.is_admin:
        return None
    return AuthorizationError(message="admin privileges required")


def build_resolver(settings: Settings, accounts: AccountStore) -> CredentialResolver:
    """Assemble the scheme chain from settings.

    The partner-proxy scheme is left out while no proxy secret is configured.
    """
    schemes: list[CredentialScheme] = []
    if settings.partner_proxy_secret is not None:
        schemes.append(
            PartnerProxyScheme(
                accounts,
                secret=settings.partner_proxy_secret.get_secret_value(),
                secret_header=settings.partner_secret_header,
                user_header=settings.partner_user_header,
            )
        )
    schemes.append(InternalKeyScheme(accounts, header=settings.api_key_header))
    return CredentialResolver(schemes)
