"""Credential resolution and API key management."""

from wpp_gateway.auth.keys import generate_api_key, hash_api_key
from wpp_gateway.auth.resolver import CredentialResolver, build_resolver, require_admin

__all__ = [
    "CredentialResolver",
    "build_resolver",
    "generate_api_key",
    "hash_api_key",
    "require_admin",
]
