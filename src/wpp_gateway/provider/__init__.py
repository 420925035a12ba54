"""Outbound client for the WhatsApp automation provider."""

from wpp_gateway.provider.base import (
    ProviderCallError,
    ProviderGateway,
    provider_failure,
)
from wpp_gateway.provider.wppconnect import WppConnectClient

__all__ = [
    "ProviderCallError",
    "ProviderGateway",
    "WppConnectClient",
    "provider_failure",
]
