"""
Usage provider adapters.

Adapters are registered by provider identifier. Adding a provider means
adding a UsageProvider subclass here, never branching in the fetcher.
"""

from typing import TYPE_CHECKING, Dict, Mapping, Optional

import requests

from .ausgrid import AusgridProvider
from .base import (
    HttpUsageProvider,
    PermanentError,
    RawResponse,
    TransientError,
    UsageProvider,
)
from .jemena import JemenaProvider

if TYPE_CHECKING:
    from utility_bill.config.loader import ProviderConfig

PROVIDER_CLASSES = {
    AusgridProvider.provider_id: AusgridProvider,
    JemenaProvider.provider_id: JemenaProvider,
}


def build_provider_registry(
    providers: Mapping[str, "ProviderConfig"],
    session: Optional[requests.Session] = None
) -> Dict[str, UsageProvider]:
    """Create one adapter per configured provider.

    Args:
        providers: Provider settings keyed by provider identifier
        session: Optional HTTP session shared by every adapter

    Returns:
        Mapping of provider identifier to adapter instance

    Raises:
        ValueError: If a provider identifier has no adapter
    """
    registry: Dict[str, UsageProvider] = {}
    for provider_id, settings in providers.items():
        if provider_id not in PROVIDER_CLASSES:
            raise ValueError(f"Unsupported provider: {provider_id}")
        registry[provider_id] = PROVIDER_CLASSES[provider_id](
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            session=session
        )
    return registry


__all__ = [
    "AusgridProvider",
    "HttpUsageProvider",
    "JemenaProvider",
    "PermanentError",
    "PROVIDER_CLASSES",
    "RawResponse",
    "TransientError",
    "UsageProvider",
    "build_provider_registry",
]
