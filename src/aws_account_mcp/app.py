"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from aws_account_mcp.aws_credentials import CredentialResolver, default_providers
from aws_account_mcp.config import Settings, load_settings
from aws_account_mcp.execution.aws_client import ClientFactory
from aws_account_mcp.execution.cache import TTLCache
from aws_account_mcp.profiles import ProfileStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide collaborators, constructed once and passed to every tool call."""

    settings: Settings
    profile_store: ProfileStore
    credential_resolver: CredentialResolver
    client_factory: ClientFactory
    result_cache: TTLCache


def build_app_context(settings: Settings | None = None) -> AppContext:
    settings = settings or load_settings()
    profile_store = ProfileStore(settings.aws.profile_store_path)
    client_factory = ClientFactory(settings)
    result_cache = TTLCache(
        ttl_seconds=settings.cache.ttl_seconds,
        max_entries=settings.cache.max_entries,
    )

    def _on_profile_change(name: str) -> None:
        client_factory.evict(name)
        result_cache.invalidate_identity(name)

    profile_store.subscribe(_on_profile_change)
    logger.debug("Profile store at %s", profile_store.path)

    return AppContext(
        settings=settings,
        profile_store=profile_store,
        credential_resolver=CredentialResolver(default_providers(profile_store)),
        client_factory=client_factory,
        result_cache=result_cache,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    return build_app_context()
