from __future__ import annotations

import asyncio
import contextlib
from unittest.mock import MagicMock

import pytest

from aws_account_mcp.app import AppContext
from aws_account_mcp.aws_credentials import CredentialSet, Resolved
from aws_account_mcp.aws_credentials.resolver import SOURCE_ENVIRONMENT
from aws_account_mcp.config import AWSSettings, Settings
from aws_account_mcp.execution.cache import TTLCache
from aws_account_mcp.profiles import ProfileStore


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


class FakeClientFactory:
    """Hands out one MagicMock client per capability and records every lookup."""

    def __init__(self) -> None:
        self.clients: dict[str, MagicMock] = {}
        self.lookups: list[tuple[str, str, str]] = []
        self.evicted: list[str | None] = []

    def client(self, capability: str) -> MagicMock:
        return self.clients.setdefault(capability, MagicMock(name=capability))

    def get_client(self, capability, region, credentials, identity):
        self.lookups.append((capability, region, identity))
        return self.client(capability)

    def evict(self, identity: str | None = None) -> int:
        self.evicted.append(identity)
        return 0


class StaticResolver:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.calls: list[tuple[str | None, str | None]] = []

    async def resolve_async(self, profile=None, region=None):
        self.calls.append((profile, region))
        return self.outcome


def resolved(source: str = SOURCE_ENVIRONMENT, profile_name: str | None = None) -> Resolved:
    return Resolved(
        credentials=CredentialSet("AKIAEXAMPLE12345", "secret-key"),
        source=source,
        region="us-east-1",
        profile_name=profile_name,
    )


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def resolver() -> StaticResolver:
    return StaticResolver(resolved())


@pytest.fixture
def app_context(tmp_path, factory, resolver) -> AppContext:
    settings = Settings(aws=AWSSettings(profile_store_path=str(tmp_path / "profiles.json")))
    store = ProfileStore(settings.aws.profile_store_path)
    cache = TTLCache(ttl_seconds=300)

    def _on_profile_change(name: str) -> None:
        factory.evict(name)
        cache.invalidate_identity(name)

    store.subscribe(_on_profile_change)
    return AppContext(
        settings=settings,
        profile_store=store,
        credential_resolver=resolver,  # type: ignore[arg-type]
        client_factory=factory,  # type: ignore[arg-type]
        result_cache=cache,
    )
