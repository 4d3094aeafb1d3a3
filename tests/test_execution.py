from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from aws_account_mcp.aws_credentials import CredentialSet
from aws_account_mcp.execution.aws_client import ClientFactory, _call_method, call_aws_api_async
from aws_account_mcp.execution.cache import TTLCache
from aws_account_mcp.execution.session import AwsSession

CREDS = CredentialSet("AKIAEXAMPLE12345", "secret")


def _settings(client_ttl: int = 3600, client_max: int = 256) -> SimpleNamespace:
    return SimpleNamespace(
        execution=SimpleNamespace(sdk_timeout_seconds=30, max_attempts=3),
        cache=SimpleNamespace(client_ttl_seconds=client_ttl, client_max_entries=client_max),
    )


@pytest.fixture
def boto_session():
    with patch("aws_account_mcp.execution.aws_client.boto3.Session") as mock_session_cls:
        mock_session_cls.return_value.client.side_effect = lambda *args, **kwargs: MagicMock()
        yield mock_session_cls


def test_get_client_is_cached_per_capability_region_and_identity(boto_session: MagicMock) -> None:
    factory = ClientFactory(_settings())

    first = factory.get_client("s3", "us-east-1", CREDS, "Environment Variables:default")
    second = factory.get_client("s3", "us-east-1", CREDS, "Environment Variables:default")
    other_region = factory.get_client("s3", "eu-west-1", CREDS, "Environment Variables:default")
    other_identity = factory.get_client("s3", "us-east-1", CREDS, "MCP Profile:dev")

    assert first is second
    assert other_region is not first
    assert other_identity is not first
    assert boto_session.call_count == 3
    kwargs = boto_session.call_args.kwargs
    assert kwargs["aws_access_key_id"] == "AKIAEXAMPLE12345"
    assert kwargs["region_name"] == "us-east-1"


def test_rotated_keys_never_reuse_a_client(boto_session: MagicMock) -> None:
    factory = ClientFactory(_settings())

    first = factory.get_client("ec2", "us-east-1", CREDS, "MCP Profile:dev")
    rotated = factory.get_client(
        "ec2", "us-east-1", CredentialSet("AKIAEXAMPLE12345", "rotated"), "MCP Profile:dev"
    )

    assert rotated is not first


def test_evict_by_profile_name(boto_session: MagicMock) -> None:
    factory = ClientFactory(_settings())
    factory.get_client("s3", "us-east-1", CREDS, "MCP Profile:dev")
    factory.get_client("ec2", "us-east-1", CREDS, "MCP Profile:dev")
    factory.get_client("s3", "us-east-1", CREDS, "MCP Profile:prod")

    assert factory.evict("dev") == 2
    assert len(factory) == 1
    assert factory.evict() == 1
    assert len(factory) == 0


def test_expired_and_overflow_clients_are_dropped(boto_session: MagicMock) -> None:
    factory = ClientFactory(_settings(client_ttl=10, client_max=2))
    with patch("aws_account_mcp.execution.aws_client.time.monotonic", return_value=100.0):
        first = factory.get_client("s3", "us-east-1", CREDS, "a")
    with patch("aws_account_mcp.execution.aws_client.time.monotonic", return_value=200.0):
        again = factory.get_client("s3", "us-east-1", CREDS, "a")
        factory.get_client("ec2", "us-east-1", CREDS, "a")
        factory.get_client("sts", "us-east-1", CREDS, "a")

    assert again is not first
    assert len(factory) == 2


def test_client_config_uses_execution_settings() -> None:
    config = ClientFactory(_settings()).client_config()

    assert config.read_timeout == 30
    assert config.retries == {"max_attempts": 3, "mode": "standard"}


def test_call_method_strips_response_metadata() -> None:
    client = MagicMock()
    client.describe_things.return_value = {"Things": [1], "ResponseMetadata": {"RequestId": "x"}}

    assert _call_method(client, "describe_things", {}) == {"Things": [1]}


def test_call_method_wraps_non_dict_response() -> None:
    client = MagicMock()
    client.generate_url.return_value = "https://example"

    assert _call_method(client, "generate_url", {}) == {"result": "https://example"}


def test_call_aws_api_async_drops_none_arguments() -> None:
    client = MagicMock()
    client.list_things.return_value = {"Things": []}

    asyncio.run(call_aws_api_async(client, "list_things", MaxResults=None, Prefix="a"))

    client.list_things.assert_called_once_with(Prefix="a")


def test_session_call_routes_through_factory() -> None:
    factory = MagicMock()
    client = MagicMock()
    client.get_caller_identity.return_value = {"Account": "123456789012"}
    factory.get_client.return_value = client
    session = AwsSession(CREDS, "eu-west-1", "Environment Variables:default", factory)

    response = asyncio.run(session.call("sts", "get_caller_identity"))

    assert response == {"Account": "123456789012"}
    factory.get_client.assert_called_once_with(
        "sts", "eu-west-1", CREDS, "Environment Variables:default"
    )
    assert session.with_region("us-east-1").region == "us-east-1"


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_ttl_cache_expires_entries() -> None:
    clock = _Clock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set(("ec2", "id", "us-east-1"), {"count": 1})

    clock.now = 59
    assert cache.get(("ec2", "id", "us-east-1")) == {"count": 1}
    clock.now = 60
    assert cache.get(("ec2", "id", "us-east-1")) is None
    assert len(cache) == 0


def test_ttl_cache_invalidate_by_family() -> None:
    cache = TTLCache(ttl_seconds=60)
    cache.set(("ec2", "a"), 1)
    cache.set(("ec2", "b"), 2)
    cache.set(("rds", "a"), 3)

    assert cache.invalidate("ec2") == 2
    assert cache.get(("rds", "a")) == 3
    assert cache.invalidate() == 1


def test_ttl_cache_invalidate_identity_matches_profile_name() -> None:
    cache = TTLCache(ttl_seconds=60)
    cache.set(("ec2", "MCP Profile:dev", "us-east-1"), 1)
    cache.set(("ec2", "MCP Profile:prod", "us-east-1"), 2)
    cache.set(("ec2", "MCP Profile:devops", "us-east-1"), 3)

    assert cache.invalidate_identity("dev") == 1
    assert cache.get(("ec2", "MCP Profile:devops", "us-east-1")) == 3


def test_ttl_cache_evicts_least_recently_used() -> None:
    cache = TTLCache(ttl_seconds=60, max_entries=2)
    cache.set(("a",), 1)
    cache.set(("b",), 2)
    cache.get(("a",))
    cache.set(("c",), 3)

    assert cache.get(("b",)) is None
    assert cache.get(("a",)) == 1


def test_ttl_cache_disabled_with_zero_ttl() -> None:
    cache = TTLCache(ttl_seconds=0)
    cache.set(("a",), 1)

    assert cache.enabled is False
    assert cache.get(("a",)) is None
