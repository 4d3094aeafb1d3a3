from __future__ import annotations

from unittest.mock import patch

import pytest

from aws_account_mcp.app import AppContext, build_app_context, get_app_context
from aws_account_mcp.aws_credentials.resolver import SOURCE_MCP_PROFILE
from aws_account_mcp.config import AWSSettings, CacheSettings, Settings


@pytest.fixture
def clean_context():
    get_app_context.cache_clear()
    yield
    get_app_context.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        aws=AWSSettings(profile_store_path=str(tmp_path / "profiles.json")),
        cache=CacheSettings(ttl_seconds=60, max_entries=8),
    )


def test_build_app_context_wires_collaborators(settings, tmp_path) -> None:
    ctx = build_app_context(settings)

    assert isinstance(ctx, AppContext)
    assert ctx.settings is settings
    assert ctx.profile_store.path == tmp_path / "profiles.json"
    assert ctx.credential_resolver.source_names[0] == SOURCE_MCP_PROFILE
    assert len(ctx.result_cache) == 0


def test_profile_mutation_evicts_clients_and_cached_results(settings) -> None:
    ctx = build_app_context(settings)
    ctx.result_cache.set(("ec2", "MCP Profile:dev", "us-east-1", "list", "{}"), {"count": 0})
    ctx.result_cache.set(("ec2", "MCP Profile:prod", "us-east-1", "list", "{}"), {"count": 1})

    with patch.object(ctx.client_factory, "evict", wraps=ctx.client_factory.evict) as evict:
        ctx.profile_store.create(
            "dev",
            access_key_id="AKIAEXAMPLE12345",
            secret_access_key="secret",
            region="us-east-1",
            environment="dev",
        )

    evict.assert_called_once_with("dev")
    assert len(ctx.result_cache) == 1


@patch("aws_account_mcp.app.load_settings")
def test_get_app_context_is_cached(mock_load_settings, settings, clean_context) -> None:
    mock_load_settings.return_value = settings

    first = get_app_context()
    second = get_app_context()

    assert first is second
    mock_load_settings.assert_called_once()
