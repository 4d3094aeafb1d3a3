from __future__ import annotations

import asyncio

import pytest

from aws_account_mcp.aws_credentials import (
    CredentialProvider,
    CredentialResolver,
    CredentialSet,
    NeedsConfiguration,
    ProviderResult,
    Resolved,
    default_providers,
    resolve_region,
)
from aws_account_mcp.aws_credentials.resolver import (
    SOURCE_ENVIRONMENT,
    SOURCE_MCP_PROFILE,
    SOURCE_SHARED_FILE,
    build_guidance_message,
)
from aws_account_mcp.profiles import ProfileStore

SOURCE_NAMES = ["S1", "S2", "S3", "S4", "S5", "S6"]


@pytest.fixture(autouse=True)
def _clean_aws_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for key in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_PROFILE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "missing-credentials"))
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "missing-config"))


def _raising(name: str) -> CredentialProvider:
    def _load(profile):
        raise RuntimeError(f"{name} exploded")

    return CredentialProvider(name, _load)


def _succeeding(name: str) -> CredentialProvider:
    return CredentialProvider(
        name, lambda profile: ProviderResult.success(CredentialSet(f"AKIA{name}", "secret"))
    )


@pytest.mark.parametrize("winner", range(6))
def test_first_succeeding_source_wins(winner: int) -> None:
    providers = [
        _raising(name) if index < winner else _succeeding(name)
        for index, name in enumerate(SOURCE_NAMES)
    ]

    outcome = CredentialResolver(providers).resolve("ci", "eu-west-1")

    assert isinstance(outcome, Resolved)
    assert outcome.source == SOURCE_NAMES[winner]
    assert outcome.credentials.access_key_id == f"AKIA{SOURCE_NAMES[winner]}"
    assert outcome.region == "eu-west-1"


def test_empty_access_key_counts_as_failure() -> None:
    providers = [
        CredentialProvider("empty", lambda profile: ProviderResult.success(CredentialSet("", "x"))),
        _succeeding("next"),
    ]

    outcome = CredentialResolver(providers).resolve()

    assert isinstance(outcome, Resolved)
    assert outcome.source == "next"


def test_all_sources_failing_returns_guidance_instead_of_raising() -> None:
    providers = [_raising(name) for name in SOURCE_NAMES]

    outcome = CredentialResolver(providers).resolve("ci", "ap-northeast-1")

    assert isinstance(outcome, NeedsConfiguration)
    assert outcome.profile == "ci"
    assert outcome.region == "ap-northeast-1"
    assert [source for source, _ in outcome.attempts] == SOURCE_NAMES
    assert "S3 exploded" in outcome.attempts[2][1]
    assert "aws configure --profile ci" in outcome.guidance_message
    assert "AWS_ACCESS_KEY_ID" in outcome.guidance_message
    assert "aws-manage-profiles" in outcome.guidance_message


def test_provider_returning_non_result_is_skipped() -> None:
    providers = [CredentialProvider("odd", lambda profile: None), _succeeding("ok")]

    outcome = CredentialResolver(providers).resolve()

    assert isinstance(outcome, Resolved)
    assert outcome.source == "ok"


def test_resolve_async_delegates() -> None:
    resolver = CredentialResolver([_succeeding("only")])

    outcome = asyncio.run(resolver.resolve_async(None, "us-west-2"))

    assert isinstance(outcome, Resolved)
    assert outcome.identity == "only:default"


def test_environment_wins_when_store_is_empty(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAENVIRONMENT1")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env-secret")
    store = ProfileStore(tmp_path / "profiles.json")

    outcome = CredentialResolver(default_providers(store)).resolve("ci")

    assert isinstance(outcome, Resolved)
    assert outcome.source == SOURCE_ENVIRONMENT
    assert outcome.identity == f"{SOURCE_ENVIRONMENT}:ci"
    assert outcome.credentials.access_key_id == "AKIAENVIRONMENT1"


def test_store_profile_takes_priority_over_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAENVIRONMENT1")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env-secret")
    store = ProfileStore(tmp_path / "profiles.json")
    store.create(
        "dev",
        access_key_id="AKIASTOREPROFILE",
        secret_access_key="store-secret",
        region="eu-central-1",
        environment="dev",
    )

    outcome = CredentialResolver(default_providers(store)).resolve()

    assert isinstance(outcome, Resolved)
    assert outcome.source == SOURCE_MCP_PROFILE
    assert outcome.profile_name == "dev"
    assert outcome.identity == f"{SOURCE_MCP_PROFILE}:dev"


def test_unknown_store_profile_falls_through_to_shared_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    credentials = tmp_path / "credentials"
    credentials.write_text(
        "[ci]\naws_access_key_id = AKIASHAREDFILE01\naws_secret_access_key = shared-secret\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(credentials))
    store = ProfileStore(tmp_path / "profiles.json")
    store.create(
        "dev",
        access_key_id="AKIASTOREPROFILE",
        secret_access_key="store-secret",
        region="eu-central-1",
        environment="dev",
    )

    outcome = CredentialResolver(default_providers(store)).resolve("ci")

    assert isinstance(outcome, Resolved)
    assert outcome.source == SOURCE_SHARED_FILE
    assert outcome.credentials.access_key_id == "AKIASHAREDFILE01"


def test_default_provider_order(tmp_path) -> None:
    resolver = CredentialResolver(default_providers(ProfileStore(tmp_path / "p.json")))

    assert resolver.source_names == [
        "MCP Profile",
        "Environment Variables",
        "AWS Shared Credentials (~/.aws/credentials)",
        "AWS SSO",
        "Process Credentials",
        "AWS Default Chain",
    ]


def test_resolve_region_order(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_region(None) == "us-east-1"
    assert resolve_region(None, fallback="eu-west-3") == "eu-west-3"

    monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-south-1")
    assert resolve_region(None) == "ap-south-1"

    monkeypatch.setenv("AWS_REGION", "ca-central-1")
    assert resolve_region(None) == "ca-central-1"
    assert resolve_region("  ") == "ca-central-1"
    assert resolve_region("us-west-2") == "us-west-2"


def test_credential_repr_masks_keys() -> None:
    credentials = CredentialSet("AKIA1234567890AB", "very-secret", "token")

    text = repr(credentials)

    assert "very-secret" not in text
    assert "AKIA***90AB" in text


def test_guidance_without_profile_has_no_profile_flag() -> None:
    message = build_guidance_message(None, "us-east-1")

    assert "Profile requested: default" in message
    assert "--profile" not in message
