"""Ordered credential discovery.

Sources are tried in a fixed priority order and the first one yielding a
non-empty access key id wins. A source that raises or comes back empty is
recorded as a failure and the search continues; when every source fails the
caller receives ``NeedsConfiguration`` with remediation guidance instead of an
exception.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import botocore.session
from botocore.credentials import SharedCredentialProvider

from aws_account_mcp.aws_credentials.models import (
    CredentialSet,
    NeedsConfiguration,
    ProviderResult,
    Resolved,
)

if TYPE_CHECKING:
    from aws_account_mcp.profiles.store import ProfileStore

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

SOURCE_MCP_PROFILE = "MCP Profile"
SOURCE_ENVIRONMENT = "Environment Variables"
SOURCE_SHARED_FILE = "AWS Shared Credentials (~/.aws/credentials)"
SOURCE_SSO = "AWS SSO"
SOURCE_PROCESS = "Process Credentials"
SOURCE_DEFAULT_CHAIN = "AWS Default Chain"


@dataclass(frozen=True)
class CredentialProvider:
    name: str
    load: Callable[[str | None], ProviderResult]


def resolve_region(explicit: str | None = None, fallback: str = DEFAULT_REGION) -> str:
    """Explicit argument, then ``AWS_REGION``, then ``AWS_DEFAULT_REGION``, then ``fallback``."""
    for candidate in (explicit, os.getenv("AWS_REGION"), os.getenv("AWS_DEFAULT_REGION")):
        if candidate and candidate.strip():
            return candidate.strip()
    return fallback


class CredentialResolver:
    def __init__(self, providers: Sequence[CredentialProvider]) -> None:
        self._providers = list(providers)

    @property
    def source_names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def resolve(
        self, profile: str | None = None, region: str | None = None
    ) -> Resolved | NeedsConfiguration:
        target_region = resolve_region(region)
        attempts: list[tuple[str, str]] = []

        for provider in self._providers:
            result = self._attempt(provider, profile)
            if result.ok and result.credentials is not None:
                logger.info("Using AWS credentials from %s", provider.name)
                return Resolved(
                    credentials=result.credentials,
                    source=provider.name,
                    region=target_region,
                    profile_name=result.profile_name or profile,
                )
            attempts.append((provider.name, result.reason or "no credentials"))
            logger.debug("Credential source %s unavailable: %s", provider.name, result.reason)

        logger.warning("No AWS credentials found for profile %s", profile or "default")
        return NeedsConfiguration(
            guidance_message=build_guidance_message(profile, target_region),
            profile=profile,
            region=target_region,
            attempts=tuple(attempts),
        )

    async def resolve_async(
        self, profile: str | None = None, region: str | None = None
    ) -> Resolved | NeedsConfiguration:
        return await asyncio.to_thread(self.resolve, profile, region)

    @staticmethod
    def _attempt(provider: CredentialProvider, profile: str | None) -> ProviderResult:
        try:
            result = provider.load(profile)
        except Exception as exc:  # noqa: BLE001 - any source failure falls through to the next
            return ProviderResult.failure(f"{type(exc).__name__}: {exc}")
        if not isinstance(result, ProviderResult):
            return ProviderResult.failure("provider returned no result")
        if not result.ok:
            return ProviderResult.failure(result.reason or "empty access key id")
        return result


def build_guidance_message(profile: str | None, region: str) -> str:
    profile_label = profile or "default"
    return "\n".join(
        [
            "AWS credentials are not configured.",
            "",
            f"Profile requested: {profile_label}",
            f"Region: {region}",
            "",
            "Configure credentials with any of the following, then retry:",
            "1. Run `aws configure"
            + (f" --profile {profile}" if profile else "")
            + "` to write ~/.aws/credentials.",
            "2. Export environment variables:",
            "   export AWS_ACCESS_KEY_ID=<access key id>",
            "   export AWS_SECRET_ACCESS_KEY=<secret access key>",
            f"   export AWS_REGION={region}",
            "3. Create a profile with the aws-manage-profiles tool using operation \"create\""
            " (profileName, accessKeyId, secretAccessKey, region, environment).",
            "4. For SSO or temporary credentials, run `aws sso login"
            + (f" --profile {profile}" if profile else "")
            + "` or supply sessionToken alongside the access keys.",
        ]
    )


def _from_botocore(credentials: object) -> ProviderResult:
    if credentials is None:
        return ProviderResult.failure("not configured")
    frozen = credentials.get_frozen_credentials()  # type: ignore[attr-defined]
    return ProviderResult.success(
        CredentialSet(
            access_key_id=frozen.access_key or "",
            secret_access_key=frozen.secret_key or "",
            session_token=frozen.token or None,
        )
    )


def profile_store_provider(store: "ProfileStore") -> CredentialProvider:
    def _load(profile: str | None) -> ProviderResult:
        if not store.has_profiles():
            return ProviderResult.failure("no MCP profiles configured")
        record = store.get(profile) if profile else store.get_active()
        if record is None:
            return ProviderResult.failure(f"profile '{profile or 'active'}' not in store")
        return ProviderResult.success(store.get_credentials(record.name), record.name)

    return CredentialProvider(SOURCE_MCP_PROFILE, _load)


def _load_environment(profile: str | None) -> ProviderResult:
    access_key = os.getenv("AWS_ACCESS_KEY_ID", "")
    secret_key = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    if not access_key or not secret_key:
        return ProviderResult.failure("AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY not set")
    return ProviderResult.success(
        CredentialSet(access_key, secret_key, os.getenv("AWS_SESSION_TOKEN") or None)
    )


def _load_shared_file(profile: str | None) -> ProviderResult:
    path = os.path.expanduser(
        os.getenv("AWS_SHARED_CREDENTIALS_FILE", "~/.aws/credentials")
    )
    if not os.path.isfile(path):
        return ProviderResult.failure(f"{path} not found")
    provider = SharedCredentialProvider(creds_filename=path, profile_name=profile or "default")
    return _from_botocore(provider.load())


def _session_provider(method: str) -> Callable[[str | None], ProviderResult]:
    def _load(profile: str | None) -> ProviderResult:
        session = botocore.session.Session(profile=profile) if profile else botocore.session.Session()
        resolver = session.get_component("credential_provider")
        return _from_botocore(resolver.get_provider(method).load())

    return _load


def _load_default_chain(profile: str | None) -> ProviderResult:
    return _from_botocore(botocore.session.Session().get_credentials())


def default_providers(store: "ProfileStore") -> list[CredentialProvider]:
    return [
        profile_store_provider(store),
        CredentialProvider(SOURCE_ENVIRONMENT, _load_environment),
        CredentialProvider(SOURCE_SHARED_FILE, _load_shared_file),
        CredentialProvider(SOURCE_SSO, _session_provider("sso")),
        CredentialProvider(SOURCE_PROCESS, _session_provider("custom-process")),
        CredentialProvider(SOURCE_DEFAULT_CHAIN, _load_default_chain),
    ]
