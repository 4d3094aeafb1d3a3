"""Credential resolution value objects."""

from __future__ import annotations

from dataclasses import dataclass

from aws_account_mcp.utils.masking import mask_access_key


@dataclass(frozen=True)
class CredentialSet:
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None

    @property
    def is_usable(self) -> bool:
        return bool(self.access_key_id)

    def __repr__(self) -> str:
        return f"CredentialSet(access_key_id={mask_access_key(self.access_key_id)})"


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of one credential source: credentials or the reason it had none."""

    credentials: CredentialSet | None = None
    reason: str | None = None
    profile_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.credentials is not None and self.credentials.is_usable

    @classmethod
    def success(
        cls, credentials: CredentialSet, profile_name: str | None = None
    ) -> "ProviderResult":
        return cls(credentials=credentials, profile_name=profile_name)

    @classmethod
    def failure(cls, reason: str) -> "ProviderResult":
        return cls(reason=reason)


@dataclass(frozen=True)
class Resolved:
    credentials: CredentialSet
    source: str
    region: str
    profile_name: str | None = None

    @property
    def identity(self) -> str:
        """Cache identity: store profile name, or source plus requested profile."""
        return f"{self.source}:{self.profile_name or 'default'}"


@dataclass(frozen=True)
class NeedsConfiguration:
    guidance_message: str
    profile: str | None
    region: str
    attempts: tuple[tuple[str, str], ...] = ()
