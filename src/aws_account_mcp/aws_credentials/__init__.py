"""Credential discovery across profile store, environment and botocore sources."""

from aws_account_mcp.aws_credentials.models import (
    CredentialSet,
    NeedsConfiguration,
    ProviderResult,
    Resolved,
)
from aws_account_mcp.aws_credentials.resolver import (
    CredentialProvider,
    CredentialResolver,
    default_providers,
    resolve_region,
)

__all__ = [
    "CredentialProvider",
    "CredentialResolver",
    "CredentialSet",
    "NeedsConfiguration",
    "ProviderResult",
    "Resolved",
    "default_providers",
    "resolve_region",
]
