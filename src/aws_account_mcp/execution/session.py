"""Per-call AWS session: resolved credentials bound to a region and the client factory."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from aws_account_mcp.aws_credentials.models import CredentialSet
from aws_account_mcp.execution.aws_client import ClientFactory, call_aws_api_async


@dataclass(frozen=True)
class AwsSession:
    credentials: CredentialSet
    region: str
    identity: str
    factory: ClientFactory
    source: str | None = None

    def client(self, capability: str):
        return self.factory.get_client(capability, self.region, self.credentials, self.identity)

    async def call(self, capability: str, method: str, **params: object) -> dict[str, object]:
        client = await asyncio.to_thread(self.client, capability)
        return await call_aws_api_async(client, method, **params)

    def with_region(self, region: str) -> "AwsSession":
        return AwsSession(
            credentials=self.credentials,
            region=region,
            identity=self.identity,
            factory=self.factory,
            source=self.source,
        )
