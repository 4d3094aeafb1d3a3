"""AWS client factory and async call helpers."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable

import boto3
from botocore.config import Config

from aws_account_mcp.aws_credentials.models import CredentialSet
from aws_account_mcp.config import Settings

logger = logging.getLogger(__name__)

# (capability, region, profile identity, credential fingerprint)
ClientCacheKey = tuple[str, str, str, str]


def _credential_fingerprint(credentials: CredentialSet) -> str:
    material = "\x1f".join(
        (
            credentials.access_key_id,
            credentials.secret_access_key,
            credentials.session_token or "",
        )
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class ClientFactory:
    """Builds boto3 clients and caches them per capability, region and profile identity.

    Entries expire after ``client_ttl_seconds`` and the least recently used entry
    is dropped beyond ``client_max_entries``. Profile mutations call ``evict`` so a
    rotated key is never served from a stale client.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._cache: OrderedDict[ClientCacheKey, tuple[object, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._ttl = settings.cache.client_ttl_seconds
        self._max_entries = settings.cache.client_max_entries

    def __len__(self) -> int:
        return len(self._cache)

    def get_client(
        self,
        capability: str,
        region: str,
        credentials: CredentialSet,
        identity: str,
    ):
        # The fingerprint keeps plaintext keys out of the cache key.
        key: ClientCacheKey = (capability, region, identity, _credential_fingerprint(credentials))
        return self._get_cached(key, lambda: self._create_client(capability, region, credentials))

    def evict(self, identity: str | None = None) -> int:
        """Drop cached clients whose identity mentions ``identity``; all when ``None``."""
        with self._lock:
            if identity is None:
                removed = len(self._cache)
                self._cache.clear()
            else:
                stale = [key for key in self._cache if _identity_matches(key[2], identity)]
                for key in stale:
                    del self._cache[key]
                removed = len(stale)
        if removed:
            logger.debug("Evicted %d cached client(s) for %s", removed, identity or "all")
        return removed

    def _get_cached(self, key: ClientCacheKey, build_client: Callable[[], object]) -> object:
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                client, created_at = cached
                if now - created_at < self._ttl:
                    self._cache.move_to_end(key)
                    return client
                del self._cache[key]
            client = build_client()
            self._cache[key] = (client, now)
            while len(self._cache) > self._max_entries:
                self._cache.popitem(last=False)
            return client

    def _create_client(self, capability: str, region: str, credentials: CredentialSet):
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
            region_name=region,
        )
        return session.client(capability, config=self.client_config())

    def client_config(self) -> Config:
        execution = self._settings.execution
        return Config(
            read_timeout=execution.sdk_timeout_seconds,
            connect_timeout=execution.sdk_timeout_seconds,
            retries={"max_attempts": execution.max_attempts, "mode": "standard"},
        )


def _identity_matches(cached_identity: str, identity: str) -> bool:
    return cached_identity == identity or cached_identity.endswith(f":{identity}")


def _call_method(client, method_name: str, kwargs: dict[str, object]) -> dict[str, object]:
    method = getattr(client, method_name)
    response = method(**kwargs)
    if isinstance(response, dict):
        response.pop("ResponseMetadata", None)
        return response
    return {"result": response}


async def call_aws_api_async(client, method_name: str, **kwargs) -> dict[str, object]:
    """Invoke ``client.<method_name>`` in a worker thread; ``None`` arguments are dropped."""
    params = {key: value for key, value in kwargs.items() if value is not None}
    return await asyncio.to_thread(_call_method, client, method_name, params)
