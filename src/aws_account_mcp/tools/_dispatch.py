"""Per-tool dispatch: credentials, validation, routing, caching and error shaping.

Every tool owns one ``ToolDispatcher`` with a static route table keyed by
``OperationKey``. Adapters raise; this module is the single place where
exceptions become error envelopes.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from aws_account_mcp.app import AppContext
from aws_account_mcp.aws_credentials import NeedsConfiguration, resolve_region
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.errors import (
    UNSUPPORTED_OPERATION_CODE,
    ToolInputError,
    UnsupportedOperationError,
    normalize_error,
)
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.mcp_runtime import ToolResult
from aws_account_mcp.tools.base import error_result, result_from_payload, text_result
from aws_account_mcp.utils.jsonschema import validate_payload_structured
from aws_account_mcp.utils.masking import redact_sensitive_fields
from aws_account_mcp.utils.serialization import canonical_json

logger = logging.getLogger(__name__)

# Cache family for tag-based searches; any mutation can change what they return.
SEARCH_FAMILY = "search"


class ToolInput(BaseModel):
    """Base for typed tool arguments; wire names are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    profile: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class ToolCall:
    params: ToolInput
    session: AwsSession | None
    app: AppContext
    payload: Mapping[str, object]

    @property
    def aws(self) -> AwsSession:
        if self.session is None:
            raise RuntimeError("Route requires an AWS session")
        return self.session


RouteHandler = Callable[[ToolCall], Awaitable[dict[str, object]]]


@dataclass(frozen=True)
class Route:
    handler: RouteHandler
    required: tuple[str, ...] = ()
    cache: bool = False
    mutates: bool = False
    family: str | None = None


class ToolDispatcher:
    def __init__(
        self,
        name: str,
        schema: dict[str, object],
        input_model: type[ToolInput],
        routes: Mapping[OperationKey, Route],
        key_for: Callable[[ToolInput], OperationKey],
        key_label: str,
        *,
        requires_credentials: bool = True,
        fixed_region: str | None = None,
    ) -> None:
        self.name = name
        self.schema = schema
        self.input_model = input_model
        self.routes = dict(routes)
        self.key_for = key_for
        self.key_label = key_label
        self.requires_credentials = requires_credentials
        self.fixed_region = fixed_region

    @property
    def supported_keys(self) -> list[str]:
        return [key.key for key in self.routes]

    async def dispatch(self, ctx: AppContext, payload: Mapping[str, object]) -> ToolResult:
        payload = dict(payload or {})
        logger.info("Tool %s called", self.name)
        logger.debug("Tool %s arguments: %s", self.name, redact_sensitive_fields(payload))
        key: OperationKey | None = None
        try:
            session = None
            if self.requires_credentials:
                outcome = await self._resolve(ctx, payload)
                if isinstance(outcome, NeedsConfiguration):
                    return text_result(outcome.guidance_message)
                session = outcome

            params = self._validate(payload)
            key = self.key_for(params)
            route = self.routes.get(key)
            if route is None:
                return self._unsupported(key)
            _check_required(payload, route.required)

            call = ToolCall(params=params, session=session, app=ctx, payload=payload)
            family = route.family or key.family
            cache_key = self._cache_key(ctx, family, session, params) if route.cache else None
            if cache_key is not None:
                cached = ctx.result_cache.get(cache_key)
                if cached is not None:
                    logger.debug("Cache hit for %s %s", self.name, key)
                    return result_from_payload({"success": True, **cached})

            result = await route.handler(call)
            if cache_key is not None:
                ctx.result_cache.set(cache_key, result)
            if route.mutates:
                dropped = ctx.result_cache.invalidate(family)
                dropped += ctx.result_cache.invalidate(SEARCH_FAMILY)
                logger.debug("Invalidated %d cached %s listings", dropped, family)
            return result_from_payload({"success": True, **result})
        except (KeyboardInterrupt, SystemExit, MemoryError):
            raise
        except Exception as exc:
            details = normalize_error(exc, service=self.name, operation=str(key) if key else None)
            if isinstance(exc, ToolInputError):
                logger.info("Rejected %s call: %s", self.name, details.message)
            else:
                logger.warning("%s %s failed: %s: %s", self.name, key, details.code, details.message)
            error = details.to_dict()
            if isinstance(exc, ToolInputError) and exc.field:
                error["field"] = exc.field
            if isinstance(exc, UnsupportedOperationError):
                error["supported"] = exc.supported
            return error_result(error)

    async def _resolve(
        self, ctx: AppContext, payload: Mapping[str, object]
    ) -> AwsSession | NeedsConfiguration:
        profile = _optional_str(payload.get("profile"))
        region = self.fixed_region or resolve_region(
            _optional_str(payload.get("region")), fallback=ctx.settings.aws.fallback_region
        )
        outcome = await ctx.credential_resolver.resolve_async(profile, region)
        if isinstance(outcome, NeedsConfiguration):
            return outcome
        return AwsSession(
            credentials=outcome.credentials,
            region=region,
            identity=outcome.identity,
            factory=ctx.client_factory,
            source=outcome.source,
        )

    def _validate(self, payload: dict[str, object]) -> ToolInput:
        for issue in validate_payload_structured(self.schema, payload):
            if issue.type == "enum_violation":
                allowed = issue.allowed_values or []
                raise UnsupportedOperationError(
                    f"Unsupported {issue.field or self.key_label} '{issue.got}'. "
                    f"Supported: {', '.join(allowed)}",
                    supported=allowed,
                )
            if issue.type == "missing_required":
                raise ToolInputError(f"Missing required field: {issue.field}", field=issue.field)
            raise ToolInputError(f"Invalid input: {issue.message}", field=issue.field)
        try:
            return self.input_model.model_validate(payload)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ToolInputError(f"Invalid input: {first.get('msg')}", field=field) from exc

    def _unsupported(self, key: OperationKey) -> ToolResult:
        supported = self.supported_keys
        return error_result(
            {
                "code": UNSUPPORTED_OPERATION_CODE,
                "message": f"Unsupported {self.key_label} '{key}'. Supported: {', '.join(supported)}",
                "service": self.name,
                "supported": supported,
            }
        )

    def _cache_key(
        self,
        ctx: AppContext,
        family: str,
        session: AwsSession | None,
        params: ToolInput,
    ) -> tuple[str, ...] | None:
        if not ctx.result_cache.enabled or session is None:
            return None
        arguments = params.model_dump(by_alias=True, exclude_none=True, exclude={"profile", "region"})
        return (family, session.identity, session.region, self.name, canonical_json(arguments))


def _check_required(payload: Mapping[str, object], paths: tuple[str, ...]) -> None:
    for path in paths:
        value: object = payload
        for part in path.split("."):
            value = value.get(part) if isinstance(value, Mapping) else None
        if value is None or value == "" or value == []:
            raise ToolInputError(f"Missing required field: {path}", field=path)


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value.strip() else None
