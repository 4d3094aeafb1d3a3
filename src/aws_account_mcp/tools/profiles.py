"""aws-manage-profiles: CRUD and validation for stored credential profiles."""

from __future__ import annotations

import logging
from typing import cast

from aws_account_mcp.adapters import account
from aws_account_mcp.app import get_app_context
from aws_account_mcp.aws_credentials.resolver import SOURCE_MCP_PROFILE
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.errors import ProfileError, normalize_error
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import Route, ToolCall, ToolDispatcher, ToolInput
from aws_account_mcp.tools._schemas import MANAGE_PROFILES_SCHEMA

logger = logging.getLogger(__name__)

NO_ACTIVE_PROFILE_MESSAGE = "No active profile set. Create and activate a profile first."
_CREATE_FIELDS = ("profileName", "accessKeyId", "secretAccessKey", "region", "environment")


class ProfileInput(ToolInput):
    operation: str
    profile_name: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    environment: str | None = None
    description: str | None = None


def _params(call: ToolCall) -> ProfileInput:
    return cast(ProfileInput, call.params)


async def _create(call: ToolCall) -> dict[str, object]:
    params = _params(call)
    profile = call.app.profile_store.create(
        str(params.profile_name),
        access_key_id=str(params.access_key_id),
        secret_access_key=str(params.secret_access_key),
        region=str(params.region),
        environment=params.environment,  # type: ignore[arg-type]
        session_token=params.session_token,
        description=params.description,
    )
    return {
        "message": f"Profile '{profile.name}' created successfully",
        "profile": profile.summary(),
    }


async def _update(call: ToolCall) -> dict[str, object]:
    params = _params(call)
    profile = call.app.profile_store.update(
        str(params.profile_name),
        access_key_id=params.access_key_id,
        secret_access_key=params.secret_access_key,
        region=params.region,
        session_token=params.session_token,
        environment=params.environment,
        description=params.description,
    )
    return {
        "message": f"Profile '{profile.name}' updated successfully",
        "profile": profile.summary(),
    }


async def _delete(call: ToolCall) -> dict[str, object]:
    name = str(_params(call).profile_name)
    call.app.profile_store.delete(name)
    active = call.app.profile_store.get_active()
    return {
        "message": f"Profile '{name}' deleted successfully",
        "activeProfile": active.name if active else None,
    }


async def _list(call: ToolCall) -> dict[str, object]:
    profiles = call.app.profile_store.list_profiles()
    active = call.app.profile_store.get_active()
    return {
        "count": len(profiles),
        "activeProfile": active.name if active else None,
        "profiles": [profile.summary() for profile in profiles],
    }


async def _get(call: ToolCall) -> dict[str, object]:
    name = str(_params(call).profile_name)
    profile = call.app.profile_store.get(name)
    if profile is None:
        raise ProfileError(f"Profile '{name}' not found", operation="get")
    return {"profile": profile.summary()}


async def _set_active(call: ToolCall) -> dict[str, object]:
    profile = call.app.profile_store.set_active(str(_params(call).profile_name))
    return {"message": f"Profile '{profile.name}' set as active", "profile": profile.summary()}


async def _get_active(call: ToolCall) -> dict[str, object]:
    profile = call.app.profile_store.get_active()
    if profile is None:
        return {"success": False, "message": NO_ACTIVE_PROFILE_MESSAGE}
    return {"profile": profile.summary()}


async def _validate(call: ToolCall) -> dict[str, object]:
    """Check stored fields, then prove the keys work with STS GetCallerIdentity."""
    name = str(_params(call).profile_name)
    store = call.app.profile_store
    profile = store.get(name)
    if profile is None:
        return _validation(name, False, f"Profile '{name}' not found")
    if not (profile.access_key_id and profile.secret_access_key and profile.region):
        return _validation(name, False, "Profile validation failed: missing credentials or region")

    session = AwsSession(
        credentials=store.get_credentials(name),
        region=profile.region,
        identity=f"{SOURCE_MCP_PROFILE}:{name}",
        factory=call.app.client_factory,
        source=SOURCE_MCP_PROFILE,
    )
    try:
        identity = (await account.caller_identity(session))["identity"]
    except Exception as exc:  # noqa: BLE001 - reported as an invalid profile
        details = normalize_error(exc)
        logger.info("Profile %s failed validation: %s", name, details.message)
        return _validation(name, False, f"Profile validation failed: {details.message}")

    account_id = identity.get("account")  # type: ignore[union-attr]
    if account_id:
        store.update_account_info(name, str(account_id))
    return _validation(name, True, "Profile is valid", account_id=account_id)


def _validation(
    name: str, valid: bool, message: str, account_id: object = None
) -> dict[str, object]:
    payload: dict[str, object] = {
        "success": valid,
        "valid": valid,
        "profileName": name,
        "message": message,
    }
    if account_id:
        payload["accountId"] = account_id
    return payload


_NAMED = ("profileName",)

ROUTES = {
    OperationKey.of("create"): Route(_create, required=_CREATE_FIELDS),
    OperationKey.of("update"): Route(_update, required=_NAMED),
    OperationKey.of("delete"): Route(_delete, required=_NAMED),
    OperationKey.of("list"): Route(_list),
    OperationKey.of("get"): Route(_get, required=_NAMED),
    OperationKey.of("set-active"): Route(_set_active, required=_NAMED),
    OperationKey.of("get-active"): Route(_get_active),
    OperationKey.of("validate"): Route(_validate, required=_NAMED),
}

DISPATCHER = ToolDispatcher(
    name="aws-manage-profiles",
    schema=MANAGE_PROFILES_SCHEMA,
    input_model=ProfileInput,
    routes=ROUTES,
    key_for=lambda params: OperationKey.of(params.operation),  # type: ignore[attr-defined]
    key_label="operation",
    requires_credentials=False,
)


async def manage_profiles(payload: dict[str, object]) -> ToolResult:
    return await DISPATCHER.dispatch(get_app_context(), payload)


manage_profiles_tool = ToolSpec(
    name="aws-manage-profiles",
    description=(
        "Manage stored AWS credential profiles: create, update, delete, list, get, "
        "set-active, get-active or validate. Secrets are never echoed back. "
        "The first profile created becomes active."
    ),
    input_schema=MANAGE_PROFILES_SCHEMA,
    handler=manage_profiles,
)
