"""Lambda functions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from aws_account_mcp.adapters._common import run_batch
from aws_account_mcp.errors import ResourceNotFoundError
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "lambda"


async def list_functions(
    session: AwsSession, max_results: int | None = None, marker: str | None = None
) -> dict[str, object]:
    response = await session.call(CAPABILITY, "list_functions", MaxItems=max_results, Marker=marker)
    return {
        "resources": [
            {
                "functionName": fn.get("FunctionName"),
                "runtime": fn.get("Runtime"),
                "handler": fn.get("Handler"),
                "memorySize": fn.get("MemorySize"),
                "timeout": fn.get("Timeout"),
                "lastModified": fn.get("LastModified"),
            }
            for fn in response.get("Functions", [])
        ],
        "nextToken": response.get("NextMarker"),
    }


async def describe_function(session: AwsSession, function_name: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "get_function", FunctionName=function_name)
    config = response.get("Configuration")
    if not config:
        raise ResourceNotFoundError(f"Lambda function '{function_name}' not found")
    return {
        "functionName": config.get("FunctionName"),
        "functionArn": config.get("FunctionArn"),
        "runtime": config.get("Runtime"),
        "role": config.get("Role"),
        "handler": config.get("Handler"),
        "codeSize": config.get("CodeSize"),
        "description": config.get("Description"),
        "timeout": config.get("Timeout"),
        "memorySize": config.get("MemorySize"),
        "lastModified": config.get("LastModified"),
        "state": config.get("State"),
        "environment": config.get("Environment"),
        "layers": config.get("Layers", []),
        "codeLocation": (response.get("Code") or {}).get("Location"),
    }


async def update_functions(
    session: AwsSession,
    function_names: Sequence[str],
    *,
    timeout: int | None = None,
    memory_size: int | None = None,
    environment: Mapping[str, object] | None = None,
    runtime: str | None = None,
    handler: str | None = None,
) -> list[dict[str, object]]:
    env = None
    if environment:
        # Accept either {"Variables": {...}} or the bare variable map.
        env = dict(environment) if "Variables" in environment else {"Variables": dict(environment)}

    async def _update(function_name: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "update_function_configuration",
            FunctionName=function_name,
            Timeout=timeout,
            MemorySize=memory_size,
            Environment=env,
            Runtime=runtime,
            Handler=handler,
        )
        return {"lastUpdateStatus": response.get("LastUpdateStatus"), "state": response.get("State")}

    return await run_batch(function_names, "functionName", _update)


async def delete_functions(
    session: AwsSession, function_names: Sequence[str]
) -> list[dict[str, object]]:
    async def _delete(function_name: str) -> dict[str, object]:
        await session.call(CAPABILITY, "delete_function", FunctionName=function_name)
        return {"message": "Function deleted"}

    return await run_batch(function_names, "functionName", _delete)
