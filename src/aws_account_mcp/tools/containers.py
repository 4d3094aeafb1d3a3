"""aws-container-operations: ECS and EKS routed by platform, resource type and operation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import cast

from aws_account_mcp.adapters import ecs, eks
from aws_account_mcp.adapters._common import batch_summary
from aws_account_mcp.app import get_app_context
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.errors import ToolInputError
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import Route, ToolCall, ToolDispatcher, ToolInput
from aws_account_mcp.tools._schemas import CONTAINER_OPERATIONS_SCHEMA


class ContainerInput(ToolInput):
    platform: str
    resource_type: str
    operation: str
    cluster_name: str | None = None
    resource_ids: list[str] = []
    operation_params: dict[str, object] = {}


Handler = Callable[[ToolCall], Awaitable[dict[str, object]]]


def _params(call: ToolCall) -> ContainerInput:
    return cast(ContainerInput, call.params)


def _ecs_cluster(call: ToolCall) -> str:
    return _params(call).cluster_name or ecs.DEFAULT_CLUSTER


def _eks_cluster(call: ToolCall) -> str:
    return str(_params(call).cluster_name)


def _ids(call: ToolCall) -> list[str]:
    return list(_params(call).resource_ids)


def _option(call: ToolCall, name: str) -> object:
    return _params(call).operation_params.get(name)


def _next_token(call: ToolCall) -> str | None:
    token = _option(call, "nextToken")
    return str(token) if token is not None else None


def _envelope(call: ToolCall, payload: dict[str, object]) -> dict[str, object]:
    params = _params(call)
    return {
        "platform": params.platform,
        "resourceType": params.resource_type,
        "operation": params.operation,
        **payload,
    }


def _listed(page: dict[str, object]) -> dict[str, object]:
    resources = page.get("resources") or []
    return {**page, "count": len(resources)}  # type: ignore[arg-type]


def _batched(results: list[dict[str, object]]) -> dict[str, object]:
    return {"results": results, "summary": batch_summary(results)}


# -- ECS -----------------------------------------------------------------------


async def _ecs_list_clusters(call: ToolCall) -> dict[str, object]:
    return _listed(await ecs.list_clusters(call.aws, next_token=_next_token(call)))


async def _ecs_describe_clusters(call: ToolCall) -> dict[str, object]:
    names = _ids(call) or [_ecs_cluster(call)]
    return {"resources": await ecs.describe_clusters(call.aws, names)}


async def _ecs_list_services(call: ToolCall) -> dict[str, object]:
    return _listed(
        await ecs.list_services(call.aws, _ecs_cluster(call), next_token=_next_token(call))
    )


async def _ecs_describe_services(call: ToolCall) -> dict[str, object]:
    services = await ecs.describe_services(call.aws, _ids(call), _ecs_cluster(call))
    return {"cluster": _ecs_cluster(call), "resources": services}


async def _ecs_update_services(call: ToolCall) -> dict[str, object]:
    desired = _option(call, "desiredCount")
    results = await ecs.update_services(
        call.aws,
        _ids(call),
        _ecs_cluster(call),
        desired_count=int(desired) if desired is not None else None,  # type: ignore[call-overload]
        task_definition=_option(call, "taskDefinition"),  # type: ignore[arg-type]
        force_new_deployment=_option(call, "forceNewDeployment"),  # type: ignore[arg-type]
    )
    return {"cluster": _ecs_cluster(call), **_batched(results)}


async def _ecs_scale_services(call: ToolCall) -> dict[str, object]:
    if _option(call, "desiredCount") is None:
        raise ToolInputError(
            "Missing required field: operationParams.desiredCount",
            field="operationParams.desiredCount",
        )
    return await _ecs_update_services(call)


async def _ecs_restart_services(call: ToolCall) -> dict[str, object]:
    results = await ecs.restart_services(call.aws, _ids(call), _ecs_cluster(call))
    return {"cluster": _ecs_cluster(call), **_batched(results)}


async def _ecs_delete_services(call: ToolCall) -> dict[str, object]:
    results = await ecs.delete_services(
        call.aws, _ids(call), _ecs_cluster(call), force=_option(call, "force")  # type: ignore[arg-type]
    )
    return {"cluster": _ecs_cluster(call), **_batched(results)}


async def _ecs_list_tasks(call: ToolCall) -> dict[str, object]:
    page = await ecs.list_tasks(
        call.aws,
        _ecs_cluster(call),
        service_name=_option(call, "serviceName"),  # type: ignore[arg-type]
        next_token=_next_token(call),
    )
    return _listed(page)


async def _ecs_describe_tasks(call: ToolCall) -> dict[str, object]:
    tasks = await ecs.describe_tasks(call.aws, _ids(call), _ecs_cluster(call))
    return {"cluster": _ecs_cluster(call), "resources": tasks}


async def _ecs_stop_tasks(call: ToolCall) -> dict[str, object]:
    results = await ecs.stop_tasks(
        call.aws, _ids(call), _ecs_cluster(call), reason=_option(call, "reason")  # type: ignore[arg-type]
    )
    return {"cluster": _ecs_cluster(call), **_batched(results)}


async def _ecs_list_task_definitions(call: ToolCall) -> dict[str, object]:
    return _listed(await ecs.list_task_definitions(call.aws, next_token=_next_token(call)))


async def _ecs_describe_task_definitions(call: ToolCall) -> dict[str, object]:
    definitions = [await ecs.describe_task_definition(call.aws, name) for name in _ids(call)]
    return {"resources": definitions}


# -- EKS -----------------------------------------------------------------------


async def _eks_list_clusters(call: ToolCall) -> dict[str, object]:
    return _listed(await eks.list_clusters(call.aws, next_token=_next_token(call)))


async def _eks_describe_cluster(call: ToolCall) -> dict[str, object]:
    return {"resource": await eks.describe_cluster(call.aws, _eks_cluster(call))}


async def _eks_list_nodegroups(call: ToolCall) -> dict[str, object]:
    return _listed(
        await eks.list_nodegroups(call.aws, _eks_cluster(call), next_token=_next_token(call))
    )


async def _eks_describe_nodegroups(call: ToolCall) -> dict[str, object]:
    cluster = _eks_cluster(call)
    nodegroups = [await eks.describe_nodegroup(call.aws, cluster, name) for name in _ids(call)]
    return {"clusterName": cluster, "resources": nodegroups}


async def _eks_update_nodegroups(call: ToolCall) -> dict[str, object]:
    cluster = _eks_cluster(call)
    results = await eks.update_nodegroups(
        call.aws,
        cluster,
        _ids(call),
        scaling_config=_option(call, "scalingConfig"),  # type: ignore[arg-type]
        labels=_option(call, "labels"),  # type: ignore[arg-type]
    )
    return {"clusterName": cluster, **_batched(results)}


async def _eks_scale_nodegroups(call: ToolCall) -> dict[str, object]:
    if not _option(call, "scalingConfig"):
        raise ToolInputError(
            "Missing required field: operationParams.scalingConfig",
            field="operationParams.scalingConfig",
        )
    return await _eks_update_nodegroups(call)


async def _eks_delete_nodegroups(call: ToolCall) -> dict[str, object]:
    cluster = _eks_cluster(call)
    results = await eks.delete_nodegroups(call.aws, cluster, _ids(call))
    return {"clusterName": cluster, **_batched(results)}


async def _eks_list_addons(call: ToolCall) -> dict[str, object]:
    return _listed(
        await eks.list_addons(call.aws, _eks_cluster(call), next_token=_next_token(call))
    )


async def _eks_describe_addons(call: ToolCall) -> dict[str, object]:
    cluster = _eks_cluster(call)
    addons = [await eks.describe_addon(call.aws, cluster, name) for name in _ids(call)]
    return {"clusterName": cluster, "resources": addons}


# -- routing -------------------------------------------------------------------

_IDS = ("resourceIds",)
_EKS_CLUSTER = ("clusterName",)
_EKS_CHILD_IDS = ("clusterName", "resourceIds")


def _read(handler: Handler, required: tuple[str, ...] = (), cache: bool = False) -> Route:
    return Route(_wrap(handler), required=required, cache=cache)


def _write(handler: Handler, required: tuple[str, ...]) -> Route:
    return Route(_wrap(handler), required=required, mutates=True)


def _wrap(handler: Handler) -> Handler:
    async def _handler(call: ToolCall) -> dict[str, object]:
        return _envelope(call, await handler(call))

    return _handler


CONTAINER_ROUTES = {
    OperationKey.of("ecs", "clusters", "list"): _read(_ecs_list_clusters, cache=True),
    OperationKey.of("ecs", "clusters", "describe"): _read(_ecs_describe_clusters),
    OperationKey.of("ecs", "services", "list"): _read(_ecs_list_services, cache=True),
    OperationKey.of("ecs", "services", "describe"): _read(_ecs_describe_services, _IDS),
    OperationKey.of("ecs", "services", "update"): _write(_ecs_update_services, _IDS),
    OperationKey.of("ecs", "services", "scale"): _write(_ecs_scale_services, _IDS),
    OperationKey.of("ecs", "services", "restart"): _write(_ecs_restart_services, _IDS),
    OperationKey.of("ecs", "services", "delete"): _write(_ecs_delete_services, _IDS),
    OperationKey.of("ecs", "tasks", "list"): _read(_ecs_list_tasks, cache=True),
    OperationKey.of("ecs", "tasks", "describe"): _read(_ecs_describe_tasks, _IDS),
    OperationKey.of("ecs", "tasks", "stop"): _write(_ecs_stop_tasks, _IDS),
    OperationKey.of("ecs", "task-definitions", "list"): _read(_ecs_list_task_definitions, cache=True),
    OperationKey.of("ecs", "task-definitions", "describe"): _read(
        _ecs_describe_task_definitions, _IDS
    ),
    OperationKey.of("eks", "clusters", "list"): _read(_eks_list_clusters, cache=True),
    OperationKey.of("eks", "clusters", "describe"): _read(_eks_describe_cluster, _EKS_CLUSTER),
    OperationKey.of("eks", "nodegroups", "list"): _read(
        _eks_list_nodegroups, _EKS_CLUSTER, cache=True
    ),
    OperationKey.of("eks", "nodegroups", "describe"): _read(_eks_describe_nodegroups, _EKS_CHILD_IDS),
    OperationKey.of("eks", "nodegroups", "update"): _write(_eks_update_nodegroups, _EKS_CHILD_IDS),
    OperationKey.of("eks", "nodegroups", "scale"): _write(_eks_scale_nodegroups, _EKS_CHILD_IDS),
    OperationKey.of("eks", "nodegroups", "delete"): _write(_eks_delete_nodegroups, _EKS_CHILD_IDS),
    OperationKey.of("eks", "addons", "list"): _read(_eks_list_addons, _EKS_CLUSTER, cache=True),
    OperationKey.of("eks", "addons", "describe"): _read(_eks_describe_addons, _EKS_CHILD_IDS),
}


def _container_key(params: ToolInput) -> OperationKey:
    container = cast(ContainerInput, params)
    return OperationKey.of(container.platform, container.resource_type, container.operation)


CONTAINER_DISPATCHER = ToolDispatcher(
    name="aws-container-operations",
    schema=CONTAINER_OPERATIONS_SCHEMA,
    input_model=ContainerInput,
    routes=CONTAINER_ROUTES,
    key_for=_container_key,
    key_label="container operation",
)


async def container_operations(payload: dict[str, object]) -> ToolResult:
    return await CONTAINER_DISPATCHER.dispatch(get_app_context(), payload)


container_operations_tool = ToolSpec(
    name="aws-container-operations",
    description=(
        "Manage containers. ECS: clusters, services (update, scale, restart, delete), tasks "
        "(stop) and task definitions. EKS: clusters, nodegroups (update, scale, delete) and "
        "addons. clusterName defaults to 'default' for ECS and is required for EKS child "
        "resources. Mutations run per id and report each outcome."
    ),
    input_schema=CONTAINER_OPERATIONS_SCHEMA,
    handler=container_operations,
)
