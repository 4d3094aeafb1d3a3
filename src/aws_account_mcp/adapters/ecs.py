"""ECS clusters, services, tasks and task definitions."""

from __future__ import annotations

from collections.abc import Sequence

from aws_account_mcp.adapters._common import first, run_batch
from aws_account_mcp.errors import ResourceNotFoundError
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "ecs"
DEFAULT_CLUSTER = "default"
DEFAULT_STOP_REASON = "Stopped via MCP AWS CLI"


def _ecs_tags(tags: Sequence[dict[str, object]] | None) -> dict[str, object]:
    # ECS uses lower-case key/value, unlike the rest of AWS.
    return {str(tag.get("key")): tag.get("value") for tag in tags or []}


# -- listing -------------------------------------------------------------------


async def list_clusters(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_clusters", maxResults=max_results, nextToken=next_token
    )
    return {"resources": response.get("clusterArns", []), "nextToken": response.get("nextToken")}


async def list_services(
    session: AwsSession,
    cluster: str = DEFAULT_CLUSTER,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_services", cluster=cluster, maxResults=max_results, nextToken=next_token
    )
    return {
        "cluster": cluster,
        "resources": response.get("serviceArns", []),
        "nextToken": response.get("nextToken"),
    }


async def list_tasks(
    session: AwsSession,
    cluster: str = DEFAULT_CLUSTER,
    service_name: str | None = None,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "list_tasks",
        cluster=cluster,
        serviceName=service_name,
        maxResults=max_results,
        nextToken=next_token,
    )
    return {
        "cluster": cluster,
        "resources": response.get("taskArns", []),
        "nextToken": response.get("nextToken"),
    }


async def list_task_definitions(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_task_definitions", maxResults=max_results, nextToken=next_token
    )
    return {
        "resources": response.get("taskDefinitionArns", []),
        "nextToken": response.get("nextToken"),
    }


# -- description ---------------------------------------------------------------


def _cluster_view(cluster: dict[str, object]) -> dict[str, object]:
    return {
        "clusterArn": cluster.get("clusterArn"),
        "clusterName": cluster.get("clusterName"),
        "status": cluster.get("status"),
        "registeredContainerInstancesCount": cluster.get("registeredContainerInstancesCount"),
        "runningTasksCount": cluster.get("runningTasksCount"),
        "pendingTasksCount": cluster.get("pendingTasksCount"),
        "activeServicesCount": cluster.get("activeServicesCount"),
        "statistics": cluster.get("statistics", []),
        "tags": _ecs_tags(cluster.get("tags")),
    }


def _service_view(service: dict[str, object]) -> dict[str, object]:
    return {
        "serviceArn": service.get("serviceArn"),
        "serviceName": service.get("serviceName"),
        "clusterArn": service.get("clusterArn"),
        "status": service.get("status"),
        "desiredCount": service.get("desiredCount"),
        "runningCount": service.get("runningCount"),
        "pendingCount": service.get("pendingCount"),
        "taskDefinition": service.get("taskDefinition"),
        "deployments": service.get("deployments", []),
        "loadBalancers": service.get("loadBalancers", []),
        "createdAt": service.get("createdAt"),
    }


def _task_view(task: dict[str, object]) -> dict[str, object]:
    return {
        "taskArn": task.get("taskArn"),
        "clusterArn": task.get("clusterArn"),
        "taskDefinitionArn": task.get("taskDefinitionArn"),
        "lastStatus": task.get("lastStatus"),
        "desiredStatus": task.get("desiredStatus"),
        "containers": task.get("containers", []),
        "cpu": task.get("cpu"),
        "memory": task.get("memory"),
        "createdAt": task.get("createdAt"),
        "startedAt": task.get("startedAt"),
        "tags": _ecs_tags(task.get("tags")),
    }


async def describe_clusters(session: AwsSession, clusters: Sequence[str]) -> list[dict[str, object]]:
    response = await session.call(
        CAPABILITY, "describe_clusters", clusters=list(clusters), include=["STATISTICS", "TAGS"]
    )
    return [_cluster_view(cluster) for cluster in response.get("clusters", [])]


async def describe_cluster(session: AwsSession, cluster: str) -> dict[str, object]:
    found = await describe_clusters(session, [cluster])
    return first(found, "ECS cluster", cluster)


async def describe_services(
    session: AwsSession, services: Sequence[str], cluster: str = DEFAULT_CLUSTER
) -> list[dict[str, object]]:
    response = await session.call(
        CAPABILITY, "describe_services", cluster=cluster, services=list(services)
    )
    return [_service_view(service) for service in response.get("services", [])]


async def describe_service(
    session: AwsSession, service: str, cluster: str = DEFAULT_CLUSTER
) -> dict[str, object]:
    return first(await describe_services(session, [service], cluster), "ECS service", service)


async def describe_tasks(
    session: AwsSession, tasks: Sequence[str], cluster: str = DEFAULT_CLUSTER
) -> list[dict[str, object]]:
    response = await session.call(
        CAPABILITY, "describe_tasks", cluster=cluster, tasks=list(tasks), include=["TAGS"]
    )
    return [_task_view(task) for task in response.get("tasks", [])]


async def describe_task(
    session: AwsSession, task: str, cluster: str = DEFAULT_CLUSTER
) -> dict[str, object]:
    return first(await describe_tasks(session, [task], cluster), "ECS task", task)


async def describe_task_definition(session: AwsSession, task_definition: str) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_task_definition", taskDefinition=task_definition, include=["TAGS"]
    )
    definition = response.get("taskDefinition")
    if not definition:
        raise ResourceNotFoundError(f"Task definition '{task_definition}' not found")
    return {
        "taskDefinitionArn": definition.get("taskDefinitionArn"),
        "family": definition.get("family"),
        "revision": definition.get("revision"),
        "status": definition.get("status"),
        "requiresCompatibilities": definition.get("requiresCompatibilities", []),
        "networkMode": definition.get("networkMode"),
        "cpu": definition.get("cpu"),
        "memory": definition.get("memory"),
        "containerDefinitions": definition.get("containerDefinitions", []),
        "tags": _ecs_tags(response.get("tags")),
    }


# -- actions -------------------------------------------------------------------


async def update_services(
    session: AwsSession,
    services: Sequence[str],
    cluster: str = DEFAULT_CLUSTER,
    desired_count: int | None = None,
    task_definition: str | None = None,
    force_new_deployment: bool | None = None,
) -> list[dict[str, object]]:
    async def _update(service: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "update_service",
            cluster=cluster,
            service=service,
            desiredCount=desired_count,
            taskDefinition=task_definition,
            forceNewDeployment=force_new_deployment,
        )
        return {"service": _service_view(response.get("service") or {})}

    return await run_batch(services, "serviceName", _update)


async def restart_services(
    session: AwsSession, services: Sequence[str], cluster: str = DEFAULT_CLUSTER
) -> list[dict[str, object]]:
    return await update_services(session, services, cluster, force_new_deployment=True)


async def delete_services(
    session: AwsSession,
    services: Sequence[str],
    cluster: str = DEFAULT_CLUSTER,
    force: bool | None = None,
) -> list[dict[str, object]]:
    async def _delete(service: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY, "delete_service", cluster=cluster, service=service, force=force
        )
        return {"status": (response.get("service") or {}).get("status")}

    return await run_batch(services, "serviceName", _delete)


async def stop_tasks(
    session: AwsSession,
    tasks: Sequence[str],
    cluster: str = DEFAULT_CLUSTER,
    reason: str | None = None,
) -> list[dict[str, object]]:
    async def _stop(task: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "stop_task",
            cluster=cluster,
            task=task,
            reason=reason or DEFAULT_STOP_REASON,
        )
        stopped = response.get("task") or {}
        return {"lastStatus": stopped.get("lastStatus"), "desiredStatus": stopped.get("desiredStatus")}

    return await run_batch(tasks, "taskArn", _stop)
