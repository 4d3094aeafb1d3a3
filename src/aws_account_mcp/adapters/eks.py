"""EKS clusters, node groups and add-ons."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from aws_account_mcp.adapters._common import run_batch
from aws_account_mcp.errors import ResourceNotFoundError
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "eks"


async def list_clusters(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_clusters", maxResults=max_results, nextToken=next_token
    )
    return {"resources": response.get("clusters", []), "nextToken": response.get("nextToken")}


async def list_nodegroups(
    session: AwsSession,
    cluster_name: str,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "list_nodegroups",
        clusterName=cluster_name,
        maxResults=max_results,
        nextToken=next_token,
    )
    return {
        "clusterName": cluster_name,
        "resources": response.get("nodegroups", []),
        "nextToken": response.get("nextToken"),
    }


async def list_addons(
    session: AwsSession,
    cluster_name: str,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "list_addons",
        clusterName=cluster_name,
        maxResults=max_results,
        nextToken=next_token,
    )
    return {
        "clusterName": cluster_name,
        "resources": response.get("addons", []),
        "nextToken": response.get("nextToken"),
    }


async def describe_cluster(session: AwsSession, name: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_cluster", name=name)
    cluster = response.get("cluster")
    if not cluster:
        raise ResourceNotFoundError(f"EKS cluster '{name}' not found")
    return {
        "name": cluster.get("name"),
        "arn": cluster.get("arn"),
        "status": cluster.get("status"),
        "version": cluster.get("version"),
        "endpoint": cluster.get("endpoint"),
        "roleArn": cluster.get("roleArn"),
        "resourcesVpcConfig": cluster.get("resourcesVpcConfig"),
        "createdAt": cluster.get("createdAt"),
        "tags": cluster.get("tags", {}),
    }


async def describe_nodegroup(
    session: AwsSession, cluster_name: str, nodegroup_name: str
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_nodegroup", clusterName=cluster_name, nodegroupName=nodegroup_name
    )
    nodegroup = response.get("nodegroup")
    if not nodegroup:
        raise ResourceNotFoundError(f"EKS nodegroup '{nodegroup_name}' not found")
    return {
        "nodegroupName": nodegroup.get("nodegroupName"),
        "nodegroupArn": nodegroup.get("nodegroupArn"),
        "clusterName": nodegroup.get("clusterName"),
        "status": nodegroup.get("status"),
        "version": nodegroup.get("version"),
        "instanceTypes": nodegroup.get("instanceTypes", []),
        "scalingConfig": nodegroup.get("scalingConfig"),
        "diskSize": nodegroup.get("diskSize"),
        "createdAt": nodegroup.get("createdAt"),
        "tags": nodegroup.get("tags", {}),
    }


async def describe_addon(session: AwsSession, cluster_name: str, addon_name: str) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_addon", clusterName=cluster_name, addonName=addon_name
    )
    addon = response.get("addon")
    if not addon:
        raise ResourceNotFoundError(f"EKS addon '{addon_name}' not found")
    return {
        "addonName": addon.get("addonName"),
        "addonArn": addon.get("addonArn"),
        "clusterName": addon.get("clusterName"),
        "status": addon.get("status"),
        "addonVersion": addon.get("addonVersion"),
        "createdAt": addon.get("createdAt"),
        "modifiedAt": addon.get("modifiedAt"),
        "tags": addon.get("tags", {}),
    }


async def update_nodegroups(
    session: AwsSession,
    cluster_name: str,
    nodegroups: Sequence[str],
    scaling_config: Mapping[str, object] | None = None,
    labels: Mapping[str, object] | None = None,
) -> list[dict[str, object]]:
    label_update = _label_update(labels)

    async def _update(nodegroup: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "update_nodegroup_config",
            clusterName=cluster_name,
            nodegroupName=nodegroup,
            scalingConfig=dict(scaling_config) if scaling_config else None,
            labels=label_update,
        )
        update = response.get("update") or {}
        return {"updateId": update.get("id"), "status": update.get("status")}

    return await run_batch(nodegroups, "nodegroupName", _update)


async def delete_nodegroups(
    session: AwsSession, cluster_name: str, nodegroups: Sequence[str]
) -> list[dict[str, object]]:
    async def _delete(nodegroup: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY, "delete_nodegroup", clusterName=cluster_name, nodegroupName=nodegroup
        )
        return {"status": (response.get("nodegroup") or {}).get("status")}

    return await run_batch(nodegroups, "nodegroupName", _delete)


def _label_update(labels: Mapping[str, object] | None) -> dict[str, object] | None:
    if not labels:
        return None
    if {"addOrUpdateLabels", "removeLabels"} & set(labels):
        return dict(labels)
    return {"addOrUpdateLabels": dict(labels)}
