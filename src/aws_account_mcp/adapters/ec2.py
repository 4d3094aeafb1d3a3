"""EC2 instances, key pairs, security groups and regions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from aws_account_mcp.adapters._common import first, run_batch, tags_to_dict
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "ec2"


def _filters(filters: Mapping[str, object] | None) -> list[dict[str, object]] | None:
    if not filters:
        return None
    return [
        {"Name": name, "Values": list(values) if isinstance(values, (list, tuple)) else [values]}
        for name, values in filters.items()
    ]


def _instance_summary(instance: dict[str, object]) -> dict[str, object]:
    return {
        "instanceId": instance.get("InstanceId"),
        "instanceType": instance.get("InstanceType"),
        "state": (instance.get("State") or {}).get("Name"),
        "launchTime": instance.get("LaunchTime"),
        "publicIp": instance.get("PublicIpAddress"),
        "privateIp": instance.get("PrivateIpAddress"),
        "tags": tags_to_dict(instance.get("Tags")),
    }


async def list_instances(
    session: AwsSession,
    filters: Mapping[str, object] | None = None,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "describe_instances",
        Filters=_filters(filters),
        MaxResults=max_results,
        NextToken=next_token,
    )
    instances = [
        instance
        for reservation in response.get("Reservations", [])
        for instance in reservation.get("Instances", [])
    ]
    return {
        "resources": [_instance_summary(instance) for instance in instances],
        "nextToken": response.get("NextToken"),
    }


async def list_key_pairs(session: AwsSession) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_key_pairs")
    return {
        "resources": [
            {
                "keyName": pair.get("KeyName"),
                "keyFingerprint": pair.get("KeyFingerprint"),
                "keyType": pair.get("KeyType"),
                "tags": tags_to_dict(pair.get("Tags")),
            }
            for pair in response.get("KeyPairs", [])
        ]
    }


async def list_security_groups(
    session: AwsSession,
    filters: Mapping[str, object] | None = None,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "describe_security_groups",
        Filters=_filters(filters),
        MaxResults=max_results,
        NextToken=next_token,
    )
    return {
        "resources": [
            {
                "groupId": group.get("GroupId"),
                "groupName": group.get("GroupName"),
                "description": group.get("Description"),
                "vpcId": group.get("VpcId"),
                "tags": tags_to_dict(group.get("Tags")),
            }
            for group in response.get("SecurityGroups", [])
        ],
        "nextToken": response.get("NextToken"),
    }


async def describe_instance(session: AwsSession, instance_id: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_instances", InstanceIds=[instance_id])
    reservations = response.get("Reservations") or [{}]
    instance = first(reservations[0].get("Instances"), "EC2 instance", instance_id)
    return {
        "instanceId": instance.get("InstanceId"),
        "instanceType": instance.get("InstanceType"),
        "state": (instance.get("State") or {}).get("Name"),
        "availabilityZone": (instance.get("Placement") or {}).get("AvailabilityZone"),
        "privateIpAddress": instance.get("PrivateIpAddress"),
        "publicIpAddress": instance.get("PublicIpAddress"),
        "vpcId": instance.get("VpcId"),
        "subnetId": instance.get("SubnetId"),
        "securityGroups": [
            {"id": group.get("GroupId"), "name": group.get("GroupName")}
            for group in instance.get("SecurityGroups", [])
        ],
        "keyName": instance.get("KeyName"),
        "launchTime": instance.get("LaunchTime"),
        "platform": instance.get("Platform"),
        "architecture": instance.get("Architecture"),
        "tags": tags_to_dict(instance.get("Tags")),
    }


async def describe_key_pair(session: AwsSession, key_name: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_key_pairs", KeyNames=[key_name])
    pair = first(response.get("KeyPairs"), "Key pair", key_name)
    return {
        "keyName": pair.get("KeyName"),
        "keyFingerprint": pair.get("KeyFingerprint"),
        "keyType": pair.get("KeyType"),
        "createTime": pair.get("CreateTime"),
        "tags": tags_to_dict(pair.get("Tags")),
    }


async def describe_security_group(session: AwsSession, group_id: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_security_groups", GroupIds=[group_id])
    group = first(response.get("SecurityGroups"), "Security group", group_id)
    return {
        "groupId": group.get("GroupId"),
        "groupName": group.get("GroupName"),
        "description": group.get("Description"),
        "vpcId": group.get("VpcId"),
        "ingressRules": group.get("IpPermissions", []),
        "egressRules": group.get("IpPermissionsEgress", []),
        "tags": tags_to_dict(group.get("Tags")),
    }


def _state_change(response: dict[str, object], key: str) -> dict[str, object]:
    changes = response.get(key) or [{}]
    change = changes[0]
    return {
        "previousState": (change.get("PreviousState") or {}).get("Name"),
        "currentState": (change.get("CurrentState") or {}).get("Name"),
    }


async def start_instances(session: AwsSession, instance_ids: Sequence[str]) -> list[dict[str, object]]:
    async def _start(instance_id: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "start_instances", InstanceIds=[instance_id])
        return _state_change(response, "StartingInstances")

    return await run_batch(instance_ids, "instanceId", _start)


async def stop_instances(session: AwsSession, instance_ids: Sequence[str]) -> list[dict[str, object]]:
    async def _stop(instance_id: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "stop_instances", InstanceIds=[instance_id])
        return _state_change(response, "StoppingInstances")

    return await run_batch(instance_ids, "instanceId", _stop)


async def reboot_instances(session: AwsSession, instance_ids: Sequence[str]) -> list[dict[str, object]]:
    async def _reboot(instance_id: str) -> dict[str, object]:
        await session.call(CAPABILITY, "reboot_instances", InstanceIds=[instance_id])
        return {"message": "Reboot initiated"}

    return await run_batch(instance_ids, "instanceId", _reboot)


async def terminate_instances(
    session: AwsSession, instance_ids: Sequence[str]
) -> list[dict[str, object]]:
    async def _terminate(instance_id: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "terminate_instances", InstanceIds=[instance_id])
        return _state_change(response, "TerminatingInstances")

    return await run_batch(instance_ids, "instanceId", _terminate)


async def describe_regions(session: AwsSession) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_regions", AllRegions=True)
    regions = sorted(
        (
            {
                "regionName": region.get("RegionName"),
                "endpoint": region.get("Endpoint"),
                "optInStatus": region.get("OptInStatus"),
            }
            for region in response.get("Regions", [])
        ),
        key=lambda item: str(item["regionName"]),
    )
    return {"count": len(regions), "regions": regions}
