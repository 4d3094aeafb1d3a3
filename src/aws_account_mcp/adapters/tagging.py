"""Cross-service resource search through the Resource Groups Tagging API."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from aws_account_mcp.adapters._common import tags_to_dict
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "resourcegroupstaggingapi"
MAX_PAGES = 10


def _mapping_view(resource: dict[str, object]) -> dict[str, object]:
    return {"arn": resource.get("ResourceARN"), "tags": tags_to_dict(resource.get("Tags"))}


async def _get_resources(session: AwsSession, **params: object) -> dict[str, object]:
    return await session.call(CAPABILITY, "get_resources", **params)


async def _collect(session: AwsSession, max_pages: int = MAX_PAGES, **params: object) -> tuple[list, bool]:
    """Follow ``PaginationToken`` for at most ``max_pages`` pages.

    Returns the mappings and whether more pages were left unread.
    """
    mappings: list[dict[str, object]] = []
    token: str | None = None
    for _ in range(max_pages):
        response = await _get_resources(session, PaginationToken=token, **params)
        mappings.extend(response.get("ResourceTagMappingList", []))
        token = response.get("PaginationToken") or None
        if not token:
            return mappings, False
    return mappings, True


async def by_service(
    session: AwsSession, service_name: str, next_token: str | None = None
) -> dict[str, object]:
    response = await _get_resources(
        session, ResourceTypeFilters=[service_name], PaginationToken=next_token
    )
    resources = [_mapping_view(item) for item in response.get("ResourceTagMappingList", [])]
    return {
        "serviceName": service_name,
        "count": len(resources),
        "resources": resources,
        "nextToken": response.get("PaginationToken") or None,
    }


async def by_tag(
    session: AwsSession,
    tag_key: str,
    tag_value: str | None = None,
    service_name: str | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    tag_filter: dict[str, object] = {"Key": tag_key}
    if tag_value:
        tag_filter["Values"] = [tag_value]
    response = await _get_resources(
        session,
        TagFilters=[tag_filter],
        ResourceTypeFilters=[service_name] if service_name else None,
        PaginationToken=next_token,
    )
    resources = [_mapping_view(item) for item in response.get("ResourceTagMappingList", [])]
    return {
        "tagKey": tag_key,
        "tagValue": tag_value,
        "count": len(resources),
        "resources": resources,
        "nextToken": response.get("PaginationToken") or None,
    }


async def by_arn(session: AwsSession, arn: str) -> dict[str, object]:
    response = await _get_resources(session, ResourceARNList=[arn])
    mappings = response.get("ResourceTagMappingList") or []
    if not mappings:
        return {"arn": arn, "found": False, "message": "Resource not found"}
    return {"arn": arn, "found": True, "resource": _mapping_view(mappings[0])}


async def all_resources(
    session: AwsSession,
    resource_types: Sequence[str] | None = None,
    tag_filters: Sequence[dict[str, object]] | None = None,
) -> dict[str, object]:
    mappings, truncated = await _collect(
        session,
        ResourceTypeFilters=list(resource_types) if resource_types else None,
        TagFilters=list(tag_filters) if tag_filters else None,
    )
    resources = [_mapping_view(item) for item in mappings]
    return {"count": len(resources), "resources": resources, "truncated": truncated}


def summarize_arns(arns: Sequence[str]) -> list[dict[str, object]]:
    """Count ARNs by service (``arn:partition:service:...``), largest first."""
    counts = Counter(parts[2] for parts in (arn.split(":") for arn in arns) if len(parts) >= 3)
    return [
        {"service": service, "count": count}
        for service, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


async def resource_summary(session: AwsSession) -> dict[str, object]:
    mappings, truncated = await _collect(session)
    services = summarize_arns([str(item.get("ResourceARN") or "") for item in mappings])
    return {
        "totalResources": len(mappings),
        "byService": {entry["service"]: entry["count"] for entry in services},
        "services": services,
        "truncated": truncated,
    }


async def tag_keys(session: AwsSession) -> dict[str, object]:
    response = await session.call(CAPABILITY, "get_tag_keys")
    keys = response.get("TagKeys", [])
    return {"count": len(keys), "tagKeys": keys, "nextToken": response.get("PaginationToken") or None}


async def tag_values(session: AwsSession, tag_key: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "get_tag_values", Key=tag_key)
    values = response.get("TagValues", [])
    return {
        "tagKey": tag_key,
        "count": len(values),
        "tagValues": values,
        "nextToken": response.get("PaginationToken") or None,
    }
