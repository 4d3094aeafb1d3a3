"""Resource tools: aws-list-resources, aws-describe-resource, aws-execute-action and
aws-search-resources.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import cast

from aws_account_mcp.adapters import (
    dynamodb,
    ec2,
    ecs,
    eks,
    lambda_functions,
    logs,
    rds,
    s3,
    secrets,
    tagging,
)
from aws_account_mcp.adapters._common import batch_summary
from aws_account_mcp.app import get_app_context
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import (
    SEARCH_FAMILY,
    Route,
    ToolCall,
    ToolDispatcher,
    ToolInput,
)
from aws_account_mcp.tools._schemas import (
    DESCRIBE_RESOURCE_SCHEMA,
    EXECUTE_ACTION_SCHEMA,
    LIST_RESOURCES_SCHEMA,
    SEARCH_RESOURCES_SCHEMA,
)

# -- aws-list-resources --------------------------------------------------------


class ListInput(ToolInput):
    resource_type: str
    filters: dict[str, object] = {}
    max_results: int | None = None


def _list_params(call: ToolCall) -> ListInput:
    return cast(ListInput, call.params)


def _filter(call: ToolCall, name: str) -> str | None:
    value = _list_params(call).filters.get(name)
    return str(value) if value is not None else None


def _ec2_filters(call: ToolCall) -> dict[str, object]:
    return {key: value for key, value in _list_params(call).filters.items() if key != "nextToken"}


ListFetch = Callable[[ToolCall, AwsSession], Awaitable[dict[str, object]]]


def _listing(fetch: ListFetch) -> Callable[[ToolCall], Awaitable[dict[str, object]]]:
    async def _handler(call: ToolCall) -> dict[str, object]:
        page = await fetch(call, call.aws)
        resources = page.get("resources", [])
        return {
            "resourceType": _list_params(call).resource_type,
            "region": call.aws.region,
            **page,
            "count": len(resources),  # type: ignore[arg-type]
        }

    return _handler


async def _log_groups(call: ToolCall, session: AwsSession) -> dict[str, object]:
    page = await logs.list_groups(
        session, _filter(call, "prefix"), _list_params(call).max_results, _token(call)
    )
    return {"resources": page["logGroups"], "nextToken": page.get("nextToken")}


async def _log_streams(call: ToolCall, session: AwsSession) -> dict[str, object]:
    page = await logs.list_streams(
        session,
        str(_filter(call, "logGroupName")),
        _filter(call, "prefix"),
        _list_params(call).max_results,
        _token(call),
    )
    return {
        "logGroup": page["logGroup"],
        "resources": page["logStreams"],
        "nextToken": page.get("nextToken"),
    }


def _max(call: ToolCall) -> int | None:
    return _list_params(call).max_results


def _token(call: ToolCall) -> str | None:
    return _filter(call, "nextToken")


_LIST_FETCHERS: dict[str, tuple[ListFetch, tuple[str, ...]]] = {
    "ec2-instances": (
        lambda call, s: ec2.list_instances(s, _ec2_filters(call), _max(call), _token(call)),
        (),
    ),
    "ec2-key-pairs": (lambda call, s: ec2.list_key_pairs(s), ()),
    "ec2-security-groups": (
        lambda call, s: ec2.list_security_groups(s, _ec2_filters(call), _max(call), _token(call)),
        (),
    ),
    "rds-instances": (lambda call, s: rds.list_instances(s, _max(call), _token(call)), ()),
    "rds-clusters": (lambda call, s: rds.list_clusters(s, _max(call), _token(call)), ()),
    "rds-snapshots": (lambda call, s: rds.list_snapshots(s, _max(call), _token(call)), ()),
    "rds-cluster-snapshots": (
        lambda call, s: rds.list_cluster_snapshots(s, _max(call), _token(call)),
        (),
    ),
    "dynamodb-tables": (lambda call, s: dynamodb.list_tables(s, _max(call), _token(call)), ()),
    "dynamodb-backups": (
        lambda call, s: dynamodb.list_backups(
            s, _filter(call, "tableName"), _max(call), _token(call)
        ),
        (),
    ),
    "dynamodb-global-tables": (
        lambda call, s: dynamodb.list_global_tables(s, _max(call), _token(call)),
        (),
    ),
    "ecs-clusters": (lambda call, s: ecs.list_clusters(s, _max(call), _token(call)), ()),
    "ecs-services": (
        lambda call, s: ecs.list_services(
            s, str(_filter(call, "clusterName")), _max(call), _token(call)
        ),
        ("filters.clusterName",),
    ),
    "ecs-tasks": (
        lambda call, s: ecs.list_tasks(
            s,
            str(_filter(call, "clusterName")),
            _filter(call, "serviceName"),
            _max(call),
            _token(call),
        ),
        ("filters.clusterName",),
    ),
    "ecs-task-definitions": (
        lambda call, s: ecs.list_task_definitions(s, _max(call), _token(call)),
        (),
    ),
    "eks-clusters": (lambda call, s: eks.list_clusters(s, _max(call), _token(call)), ()),
    "eks-nodegroups": (
        lambda call, s: eks.list_nodegroups(
            s, str(_filter(call, "clusterName")), _max(call), _token(call)
        ),
        ("filters.clusterName",),
    ),
    "eks-addons": (
        lambda call, s: eks.list_addons(
            s, str(_filter(call, "clusterName")), _max(call), _token(call)
        ),
        ("filters.clusterName",),
    ),
    "s3-buckets": (lambda call, s: s3.list_buckets(s), ()),
    "lambda-functions": (
        lambda call, s: lambda_functions.list_functions(s, _max(call), _token(call)),
        (),
    ),
    "log-groups": (_log_groups, ()),
    "log-streams": (_log_streams, ("filters.logGroupName",)),
    "secrets": (
        lambda call, s: secrets.list_secrets(s, _max(call), _token(call)),
        (),
    ),
    "parameters": (
        lambda call, s: secrets.list_parameters(s, _max(call), _token(call)),
        (),
    ),
}

LIST_ROUTES = {
    OperationKey.of(resource_type): Route(_listing(fetch), required=required, cache=True)
    for resource_type, (fetch, required) in _LIST_FETCHERS.items()
}

LIST_DISPATCHER = ToolDispatcher(
    name="aws-list-resources",
    schema=LIST_RESOURCES_SCHEMA,
    input_model=ListInput,
    routes=LIST_ROUTES,
    key_for=lambda params: OperationKey.of(cast(ListInput, params).resource_type),
    key_label="resource type",
)


async def list_resources(payload: dict[str, object]) -> ToolResult:
    return await LIST_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-describe-resource -----------------------------------------------------


class DescribeInput(ToolInput):
    resource_type: str
    resource_id: str
    additional_params: dict[str, object] = {}


def _describe_params(call: ToolCall) -> DescribeInput:
    return cast(DescribeInput, call.params)


def _rid(call: ToolCall) -> str:
    return _describe_params(call).resource_id


def _ecs_cluster(call: ToolCall) -> str:
    return str(_describe_params(call).additional_params.get("cluster") or ecs.DEFAULT_CLUSTER)


def _eks_cluster(call: ToolCall) -> str:
    return str(_describe_params(call).additional_params["cluster"])


DescribeFetch = Callable[[ToolCall, AwsSession], Awaitable[dict[str, object]]]

_DESCRIBERS: dict[str, tuple[DescribeFetch, tuple[str, ...]]] = {
    "ec2-instance": (lambda call, s: ec2.describe_instance(s, _rid(call)), ()),
    "ec2-key-pair": (lambda call, s: ec2.describe_key_pair(s, _rid(call)), ()),
    "ec2-security-group": (lambda call, s: ec2.describe_security_group(s, _rid(call)), ()),
    "rds-instance": (lambda call, s: rds.describe_instance(s, _rid(call)), ()),
    "rds-cluster": (lambda call, s: rds.describe_cluster(s, _rid(call)), ()),
    "rds-snapshot": (lambda call, s: rds.describe_snapshot(s, _rid(call)), ()),
    "dynamodb-table": (lambda call, s: dynamodb.describe_table(s, _rid(call)), ()),
    "dynamodb-backup": (lambda call, s: dynamodb.describe_backup(s, _rid(call)), ()),
    "dynamodb-ttl": (lambda call, s: dynamodb.describe_ttl(s, _rid(call)), ()),
    "ecs-cluster": (lambda call, s: ecs.describe_cluster(s, _rid(call)), ()),
    "ecs-service": (lambda call, s: ecs.describe_service(s, _rid(call), _ecs_cluster(call)), ()),
    "ecs-task": (lambda call, s: ecs.describe_task(s, _rid(call), _ecs_cluster(call)), ()),
    "ecs-task-definition": (lambda call, s: ecs.describe_task_definition(s, _rid(call)), ()),
    "eks-cluster": (lambda call, s: eks.describe_cluster(s, _rid(call)), ()),
    "eks-nodegroup": (
        lambda call, s: eks.describe_nodegroup(s, _eks_cluster(call), _rid(call)),
        ("additionalParams.cluster",),
    ),
    "eks-addon": (
        lambda call, s: eks.describe_addon(s, _eks_cluster(call), _rid(call)),
        ("additionalParams.cluster",),
    ),
    "s3-bucket": (lambda call, s: s3.describe_bucket(s, _rid(call)), ()),
    "lambda-function": (lambda call, s: lambda_functions.describe_function(s, _rid(call)), ()),
}


def _describing(fetch: DescribeFetch) -> Callable[[ToolCall], Awaitable[dict[str, object]]]:
    async def _handler(call: ToolCall) -> dict[str, object]:
        resource = await fetch(call, call.aws)
        return {"resourceType": _describe_params(call).resource_type, "resource": resource}

    return _handler


DESCRIBE_ROUTES = {
    OperationKey.of(resource_type): Route(_describing(fetch), required=required)
    for resource_type, (fetch, required) in _DESCRIBERS.items()
}

DESCRIBE_DISPATCHER = ToolDispatcher(
    name="aws-describe-resource",
    schema=DESCRIBE_RESOURCE_SCHEMA,
    input_model=DescribeInput,
    routes=DESCRIBE_ROUTES,
    key_for=lambda params: OperationKey.of(cast(DescribeInput, params).resource_type),
    key_label="resource type",
)


async def describe_resource(payload: dict[str, object]) -> ToolResult:
    return await DESCRIBE_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-execute-action --------------------------------------------------------


class ActionInput(ToolInput):
    action: str
    resource_type: str
    resource_ids: list[str]
    action_params: dict[str, object] = {}


BatchFetch = Callable[[AwsSession, list[str], dict[str, object]], Awaitable[list[dict[str, object]]]]


def _ecs_action_cluster(params: dict[str, object]) -> str:
    return str(params.get("cluster") or params.get("clusterName") or ecs.DEFAULT_CLUSTER)


def _opt_int(params: dict[str, object], name: str) -> int | None:
    value = params.get(name)
    return int(value) if value is not None else None  # type: ignore[call-overload]


_ACTIONS: dict[tuple[str, str], tuple[BatchFetch, tuple[str, ...]]] = {
    ("ec2-instances", "start"): (lambda s, ids, p: ec2.start_instances(s, ids), ()),
    ("ec2-instances", "stop"): (lambda s, ids, p: ec2.stop_instances(s, ids), ()),
    ("ec2-instances", "reboot"): (lambda s, ids, p: ec2.reboot_instances(s, ids), ()),
    ("ec2-instances", "terminate"): (lambda s, ids, p: ec2.terminate_instances(s, ids), ()),
    ("rds-instances", "start"): (lambda s, ids, p: rds.start_instances(s, ids), ()),
    ("rds-instances", "stop"): (lambda s, ids, p: rds.stop_instances(s, ids), ()),
    ("rds-instances", "reboot"): (lambda s, ids, p: rds.reboot_instances(s, ids), ()),
    ("rds-instances", "delete"): (
        lambda s, ids, p: rds.delete_instances(
            s,
            ids,
            skip_final_snapshot=bool(p.get("skipFinalSnapshot", True)),
            final_snapshot_identifier=p.get("finalSnapshotIdentifier"),  # type: ignore[arg-type]
        ),
        (),
    ),
    ("rds-clusters", "start"): (lambda s, ids, p: rds.start_clusters(s, ids), ()),
    ("rds-clusters", "stop"): (lambda s, ids, p: rds.stop_clusters(s, ids), ()),
    ("ecs-services", "update"): (
        lambda s, ids, p: ecs.update_services(
            s,
            ids,
            _ecs_action_cluster(p),
            desired_count=_opt_int(p, "desiredCount"),
            task_definition=p.get("taskDefinition"),  # type: ignore[arg-type]
            force_new_deployment=p.get("forceNewDeployment"),  # type: ignore[arg-type]
        ),
        (),
    ),
    ("ecs-services", "restart"): (
        lambda s, ids, p: ecs.restart_services(s, ids, _ecs_action_cluster(p)),
        (),
    ),
    ("ecs-services", "delete"): (
        lambda s, ids, p: ecs.delete_services(
            s, ids, _ecs_action_cluster(p), force=p.get("force")  # type: ignore[arg-type]
        ),
        (),
    ),
    ("ecs-tasks", "stop"): (
        lambda s, ids, p: ecs.stop_tasks(
            s, ids, _ecs_action_cluster(p), reason=p.get("reason")  # type: ignore[arg-type]
        ),
        (),
    ),
    ("eks-nodegroups", "update"): (
        lambda s, ids, p: eks.update_nodegroups(
            s,
            str(p["clusterName"]),
            ids,
            scaling_config=p.get("scalingConfig"),  # type: ignore[arg-type]
            labels=p.get("labels"),  # type: ignore[arg-type]
        ),
        ("actionParams.clusterName",),
    ),
    ("eks-nodegroups", "delete"): (
        lambda s, ids, p: eks.delete_nodegroups(s, str(p["clusterName"]), ids),
        ("actionParams.clusterName",),
    ),
    ("lambda-functions", "update"): (
        lambda s, ids, p: lambda_functions.update_functions(
            s,
            ids,
            timeout=_opt_int(p, "timeout"),
            memory_size=_opt_int(p, "memorySize"),
            environment=p.get("environment"),  # type: ignore[arg-type]
            runtime=p.get("runtime"),  # type: ignore[arg-type]
            handler=p.get("handler"),  # type: ignore[arg-type]
        ),
        (),
    ),
    ("lambda-functions", "delete"): (
        lambda s, ids, p: lambda_functions.delete_functions(s, ids),
        (),
    ),
    ("dynamodb-tables", "update"): (
        lambda s, ids, p: dynamodb.update_tables(
            s,
            ids,
            billing_mode=p.get("billingMode"),  # type: ignore[arg-type]
            provisioned_throughput=p.get("provisionedThroughput"),  # type: ignore[arg-type]
            stream_specification=p.get("streamSpecification"),  # type: ignore[arg-type]
        ),
        (),
    ),
    ("dynamodb-tables", "delete"): (
        lambda s, ids, p: dynamodb.delete_tables(s, ids),
        (),
    ),
}


def _batch(fetch: BatchFetch) -> Callable[[ToolCall], Awaitable[dict[str, object]]]:
    async def _handler(call: ToolCall) -> dict[str, object]:
        params = cast(ActionInput, call.params)
        results = await fetch(call.aws, list(params.resource_ids), dict(params.action_params))
        return {
            "action": params.action,
            "resourceType": params.resource_type,
            "region": call.aws.region,
            "results": results,
            "summary": batch_summary(results),
        }

    return _handler


ACTION_ROUTES = {
    OperationKey.of(resource_type, action): Route(_batch(fetch), required=required, mutates=True)
    for (resource_type, action), (fetch, required) in _ACTIONS.items()
}

ACTION_DISPATCHER = ToolDispatcher(
    name="aws-execute-action",
    schema=EXECUTE_ACTION_SCHEMA,
    input_model=ActionInput,
    routes=ACTION_ROUTES,
    key_for=lambda params: OperationKey.of(
        cast(ActionInput, params).resource_type, cast(ActionInput, params).action
    ),
    key_label="action",
)


async def execute_action(payload: dict[str, object]) -> ToolResult:
    return await ACTION_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-search-resources ------------------------------------------------------


class SearchInput(ToolInput):
    search_type: str
    service_name: str | None = None
    tag_key: str | None = None
    tag_value: str | None = None
    arn: str | None = None
    filters: dict[str, object] = {}
    next_token: str | None = None


def _search(call: ToolCall) -> SearchInput:
    return cast(SearchInput, call.params)


async def _all_resources(call: ToolCall) -> dict[str, object]:
    filters = _search(call).filters
    resource_types = filters.get("resourceTypes")
    tag_filters = filters.get("tagFilters")
    return await tagging.all_resources(
        call.aws,
        resource_types=resource_types if isinstance(resource_types, list) else None,
        tag_filters=tag_filters if isinstance(tag_filters, list) else None,
    )


SEARCH_ROUTES = {
    OperationKey.of("by-service"): Route(
        lambda call: tagging.by_service(
            call.aws, str(_search(call).service_name), _search(call).next_token
        ),
        required=("serviceName",),
        cache=True,
        family=SEARCH_FAMILY,
    ),
    OperationKey.of("by-tag"): Route(
        lambda call: tagging.by_tag(
            call.aws,
            str(_search(call).tag_key),
            _search(call).tag_value,
            _search(call).service_name,
            _search(call).next_token,
        ),
        required=("tagKey",),
        cache=True,
        family=SEARCH_FAMILY,
    ),
    OperationKey.of("by-arn"): Route(
        lambda call: tagging.by_arn(call.aws, str(_search(call).arn)), required=("arn",)
    ),
    OperationKey.of("all-resources"): Route(_all_resources, cache=True, family=SEARCH_FAMILY),
    OperationKey.of("resource-summary"): Route(
        lambda call: tagging.resource_summary(call.aws), cache=True, family=SEARCH_FAMILY
    ),
    OperationKey.of("tag-keys"): Route(lambda call: tagging.tag_keys(call.aws)),
    OperationKey.of("tag-values"): Route(
        lambda call: tagging.tag_values(call.aws, str(_search(call).tag_key)), required=("tagKey",)
    ),
}

SEARCH_DISPATCHER = ToolDispatcher(
    name="aws-search-resources",
    schema=SEARCH_RESOURCES_SCHEMA,
    input_model=SearchInput,
    routes=SEARCH_ROUTES,
    key_for=lambda params: OperationKey.of(cast(SearchInput, params).search_type),
    key_label="search type",
)


async def search_resources(payload: dict[str, object]) -> ToolResult:
    return await SEARCH_DISPATCHER.dispatch(get_app_context(), payload)


# -- tool specs ----------------------------------------------------------------

list_resources_tool = ToolSpec(
    name="aws-list-resources",
    description=(
        "List AWS resources of one type: EC2, RDS, DynamoDB, ECS, EKS, S3, Lambda, "
        "CloudWatch Logs, Secrets Manager and Parameter Store. "
        "ecs-services, ecs-tasks, eks-nodegroups and eks-addons require filters.clusterName; "
        "log-streams requires filters.logGroupName. Results are cached briefly."
    ),
    input_schema=LIST_RESOURCES_SCHEMA,
    handler=list_resources,
)

describe_resource_tool = ToolSpec(
    name="aws-describe-resource",
    description=(
        "Get detailed information about one AWS resource by id, name or ARN. "
        "ECS and EKS child resources take additionalParams.cluster."
    ),
    input_schema=DESCRIBE_RESOURCE_SCHEMA,
    handler=describe_resource,
)

execute_action_tool = ToolSpec(
    name="aws-execute-action",
    description=(
        "Run an action (start, stop, reboot, terminate, update, restart, delete) on one or "
        "more resources. Each id is processed independently and reported in 'results'; "
        "one failing id does not fail the call."
    ),
    input_schema=EXECUTE_ACTION_SCHEMA,
    handler=execute_action,
)

search_resources_tool = ToolSpec(
    name="aws-search-resources",
    description=(
        "Discover resources across services by service, tag or ARN, summarize resource "
        "counts per service, or list tag keys and values."
    ),
    input_schema=SEARCH_RESOURCES_SCHEMA,
    handler=search_resources,
)
