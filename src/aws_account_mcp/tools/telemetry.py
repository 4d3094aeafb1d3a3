"""Telemetry tools: aws-logs-operations and aws-get-metrics."""

from __future__ import annotations

from typing import cast

from aws_account_mcp.adapters import logs, metrics
from aws_account_mcp.app import get_app_context
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import Route, ToolCall, ToolDispatcher, ToolInput
from aws_account_mcp.tools._schemas import GET_METRICS_SCHEMA, LOGS_OPERATIONS_SCHEMA

# -- aws-logs-operations -------------------------------------------------------


class LogsInput(ToolInput):
    operation: str
    log_group: str | None = None
    log_stream: str | None = None
    query: str | None = None
    query_id: str | None = None
    start_time: str | int | None = None
    end_time: str | int | None = None
    limit: int | None = None
    next_token: str | None = None
    wait_seconds: int = 0


def _logs(call: ToolCall) -> LogsInput:
    return cast(LogsInput, call.params)


def _with_operation(operation: str, payload: dict[str, object]) -> dict[str, object]:
    return {"operation": operation, **payload}


async def _list_groups(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    result = await logs.list_groups(call.aws, params.query, params.limit, params.next_token)
    return _with_operation("list-groups", result)


async def _list_streams(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    result = await logs.list_streams(
        call.aws, str(params.log_group), params.query, params.limit, params.next_token
    )
    return _with_operation("list-streams", result)


async def _get_events(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    result = await logs.get_events(
        call.aws,
        str(params.log_group),
        str(params.log_stream),
        start_time=params.start_time,
        end_time=params.end_time,
        limit=params.limit,
    )
    return _with_operation("get-events", result)


async def _tail(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    return _with_operation("tail", await logs.tail(call.aws, str(params.log_group), params.limit))


async def _filter(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    result = await logs.filter_events(
        call.aws,
        str(params.log_group),
        pattern=params.query,
        log_stream=params.log_stream,
        start_time=params.start_time,
        end_time=params.end_time,
        limit=params.limit,
        next_token=params.next_token,
    )
    return _with_operation("filter", result)


async def _insights_query(call: ToolCall) -> dict[str, object]:
    params = _logs(call)
    cap = call.app.settings.execution.insights_max_wait_seconds
    result = await logs.run_insights_query(
        call.aws,
        str(params.log_group),
        str(params.query),
        start_time=params.start_time,
        end_time=params.end_time,
        limit=params.limit,
        wait_seconds=min(params.wait_seconds, cap),
    )
    return _with_operation("insights-query", result)


async def _insights_results(call: ToolCall) -> dict[str, object]:
    result = await logs.insights_results(call.aws, str(_logs(call).query_id))
    return _with_operation("insights-results", result)


_GROUP = ("logGroup",)

LOGS_ROUTES = {
    OperationKey.of("list-groups"): Route(_list_groups),
    OperationKey.of("list-streams"): Route(_list_streams, required=_GROUP),
    OperationKey.of("get-events"): Route(_get_events, required=(*_GROUP, "logStream")),
    OperationKey.of("tail"): Route(_tail, required=_GROUP),
    OperationKey.of("filter"): Route(_filter, required=_GROUP),
    OperationKey.of("insights-query"): Route(_insights_query, required=(*_GROUP, "query")),
    OperationKey.of("insights-results"): Route(_insights_results, required=("queryId",)),
}

LOGS_DISPATCHER = ToolDispatcher(
    name="aws-logs-operations",
    schema=LOGS_OPERATIONS_SCHEMA,
    input_model=LogsInput,
    routes=LOGS_ROUTES,
    key_for=lambda params: OperationKey.of(cast(LogsInput, params).operation),
    key_label="logs operation",
)


async def logs_operations(payload: dict[str, object]) -> ToolResult:
    return await LOGS_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-get-metrics -----------------------------------------------------------

LIST_METRICS = "list-metrics"
GET_STATISTICS = "get-metric-statistics"


class MetricsInput(ToolInput):
    namespace: str
    metric_name: str | None = None
    dimensions: dict[str, object] = {}
    statistics: list[str] | None = None
    period: int | None = None
    start_time: str | int | None = None
    end_time: str | int | None = None


def _metrics(call: ToolCall) -> MetricsInput:
    return cast(MetricsInput, call.params)


async def _list_metrics(call: ToolCall) -> dict[str, object]:
    params = _metrics(call)
    return await metrics.list_metrics(call.aws, params.namespace, params.dimensions or None)


async def _get_statistics(call: ToolCall) -> dict[str, object]:
    params = _metrics(call)
    return await metrics.get_statistics(
        call.aws,
        params.namespace,
        str(params.metric_name),
        dimensions=params.dimensions or None,
        statistics=params.statistics,
        period=params.period,
        start_time=params.start_time,
        end_time=params.end_time,
    )


METRICS_ROUTES = {
    OperationKey.of(LIST_METRICS): Route(_list_metrics),
    OperationKey.of(GET_STATISTICS): Route(_get_statistics),
}


def _metrics_key(params: ToolInput) -> OperationKey:
    return OperationKey.of(GET_STATISTICS if cast(MetricsInput, params).metric_name else LIST_METRICS)


METRICS_DISPATCHER = ToolDispatcher(
    name="aws-get-metrics",
    schema=GET_METRICS_SCHEMA,
    input_model=MetricsInput,
    routes=METRICS_ROUTES,
    key_for=_metrics_key,
    key_label="metrics operation",
)


async def get_metrics(payload: dict[str, object]) -> ToolResult:
    return await METRICS_DISPATCHER.dispatch(get_app_context(), payload)


logs_operations_tool = ToolSpec(
    name="aws-logs-operations",
    description=(
        "CloudWatch Logs: list groups and streams, get or tail events, filter with a pattern, "
        "and run Logs Insights queries. Timestamps accept ISO 8601 or epoch milliseconds. "
        "insights-query with waitSeconds > 0 waits for the results."
    ),
    input_schema=LOGS_OPERATIONS_SCHEMA,
    handler=logs_operations,
)

get_metrics_tool = ToolSpec(
    name="aws-get-metrics",
    description=(
        "CloudWatch metrics: without metricName lists the namespace's metrics; with "
        "metricName returns datapoints (default Average over 300s for the last hour)."
    ),
    input_schema=GET_METRICS_SCHEMA,
    handler=get_metrics,
)
