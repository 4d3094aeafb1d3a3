"""CloudWatch metrics listing and statistics."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import timedelta

from aws_account_mcp.adapters._common import parse_timestamp
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.utils.time import utc_now

CAPABILITY = "cloudwatch"
DEFAULT_STATISTICS = ("Average",)
DEFAULT_PERIOD = 300


def _dimensions(dimensions: Mapping[str, object] | None) -> list[dict[str, str]] | None:
    if not dimensions:
        return None
    return [{"Name": name, "Value": str(value)} for name, value in dimensions.items()]


async def list_metrics(
    session: AwsSession,
    namespace: str,
    dimensions: Mapping[str, object] | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "list_metrics",
        Namespace=namespace,
        Dimensions=_dimensions(dimensions),
        NextToken=next_token,
    )
    metrics = [
        {
            "metricName": metric.get("MetricName"),
            "dimensions": {
                str(dim.get("Name")): dim.get("Value") for dim in metric.get("Dimensions", [])
            },
        }
        for metric in response.get("Metrics", [])
    ]
    return {
        "namespace": namespace,
        "count": len(metrics),
        "metrics": metrics,
        "nextToken": response.get("NextToken"),
    }


async def get_statistics(
    session: AwsSession,
    namespace: str,
    metric_name: str,
    *,
    dimensions: Mapping[str, object] | None = None,
    statistics: Sequence[str] | None = None,
    period: int | None = None,
    start_time: str | int | None = None,
    end_time: str | int | None = None,
) -> dict[str, object]:
    end = parse_timestamp(end_time) if end_time is not None else utc_now()
    start = parse_timestamp(start_time) if start_time is not None else end - timedelta(hours=1)
    stats = list(statistics or DEFAULT_STATISTICS)
    response = await session.call(
        CAPABILITY,
        "get_metric_statistics",
        Namespace=namespace,
        MetricName=metric_name,
        Dimensions=_dimensions(dimensions),
        StartTime=start,
        EndTime=end,
        Period=period or DEFAULT_PERIOD,
        Statistics=stats,
    )
    datapoints = sorted(response.get("Datapoints", []), key=lambda point: point.get("Timestamp"))
    return {
        "namespace": namespace,
        "metricName": metric_name,
        "label": response.get("Label"),
        "statistics": stats,
        "period": period or DEFAULT_PERIOD,
        "startTime": start,
        "endTime": end,
        "count": len(datapoints),
        "datapoints": [
            {
                "timestamp": point.get("Timestamp"),
                "unit": point.get("Unit"),
                **{name: point[name] for name in stats if name in point},
            }
            for point in datapoints
        ],
    }
