"""Cost Explorer usage and forecasts.

Cost Explorer only answers in ``us-east-1``; the tool layer pins the session
region accordingly.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import date

from aws_account_mcp.errors import ToolInputError
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.utils.time import utc_now

CAPABILITY = "ce"
REGION = "us-east-1"
DEFAULT_GRANULARITY = "DAILY"
DEFAULT_METRICS = ("UnblendedCost",)
DEFAULT_FORECAST_METRIC = "UNBLENDED_COST"

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DIMENSION_FILTERS = (
    ("services", "SERVICE"),
    ("regions", "REGION"),
    ("linkedAccounts", "LINKED_ACCOUNT"),
    ("usageTypes", "USAGE_TYPE"),
)


def validate_date(value: str, field: str) -> str:
    if not _DATE.match(value):
        raise ToolInputError(f"Invalid date format: {value}. Use YYYY-MM-DD format.", field=field)
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ToolInputError(f"Invalid date: {value}", field=field) from None
    return value


def build_filter(filters: Mapping[str, object] | None) -> dict[str, object] | None:
    """Translate the flat filter map into a Cost Explorer expression."""
    if not filters:
        return None
    expressions: list[dict[str, object]] = []
    for name, dimension in _DIMENSION_FILTERS:
        values = filters.get(name)
        if isinstance(values, list) and values:
            expressions.append({"Dimensions": {"Key": dimension, "Values": list(values)}})
    tags = filters.get("tags")
    if isinstance(tags, Mapping):
        for key, value in tags.items():
            if isinstance(value, str):
                expressions.append({"Tags": {"Key": key, "Values": [value]}})
            elif isinstance(value, list):
                expressions.append({"Tags": {"Key": key, "Values": list(value)}})
    if not expressions:
        return None
    if len(expressions) == 1:
        return expressions[0]
    return {"And": expressions}


async def cost_and_usage(
    session: AwsSession,
    start_date: str,
    end_date: str,
    *,
    granularity: str | None = None,
    metrics: Sequence[str] | None = None,
    group_by: Sequence[str] | None = None,
    filters: Mapping[str, object] | None = None,
) -> dict[str, object]:
    validate_date(start_date, "startDate")
    validate_date(end_date, "endDate")
    granularity = granularity or DEFAULT_GRANULARITY
    metric_names = list(metrics or DEFAULT_METRICS)
    response = await session.call(
        CAPABILITY,
        "get_cost_and_usage",
        TimePeriod={"Start": start_date, "End": end_date},
        Granularity=granularity,
        Metrics=metric_names,
        GroupBy=[{"Type": "DIMENSION", "Key": key} for key in group_by] if group_by else None,
        Filter=build_filter(filters),
    )
    return {
        "timePeriod": {"start": start_date, "end": end_date},
        "granularity": granularity,
        "metrics": metric_names,
        "groupBy": list(group_by) if group_by else None,
        "resultsByTime": [
            {
                "timePeriod": result.get("TimePeriod"),
                "total": result.get("Total"),
                "groups": [
                    {"keys": group.get("Keys"), "metrics": group.get("Metrics")}
                    for group in result.get("Groups", [])
                ],
                "estimated": result.get("Estimated"),
            }
            for result in response.get("ResultsByTime", [])
        ],
        "dimensionValueAttributes": response.get("DimensionValueAttributes", []),
    }


async def forecast(
    session: AwsSession,
    end_date: str,
    *,
    start_date: str | None = None,
    granularity: str | None = None,
    metrics: Sequence[str] | None = None,
    filters: Mapping[str, object] | None = None,
) -> dict[str, object]:
    validate_date(end_date, "endDate")
    start_date = validate_date(start_date or utc_now().date().isoformat(), "startDate")
    metric = metrics[0] if metrics else DEFAULT_FORECAST_METRIC
    granularity = granularity or DEFAULT_GRANULARITY
    response = await session.call(
        CAPABILITY,
        "get_cost_forecast",
        TimePeriod={"Start": start_date, "End": end_date},
        Metric=metric,
        Granularity=granularity,
        Filter=build_filter(filters),
    )
    return {
        "timePeriod": {"start": start_date, "end": end_date},
        "metric": metric,
        "granularity": granularity,
        "total": response.get("Total"),
        "forecastResultsByTime": [
            {
                "timePeriod": result.get("TimePeriod"),
                "meanValue": result.get("MeanValue"),
                "predictionIntervalLowerBound": result.get("PredictionIntervalLowerBound"),
                "predictionIntervalUpperBound": result.get("PredictionIntervalUpperBound"),
            }
            for result in response.get("ForecastResultsByTime", [])
        ],
    }
