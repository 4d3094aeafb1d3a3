"""CloudWatch Logs: groups, streams, events and Logs Insights queries."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

from aws_account_mcp.adapters._common import parse_timestamp
from aws_account_mcp.errors import InsightsQueryError
from aws_account_mcp.execution.session import AwsSession
from aws_account_mcp.utils.time import epoch_millis, utc_now

logger = logging.getLogger(__name__)

CAPABILITY = "logs"
TAIL_DEFAULT_LIMIT = 50
INSIGHTS_DEFAULT_LIMIT = 1000
INSIGHTS_POLL_INTERVAL = 1.0

_RUNNING_STATES = frozenset({"Scheduled", "Running"})


def _millis(value: str | int | None) -> int | None:
    if value is None:
        return None
    return epoch_millis(parse_timestamp(value))


def _iso(millis: int | None) -> str | None:
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat()


async def list_groups(
    session: AwsSession,
    prefix: str | None = None,
    limit: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "describe_log_groups",
        logGroupNamePrefix=prefix,
        limit=limit,
        nextToken=next_token,
    )
    groups = [
        {
            "name": group.get("logGroupName"),
            "arn": group.get("arn"),
            "creationTime": group.get("creationTime"),
            "storedBytes": group.get("storedBytes"),
            "retentionInDays": group.get("retentionInDays"),
        }
        for group in response.get("logGroups", [])
    ]
    return {"count": len(groups), "logGroups": groups, "nextToken": response.get("nextToken")}


async def list_streams(
    session: AwsSession,
    log_group: str,
    prefix: str | None = None,
    limit: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    # AWS rejects orderBy=LastEventTime together with a name prefix.
    response = await session.call(
        CAPABILITY,
        "describe_log_streams",
        logGroupName=log_group,
        logStreamNamePrefix=prefix,
        orderBy=None if prefix else "LastEventTime",
        descending=None if prefix else True,
        limit=limit,
        nextToken=next_token,
    )
    streams = [
        {
            "name": stream.get("logStreamName"),
            "creationTime": stream.get("creationTime"),
            "firstEventTimestamp": stream.get("firstEventTimestamp"),
            "lastEventTimestamp": stream.get("lastEventTimestamp"),
            "lastIngestionTime": stream.get("lastIngestionTime"),
            "storedBytes": stream.get("storedBytes"),
        }
        for stream in response.get("logStreams", [])
    ]
    return {
        "logGroup": log_group,
        "count": len(streams),
        "logStreams": streams,
        "nextToken": response.get("nextToken"),
    }


async def get_events(
    session: AwsSession,
    log_group: str,
    log_stream: str,
    start_time: str | int | None = None,
    end_time: str | int | None = None,
    limit: int | None = None,
    start_from_head: bool | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "get_log_events",
        logGroupName=log_group,
        logStreamName=log_stream,
        startTime=_millis(start_time),
        endTime=_millis(end_time),
        limit=limit,
        startFromHead=start_from_head,
    )
    events = [
        {
            "timestamp": _iso(event.get("timestamp")),
            "message": event.get("message"),
            "ingestionTime": event.get("ingestionTime"),
        }
        for event in response.get("events", [])
    ]
    return {
        "logGroup": log_group,
        "logStream": log_stream,
        "count": len(events),
        "events": events,
        "nextForwardToken": response.get("nextForwardToken"),
        "nextBackwardToken": response.get("nextBackwardToken"),
    }


async def tail(session: AwsSession, log_group: str, limit: int | None = None) -> dict[str, object]:
    """Most recent events from the group's most recently written stream."""
    streams = await session.call(
        CAPABILITY,
        "describe_log_streams",
        logGroupName=log_group,
        orderBy="LastEventTime",
        descending=True,
        limit=1,
    )
    latest = (streams.get("logStreams") or [None])[0]
    if not latest:
        return {"logGroup": log_group, "message": "No log streams found", "count": 0, "events": []}

    stream_name = latest.get("logStreamName")
    response = await session.call(
        CAPABILITY,
        "get_log_events",
        logGroupName=log_group,
        logStreamName=stream_name,
        limit=limit or TAIL_DEFAULT_LIMIT,
        startFromHead=False,
    )
    events = [
        {"timestamp": _iso(event.get("timestamp")), "message": event.get("message")}
        for event in response.get("events", [])
    ]
    return {"logGroup": log_group, "logStream": stream_name, "count": len(events), "events": events}


async def filter_events(
    session: AwsSession,
    log_group: str,
    pattern: str | None = None,
    log_stream: str | None = None,
    start_time: str | int | None = None,
    end_time: str | int | None = None,
    limit: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "filter_log_events",
        logGroupName=log_group,
        filterPattern=pattern,
        logStreamNames=[log_stream] if log_stream else None,
        startTime=_millis(start_time),
        endTime=_millis(end_time),
        limit=limit,
        nextToken=next_token,
    )
    events = [
        {
            "logStreamName": event.get("logStreamName"),
            "timestamp": _iso(event.get("timestamp")),
            "message": event.get("message"),
            "eventId": event.get("eventId"),
        }
        for event in response.get("events", [])
    ]
    return {
        "logGroup": log_group,
        "filterPattern": pattern or "none",
        "count": len(events),
        "events": events,
        "nextToken": response.get("nextToken"),
    }


async def start_insights_query(
    session: AwsSession,
    log_group: str,
    query: str,
    start_time: str | int | None = None,
    end_time: str | int | None = None,
    limit: int | None = None,
) -> str:
    end = parse_timestamp(end_time) if end_time is not None else utc_now()
    start = parse_timestamp(start_time) if start_time is not None else end - timedelta(hours=1)
    response = await session.call(
        CAPABILITY,
        "start_query",
        logGroupName=log_group,
        queryString=query,
        startTime=int(start.timestamp()),
        endTime=int(end.timestamp()),
        limit=limit or INSIGHTS_DEFAULT_LIMIT,
    )
    return str(response.get("queryId"))


async def insights_results(session: AwsSession, query_id: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "get_query_results", queryId=query_id)
    return {
        "queryId": query_id,
        "status": response.get("status"),
        "results": _flatten_rows(response.get("results", [])),
        "statistics": response.get("statistics"),
    }


async def run_insights_query(
    session: AwsSession,
    log_group: str,
    query: str,
    *,
    start_time: str | int | None = None,
    end_time: str | int | None = None,
    limit: int | None = None,
    wait_seconds: float = 0,
    poll_interval: float = INSIGHTS_POLL_INTERVAL,
) -> dict[str, object]:
    """Start a query and, when ``wait_seconds`` is positive, poll until it finishes.

    Without waiting the caller gets the query id back and fetches results
    later through ``insights_results``.
    """
    query_id = await start_insights_query(session, log_group, query, start_time, end_time, limit)
    if wait_seconds <= 0:
        return {
            "queryId": query_id,
            "logGroup": log_group,
            "query": query,
            "message": "Query started. Use insights-results operation with this queryId to get results.",
        }

    deadline = time.monotonic() + wait_seconds
    while True:
        outcome = await insights_results(session, query_id)
        status = str(outcome.get("status") or "")
        if status == "Complete":
            return {"logGroup": log_group, "query": query, **outcome}
        if status and status not in _RUNNING_STATES:
            raise InsightsQueryError(f"Query{status}", f"Query {status.lower()}", query_id)
        if time.monotonic() >= deadline:
            raise InsightsQueryError(
                "QueryTimeout",
                f"Query timeout after {int(wait_seconds)} seconds",
                query_id,
            )
        logger.debug("Insights query %s still %s", query_id, status or "pending")
        await asyncio.sleep(poll_interval)


def _flatten_rows(rows: list[list[dict[str, object]]]) -> list[dict[str, object]]:
    return [{cell.get("field"): cell.get("value") for cell in row} for row in rows or []]
