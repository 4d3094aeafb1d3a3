from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from aws_account_mcp.adapters import costs, dynamodb, logs, metrics, rds, secrets, tagging
from aws_account_mcp.adapters._common import batch_summary, first, parse_timestamp, run_batch
from aws_account_mcp.aws_credentials import CredentialSet
from aws_account_mcp.errors import InsightsQueryError, ResourceNotFoundError, ToolInputError
from aws_account_mcp.execution.session import AwsSession


def _session() -> tuple[AwsSession, defaultdict]:
    clients: defaultdict = defaultdict(MagicMock)
    factory = MagicMock()
    factory.get_client.side_effect = lambda capability, *args: clients[capability]
    session = AwsSession(CredentialSet("AKIAEXAMPLE12345", "secret"), "us-east-1", "test:default", factory)
    return session, clients


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _sleep(_seconds):
        return None

    monkeypatch.setattr(logs, "asyncio", SimpleNamespace(sleep=_sleep))


# -- shared helpers -------------------------------------------------------------


def test_parse_timestamp_accepts_epoch_millis_and_iso() -> None:
    expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    assert parse_timestamp(1_700_000_000_000) == expected
    assert parse_timestamp("1700000000000") == expected
    assert parse_timestamp("2023-11-14T22:13:20Z") == expected
    assert parse_timestamp("2023-11-14T22:13:20") == expected


def test_parse_timestamp_rejects_garbage() -> None:
    with pytest.raises(ToolInputError, match="Invalid timestamp format"):
        parse_timestamp("yesterday")


def test_run_batch_records_failures_in_order() -> None:
    async def _action(resource_id: str):
        if resource_id == "bad":
            raise ResourceNotFoundError("bad not found")
        return {"state": "ok"}

    results = asyncio.run(run_batch(["a", "bad", "c"], "id", _action))

    assert results == [
        {"id": "a", "success": True, "state": "ok"},
        {"id": "bad", "success": False, "error": "bad not found", "errorCode": "ResourceNotFound"},
        {"id": "c", "success": True, "state": "ok"},
    ]
    assert batch_summary(results) == {"total": 3, "succeeded": 2, "failed": 1}


def test_first_raises_not_found() -> None:
    with pytest.raises(ResourceNotFoundError, match="EC2 instance 'i-1' not found"):
        first([], "EC2 instance", "i-1")


# -- DynamoDB -------------------------------------------------------------------


def test_marshal_item_accepts_plain_json_and_attribute_values() -> None:
    marshalled = dynamodb.marshal_item(
        {"id": "a", "score": 1.5, "flag": True, "tags": ["x"], "raw": {"S": "already"}}
    )

    assert marshalled == {
        "id": {"S": "a"},
        "score": {"N": "1.5"},
        "flag": {"BOOL": True},
        "tags": {"L": [{"S": "x"}]},
        "raw": {"S": "already"},
    }


def test_unmarshal_item_returns_plain_values() -> None:
    item = dynamodb.unmarshal_item({"id": {"S": "a"}, "n": {"N": "3"}, "m": {"M": {"k": {"NULL": True}}}})

    assert item == {"id": "a", "n": Decimal("3"), "m": {"k": None}}
    assert dynamodb.unmarshal_item(None) is None


def test_query_builds_key_condition_from_partition_and_sort_keys() -> None:
    session, clients = _session()
    clients["dynamodb"].query.return_value = {
        "Items": [{"pk": {"S": "user#1"}, "sk": {"N": "2"}}],
        "Count": 1,
        "ScannedCount": 1,
    }

    page = asyncio.run(
        dynamodb.query(
            session,
            "users",
            partition_key="pk",
            partition_key_value="user#1",
            sort_key="sk",
            sort_key_value=2,
        )
    )

    kwargs = clients["dynamodb"].query.call_args.kwargs
    assert kwargs["KeyConditionExpression"] == "pk = :pk AND sk = :sk"
    assert kwargs["ExpressionAttributeValues"] == {":pk": {"S": "user#1"}, ":sk": {"N": "2"}}
    assert "Limit" not in kwargs
    assert page["items"] == [{"pk": "user#1", "sk": Decimal("2")}]
    assert page["lastEvaluatedKey"] is None


def test_batch_get_reports_unprocessed_keys() -> None:
    session, clients = _session()
    clients["dynamodb"].batch_get_item.return_value = {
        "Responses": {"users": [{"pk": {"S": "a"}}]},
        "UnprocessedKeys": {"users": {"Keys": [{"pk": {"S": "b"}}]}},
    }

    page = asyncio.run(dynamodb.batch_get(session, "users", [{"pk": "a"}, {"pk": "b"}]))

    request = clients["dynamodb"].batch_get_item.call_args.kwargs["RequestItems"]
    assert request == {"users": {"Keys": [{"pk": {"S": "a"}}, {"pk": {"S": "b"}}]}}
    assert page["items"] == [{"pk": "a"}]
    assert page["unprocessedKeys"] == [{"pk": "b"}]


# -- CloudWatch Logs ------------------------------------------------------------


def test_insights_query_without_wait_returns_query_id() -> None:
    session, clients = _session()
    clients["logs"].start_query.return_value = {"queryId": "q-1"}

    result = asyncio.run(
        logs.run_insights_query(
            session, "/app", "fields @message", start_time=1_700_000_000_000, end_time=1_700_000_360_000
        )
    )

    kwargs = clients["logs"].start_query.call_args.kwargs
    assert kwargs["startTime"] == 1_700_000_000
    assert kwargs["endTime"] == 1_700_000_360
    assert kwargs["limit"] == logs.INSIGHTS_DEFAULT_LIMIT
    assert result["queryId"] == "q-1"
    assert "insights-results" in result["message"]
    clients["logs"].get_query_results.assert_not_called()


@pytest.mark.asyncio
async def test_insights_query_polls_until_complete(no_sleep) -> None:
    session, clients = _session()
    clients["logs"].start_query.return_value = {"queryId": "q-1"}
    clients["logs"].get_query_results.side_effect = [
        {"status": "Scheduled", "results": []},
        {"status": "Running", "results": []},
        {
            "status": "Complete",
            "results": [[{"field": "@timestamp", "value": "t"}, {"field": "@message", "value": "hi"}]],
            "statistics": {"recordsMatched": 1.0},
        },
    ]

    result = await logs.run_insights_query(session, "/app", "fields @message", wait_seconds=30)

    assert result["status"] == "Complete"
    assert result["results"] == [{"@timestamp": "t", "@message": "hi"}]
    assert clients["logs"].get_query_results.call_count == 3


@pytest.mark.asyncio
async def test_insights_query_failure_is_raised(no_sleep) -> None:
    session, clients = _session()
    clients["logs"].start_query.return_value = {"queryId": "q-1"}
    clients["logs"].get_query_results.return_value = {"status": "Failed"}

    with pytest.raises(InsightsQueryError) as excinfo:
        await logs.run_insights_query(session, "/app", "bad query", wait_seconds=30)

    assert excinfo.value.code == "QueryFailed"
    assert excinfo.value.message == "Query failed"
    assert excinfo.value.query_id == "q-1"


@pytest.mark.asyncio
async def test_insights_query_times_out(no_sleep, monkeypatch: pytest.MonkeyPatch) -> None:
    session, clients = _session()
    clients["logs"].start_query.return_value = {"queryId": "q-1"}
    clients["logs"].get_query_results.return_value = {"status": "Running"}
    ticks = itertools.count(0, 3)
    monkeypatch.setattr(logs, "time", SimpleNamespace(monotonic=lambda: next(ticks)))

    with pytest.raises(InsightsQueryError, match="Query timeout after 5 seconds"):
        await logs.run_insights_query(session, "/app", "fields @message", wait_seconds=5)

    assert clients["logs"].get_query_results.call_count == 2


def test_tail_without_streams() -> None:
    session, clients = _session()
    clients["logs"].describe_log_streams.return_value = {"logStreams": []}

    result = asyncio.run(logs.tail(session, "/app"))

    assert result["message"] == "No log streams found"
    assert result["events"] == []
    clients["logs"].get_log_events.assert_not_called()


def test_filter_events_converts_times() -> None:
    session, clients = _session()
    clients["logs"].filter_log_events.return_value = {
        "events": [{"logStreamName": "s", "timestamp": 0, "message": "m", "eventId": "e"}]
    }

    result = asyncio.run(
        logs.filter_events(session, "/app", start_time="1970-01-01T00:00:01Z", log_stream="s")
    )

    kwargs = clients["logs"].filter_log_events.call_args.kwargs
    assert kwargs["startTime"] == 1000
    assert kwargs["logStreamNames"] == ["s"]
    assert "filterPattern" not in kwargs
    assert result["filterPattern"] == "none"
    assert result["events"][0]["timestamp"] == "1970-01-01T00:00:00+00:00"


# -- CloudWatch metrics ---------------------------------------------------------


def test_metric_statistics_are_sorted_by_time() -> None:
    session, clients = _session()
    later = datetime(2024, 1, 1, 1, tzinfo=timezone.utc)
    earlier = datetime(2024, 1, 1, 0, tzinfo=timezone.utc)
    clients["cloudwatch"].get_metric_statistics.return_value = {
        "Label": "CPUUtilization",
        "Datapoints": [
            {"Timestamp": later, "Average": 2.0, "Unit": "Percent"},
            {"Timestamp": earlier, "Average": 1.0, "Unit": "Percent"},
        ],
    }

    result = asyncio.run(
        metrics.get_statistics(
            session, "AWS/EC2", "CPUUtilization", dimensions={"InstanceId": "i-1"}
        )
    )

    kwargs = clients["cloudwatch"].get_metric_statistics.call_args.kwargs
    assert kwargs["Dimensions"] == [{"Name": "InstanceId", "Value": "i-1"}]
    assert kwargs["Statistics"] == ["Average"]
    assert kwargs["Period"] == 300
    assert kwargs["EndTime"] - kwargs["StartTime"] == timedelta(hours=1)
    assert [point["timestamp"] for point in result["datapoints"]] == [earlier, later]
    assert result["count"] == 2


# -- Cost Explorer --------------------------------------------------------------


def test_validate_date() -> None:
    assert costs.validate_date("2024-02-29", "startDate") == "2024-02-29"
    with pytest.raises(ToolInputError, match="Use YYYY-MM-DD format"):
        costs.validate_date("02/01/2024", "startDate")
    with pytest.raises(ToolInputError, match="Invalid date: 2023-02-29"):
        costs.validate_date("2023-02-29", "endDate")


def test_build_filter_single_and_combined() -> None:
    assert costs.build_filter({}) is None
    assert costs.build_filter({"services": []}) is None
    assert costs.build_filter({"services": ["Amazon EC2"]}) == {
        "Dimensions": {"Key": "SERVICE", "Values": ["Amazon EC2"]}
    }
    assert costs.build_filter({"regions": ["us-east-1"], "tags": {"team": "core"}}) == {
        "And": [
            {"Dimensions": {"Key": "REGION", "Values": ["us-east-1"]}},
            {"Tags": {"Key": "team", "Values": ["core"]}},
        ]
    }


def test_forecast_defaults_start_to_today(monkeypatch: pytest.MonkeyPatch) -> None:
    session, clients = _session()
    clients["ce"].get_cost_forecast.return_value = {"Total": {"Amount": "10", "Unit": "USD"}}
    monkeypatch.setattr(
        costs, "utc_now", lambda: datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
    )

    asyncio.run(costs.forecast(session, "2024-04-01"))

    kwargs = clients["ce"].get_cost_forecast.call_args.kwargs
    assert kwargs["TimePeriod"] == {"Start": date(2024, 3, 5).isoformat(), "End": "2024-04-01"}
    assert kwargs["Metric"] == "UNBLENDED_COST"
    assert "Filter" not in kwargs


# -- tagging --------------------------------------------------------------------


def test_summarize_arns_orders_by_count_then_name() -> None:
    arns = [
        "arn:aws:s3:::bucket-a",
        "arn:aws:ec2:us-east-1:123:instance/i-1",
        "arn:aws:ec2:us-east-1:123:instance/i-2",
        "arn:aws:lambda:us-east-1:123:function:f",
        "not-an-arn",
    ]

    assert tagging.summarize_arns(arns) == [
        {"service": "ec2", "count": 2},
        {"service": "lambda", "count": 1},
        {"service": "s3", "count": 1},
    ]


def test_resource_summary_follows_pages_and_flags_truncation() -> None:
    session, clients = _session()
    clients["resourcegroupstaggingapi"].get_resources.return_value = {
        "ResourceTagMappingList": [{"ResourceARN": "arn:aws:s3:::b", "Tags": []}],
        "PaginationToken": "more",
    }

    summary = asyncio.run(tagging.resource_summary(session))

    assert clients["resourcegroupstaggingapi"].get_resources.call_count == tagging.MAX_PAGES
    assert summary["totalResources"] == tagging.MAX_PAGES
    assert summary["byService"] == {"s3": tagging.MAX_PAGES}
    assert summary["truncated"] is True


def test_by_arn_not_found() -> None:
    session, clients = _session()
    clients["resourcegroupstaggingapi"].get_resources.return_value = {"ResourceTagMappingList": []}

    result = asyncio.run(tagging.by_arn(session, "arn:aws:s3:::missing"))

    assert result == {"arn": "arn:aws:s3:::missing", "found": False, "message": "Resource not found"}


# -- secrets --------------------------------------------------------------------


def test_get_secret_encodes_binary() -> None:
    session, clients = _session()
    clients["secretsmanager"].get_secret_value.return_value = {
        "ARN": "arn:secret",
        "Name": "db",
        "SecretBinary": b"\x00\x01",
    }

    result = asyncio.run(secrets.get_secret(session, "db"))

    assert result["secret"]["secretBinary"] == "AAE="
    assert result["secret"]["secretString"] is None


def test_delete_secret_keeps_recovery_window() -> None:
    session, clients = _session()
    clients["secretsmanager"].delete_secret.return_value = {"ARN": "arn:secret", "Name": "db"}

    result = asyncio.run(secrets.delete_secret(session, "db"))

    kwargs = clients["secretsmanager"].delete_secret.call_args.kwargs
    assert kwargs["ForceDeleteWithoutRecovery"] is False
    assert secrets.DELETION_NOTE in str(result)


def test_rds_page_size_is_clamped_to_accepted_range() -> None:
    session, clients = _session()
    describe = clients["rds"].describe_db_instances
    describe.return_value = {"DBInstances": []}

    asyncio.run(rds.list_instances(session, max_results=5))
    asyncio.run(rds.list_instances(session, max_results=500))
    asyncio.run(rds.list_instances(session, max_results=50, next_token="m2"))

    assert [c.kwargs.get("MaxRecords") for c in describe.call_args_list] == [20, 100, 50]
    assert describe.call_args.kwargs["Marker"] == "m2"


def test_rds_page_size_left_to_service_default() -> None:
    assert rds.page_size(None) is None
    assert rds.page_size(20) == 20
