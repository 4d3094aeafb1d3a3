"""DynamoDB tables, backups, item reads and table actions.

Items cross the tool boundary as plain JSON values; ``TypeSerializer`` and
``TypeDeserializer`` translate to and from DynamoDB attribute values.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from aws_account_mcp.adapters._common import run_batch
from aws_account_mcp.errors import ResourceNotFoundError
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "dynamodb"

_ATTRIBUTE_TYPES = frozenset({"S", "N", "B", "SS", "NS", "BS", "M", "L", "NULL", "BOOL"})

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _plain_to_dynamo_safe(value: object) -> object:
    # TypeSerializer rejects float; DynamoDB numbers travel as Decimal.
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _plain_to_dynamo_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain_to_dynamo_safe(item) for item in value]
    return value


def marshal_value(value: object) -> dict[str, object]:
    if _is_attribute_value(value):
        return value  # type: ignore[return-value]
    return _serializer.serialize(_plain_to_dynamo_safe(value))


def marshal_item(item: Mapping[str, object]) -> dict[str, object]:
    return {key: marshal_value(value) for key, value in item.items()}


def unmarshal_item(item: Mapping[str, object] | None) -> dict[str, object] | None:
    if item is None:
        return None
    return {key: _deserializer.deserialize(value) for key, value in item.items()}


def _is_attribute_value(value: object) -> bool:
    return isinstance(value, dict) and len(value) == 1 and next(iter(value)) in _ATTRIBUTE_TYPES


# -- listing / description -------------------------------------------------


async def list_tables(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_tables", Limit=max_results, ExclusiveStartTableName=next_token
    )
    return {
        "resources": response.get("TableNames", []),
        "nextToken": response.get("LastEvaluatedTableName"),
    }


async def list_backups(
    session: AwsSession,
    table_name: str | None = None,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "list_backups",
        TableName=table_name,
        Limit=max_results,
        ExclusiveStartBackupArn=next_token,
    )
    return {
        "resources": [
            {
                "backupArn": backup.get("BackupArn"),
                "tableName": backup.get("TableName"),
                "backupName": backup.get("BackupName"),
                "backupStatus": backup.get("BackupStatus"),
                "backupCreationDateTime": backup.get("BackupCreationDateTime"),
            }
            for backup in response.get("BackupSummaries", [])
        ],
        "nextToken": response.get("LastEvaluatedBackupArn"),
    }


async def list_global_tables(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "list_global_tables", Limit=max_results, ExclusiveStartGlobalTableName=next_token
    )
    return {
        "resources": [
            {
                "globalTableName": table.get("GlobalTableName"),
                "replicationGroup": [
                    replica.get("RegionName") for replica in table.get("ReplicationGroup", [])
                ],
            }
            for table in response.get("GlobalTables", [])
        ],
        "nextToken": response.get("LastEvaluatedGlobalTableName"),
    }


async def describe_table(session: AwsSession, table_name: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_table", TableName=table_name)
    table = response.get("Table")
    if not table:
        raise ResourceNotFoundError(f"DynamoDB table '{table_name}' not found")
    return {
        "tableName": table.get("TableName"),
        "tableStatus": table.get("TableStatus"),
        "tableArn": table.get("TableArn"),
        "tableId": table.get("TableId"),
        "itemCount": table.get("ItemCount"),
        "tableSizeBytes": table.get("TableSizeBytes"),
        "keySchema": table.get("KeySchema", []),
        "attributeDefinitions": table.get("AttributeDefinitions", []),
        "provisionedThroughput": table.get("ProvisionedThroughput"),
        "billingModeSummary": table.get("BillingModeSummary"),
        "globalSecondaryIndexes": [
            {
                "indexName": index.get("IndexName"),
                "keySchema": index.get("KeySchema"),
                "projection": index.get("Projection"),
                "indexStatus": index.get("IndexStatus"),
            }
            for index in table.get("GlobalSecondaryIndexes", [])
        ],
        "streamSpecification": table.get("StreamSpecification"),
        "creationDateTime": table.get("CreationDateTime"),
    }


async def describe_backup(session: AwsSession, backup_arn: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_backup", BackupArn=backup_arn)
    backup = response.get("BackupDescription")
    if not backup:
        raise ResourceNotFoundError(f"DynamoDB backup '{backup_arn}' not found")
    details = backup.get("BackupDetails") or {}
    source = backup.get("SourceTableDetails") or {}
    return {
        "backupArn": details.get("BackupArn"),
        "backupName": details.get("BackupName"),
        "backupStatus": details.get("BackupStatus"),
        "backupType": details.get("BackupType"),
        "backupCreationDateTime": details.get("BackupCreationDateTime"),
        "backupSizeBytes": details.get("BackupSizeBytes"),
        "tableName": source.get("TableName"),
        "tableArn": source.get("TableArn"),
    }


async def describe_ttl(session: AwsSession, table_name: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_time_to_live", TableName=table_name)
    ttl = response.get("TimeToLiveDescription") or {}
    return {
        "tableName": table_name,
        "ttlStatus": ttl.get("TimeToLiveStatus"),
        "attributeName": ttl.get("AttributeName"),
    }


# -- item access ------------------------------------------------------------


def _expression_values(values: Mapping[str, object] | None) -> dict[str, object] | None:
    if not values:
        return None
    return {placeholder: marshal_value(value) for placeholder, value in values.items()}


async def query(
    session: AwsSession,
    table_name: str,
    *,
    key_condition_expression: str | None = None,
    partition_key: str | None = None,
    partition_key_value: object = None,
    sort_key: str | None = None,
    sort_key_value: object = None,
    filter_expression: str | None = None,
    projection_expression: str | None = None,
    expression_attribute_names: Mapping[str, str] | None = None,
    expression_attribute_values: Mapping[str, object] | None = None,
    index_name: str | None = None,
    limit: int | None = None,
    scan_index_forward: bool | None = None,
    exclusive_start_key: Mapping[str, object] | None = None,
) -> dict[str, object]:
    values = _expression_values(expression_attribute_values) or {}
    condition = key_condition_expression
    if not condition and partition_key and partition_key_value is not None:
        condition = f"{partition_key} = :pk"
        values[":pk"] = marshal_value(partition_key_value)
        if sort_key and sort_key_value is not None:
            condition += f" AND {sort_key} = :sk"
            values[":sk"] = marshal_value(sort_key_value)

    response = await session.call(
        CAPABILITY,
        "query",
        TableName=table_name,
        KeyConditionExpression=condition,
        FilterExpression=filter_expression,
        ProjectionExpression=projection_expression,
        ExpressionAttributeNames=dict(expression_attribute_names) if expression_attribute_names else None,
        ExpressionAttributeValues=values or None,
        IndexName=index_name,
        Limit=limit,
        ScanIndexForward=scan_index_forward,
        ExclusiveStartKey=marshal_item(exclusive_start_key) if exclusive_start_key else None,
    )
    return _item_page(table_name, response)


async def scan(
    session: AwsSession,
    table_name: str,
    *,
    filter_expression: str | None = None,
    projection_expression: str | None = None,
    expression_attribute_names: Mapping[str, str] | None = None,
    expression_attribute_values: Mapping[str, object] | None = None,
    index_name: str | None = None,
    limit: int | None = None,
    exclusive_start_key: Mapping[str, object] | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "scan",
        TableName=table_name,
        FilterExpression=filter_expression,
        ProjectionExpression=projection_expression,
        ExpressionAttributeNames=dict(expression_attribute_names) if expression_attribute_names else None,
        ExpressionAttributeValues=_expression_values(expression_attribute_values),
        IndexName=index_name,
        Limit=limit,
        ExclusiveStartKey=marshal_item(exclusive_start_key) if exclusive_start_key else None,
    )
    return _item_page(table_name, response)


def _item_page(table_name: str, response: dict[str, object]) -> dict[str, object]:
    return {
        "tableName": table_name,
        "count": response.get("Count", 0),
        "scannedCount": response.get("ScannedCount", 0),
        "items": [unmarshal_item(item) for item in response.get("Items", [])],
        "lastEvaluatedKey": unmarshal_item(response.get("LastEvaluatedKey")),
    }


async def get_item(
    session: AwsSession,
    table_name: str,
    key: Mapping[str, object],
    projection_expression: str | None = None,
    expression_attribute_names: Mapping[str, str] | None = None,
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "get_item",
        TableName=table_name,
        Key=marshal_item(key),
        ProjectionExpression=projection_expression,
        ExpressionAttributeNames=dict(expression_attribute_names) if expression_attribute_names else None,
    )
    return {"tableName": table_name, "item": unmarshal_item(response.get("Item"))}


async def batch_get(
    session: AwsSession,
    table_name: str,
    keys: Sequence[Mapping[str, object]],
    projection_expression: str | None = None,
    expression_attribute_names: Mapping[str, str] | None = None,
) -> dict[str, object]:
    request: dict[str, object] = {"Keys": [marshal_item(key) for key in keys]}
    if projection_expression:
        request["ProjectionExpression"] = projection_expression
    if expression_attribute_names:
        request["ExpressionAttributeNames"] = dict(expression_attribute_names)
    response = await session.call(CAPABILITY, "batch_get_item", RequestItems={table_name: request})
    items = (response.get("Responses") or {}).get(table_name, [])
    unprocessed = (response.get("UnprocessedKeys") or {}).get(table_name, {}).get("Keys", [])
    return {
        "tableName": table_name,
        "items": [unmarshal_item(item) for item in items],
        "unprocessedKeys": [unmarshal_item(key) for key in unprocessed],
    }


# -- table actions ------------------------------------------------------------


async def update_tables(
    session: AwsSession,
    table_names: Sequence[str],
    billing_mode: str | None = None,
    provisioned_throughput: Mapping[str, object] | None = None,
    stream_specification: Mapping[str, object] | None = None,
) -> list[dict[str, object]]:
    async def _update(table_name: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "update_table",
            TableName=table_name,
            BillingMode=billing_mode,
            ProvisionedThroughput=dict(provisioned_throughput) if provisioned_throughput else None,
            StreamSpecification=dict(stream_specification) if stream_specification else None,
        )
        return {"status": (response.get("TableDescription") or {}).get("TableStatus")}

    return await run_batch(table_names, "tableName", _update)


async def delete_tables(session: AwsSession, table_names: Sequence[str]) -> list[dict[str, object]]:
    async def _delete(table_name: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "delete_table", TableName=table_name)
        return {"status": (response.get("TableDescription") or {}).get("TableStatus")}

    return await run_batch(table_names, "tableName", _delete)
