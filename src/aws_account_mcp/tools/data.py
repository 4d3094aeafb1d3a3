"""Data tools: aws-query-database and aws-manage-secrets."""

from __future__ import annotations

from typing import cast

from aws_account_mcp.adapters import dynamodb, rds, secrets
from aws_account_mcp.app import get_app_context
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.errors import ToolInputError
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import Route, ToolCall, ToolDispatcher, ToolInput
from aws_account_mcp.tools._schemas import MANAGE_SECRETS_SCHEMA, QUERY_DATABASE_SCHEMA

# -- aws-query-database --------------------------------------------------------


class QueryInput(ToolInput):
    database_type: str
    operation: str
    table_name: str | None = None
    database_name: str | None = None
    query_params: dict[str, object] = {}


def _query(call: ToolCall) -> QueryInput:
    return cast(QueryInput, call.params)


def _expression_kwargs(params: dict[str, object]) -> dict[str, object]:
    return {
        "filter_expression": params.get("filterExpression"),
        "projection_expression": params.get("projectionExpression"),
        "expression_attribute_names": params.get("expressionAttributeNames"),
        "expression_attribute_values": params.get("expressionAttributeValues"),
        "index_name": params.get("indexName"),
        "limit": params.get("limit"),
        "exclusive_start_key": params.get("exclusiveStartKey"),
    }


async def _dynamodb_query(call: ToolCall) -> dict[str, object]:
    query = _query(call)
    params = query.query_params
    if not params.get("keyConditionExpression") and not (
        params.get("partitionKey") and params.get("partitionKeyValue") is not None
    ):
        raise ToolInputError(
            "Missing required field: queryParams.keyConditionExpression "
            "(or queryParams.partitionKey and queryParams.partitionKeyValue)",
            field="queryParams.keyConditionExpression",
        )
    result = await dynamodb.query(
        call.aws,
        str(query.table_name),
        key_condition_expression=params.get("keyConditionExpression"),  # type: ignore[arg-type]
        partition_key=params.get("partitionKey"),  # type: ignore[arg-type]
        partition_key_value=params.get("partitionKeyValue"),
        sort_key=params.get("sortKey"),  # type: ignore[arg-type]
        sort_key_value=params.get("sortKeyValue"),
        scan_index_forward=params.get("scanIndexForward"),  # type: ignore[arg-type]
        **_expression_kwargs(params),  # type: ignore[arg-type]
    )
    return {"operation": "query", **result}


async def _dynamodb_scan(call: ToolCall) -> dict[str, object]:
    query = _query(call)
    result = await dynamodb.scan(
        call.aws,
        str(query.table_name),
        **_expression_kwargs(query.query_params),  # type: ignore[arg-type]
    )
    return {"operation": "scan", **result}


async def _dynamodb_get_item(call: ToolCall) -> dict[str, object]:
    query = _query(call)
    params = query.query_params
    result = await dynamodb.get_item(
        call.aws,
        str(query.table_name),
        params["key"],  # type: ignore[arg-type]
        projection_expression=params.get("projectionExpression"),  # type: ignore[arg-type]
        expression_attribute_names=params.get("expressionAttributeNames"),  # type: ignore[arg-type]
    )
    return {"operation": "get-item", "found": result["item"] is not None, **result}


async def _dynamodb_batch_get(call: ToolCall) -> dict[str, object]:
    query = _query(call)
    params = query.query_params
    keys = params["keys"]
    if not isinstance(keys, list):
        raise ToolInputError("queryParams.keys must be a list of key objects", field="queryParams.keys")
    result = await dynamodb.batch_get(
        call.aws,
        str(query.table_name),
        keys,
        projection_expression=params.get("projectionExpression"),  # type: ignore[arg-type]
        expression_attribute_names=params.get("expressionAttributeNames"),  # type: ignore[arg-type]
    )
    return {"operation": "batch-get", **result}


async def _rds_execute_sql(call: ToolCall) -> dict[str, object]:
    query = _query(call)
    params = query.query_params
    result = await rds.execute_sql(
        call.aws,
        resource_arn=str(params["resourceArn"]),
        secret_arn=str(params["secretArn"]),
        sql=str(params["sql"]),
        database=query.database_name or params.get("database"),  # type: ignore[arg-type]
        parameters=params.get("parameters"),  # type: ignore[arg-type]
        include_result_metadata=bool(params.get("includeResultMetadata", True)),
    )
    return {"operation": "execute-sql", **result}


_TABLE = ("tableName",)

QUERY_ROUTES = {
    OperationKey.of("dynamodb", "query"): Route(_dynamodb_query, required=_TABLE),
    OperationKey.of("dynamodb", "scan"): Route(_dynamodb_scan, required=_TABLE),
    OperationKey.of("dynamodb", "get-item"): Route(
        _dynamodb_get_item, required=(*_TABLE, "queryParams.key")
    ),
    OperationKey.of("dynamodb", "batch-get"): Route(
        _dynamodb_batch_get, required=(*_TABLE, "queryParams.keys")
    ),
    OperationKey.of("rds", "execute-sql"): Route(
        _rds_execute_sql,
        required=("queryParams.resourceArn", "queryParams.secretArn", "queryParams.sql"),
    ),
}

QUERY_DISPATCHER = ToolDispatcher(
    name="aws-query-database",
    schema=QUERY_DATABASE_SCHEMA,
    input_model=QueryInput,
    routes=QUERY_ROUTES,
    key_for=lambda params: OperationKey.of(
        cast(QueryInput, params).database_type, cast(QueryInput, params).operation
    ),
    key_label="database operation",
)


async def query_database(payload: dict[str, object]) -> ToolResult:
    return await QUERY_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-manage-secrets --------------------------------------------------------


class SecretsInput(ToolInput):
    service: str
    operation: str
    secret_id: str | None = None
    parameter_name: str | None = None
    secret_value: str | None = None
    description: str | None = None
    parameter_type: str | None = None
    with_decryption: bool = True
    next_token: str | None = None


def _secret(call: ToolCall) -> SecretsInput:
    return cast(SecretsInput, call.params)


def _tagged(service: str, operation: str, payload: dict[str, object]) -> dict[str, object]:
    return {"service": service, "operation": operation, **payload}


async def _sm_get(call: ToolCall) -> dict[str, object]:
    result = await secrets.get_secret(call.aws, str(_secret(call).secret_id))
    return _tagged("secrets-manager", "get", result)


async def _sm_list(call: ToolCall) -> dict[str, object]:
    page = await secrets.list_secrets(call.aws, next_token=_secret(call).next_token)
    listed = page["resources"]
    return _tagged(
        "secrets-manager",
        "list",
        {"count": len(listed), "secrets": listed, "nextToken": page.get("nextToken")},  # type: ignore[arg-type]
    )


async def _sm_create(call: ToolCall) -> dict[str, object]:
    params = _secret(call)
    result = await secrets.create_secret(
        call.aws, str(params.secret_id), str(params.secret_value), params.description
    )
    return _tagged("secrets-manager", "create", result)


async def _sm_update(call: ToolCall) -> dict[str, object]:
    params = _secret(call)
    result = await secrets.update_secret(
        call.aws, str(params.secret_id), str(params.secret_value), params.description
    )
    return _tagged("secrets-manager", "update", result)


async def _sm_delete(call: ToolCall) -> dict[str, object]:
    result = await secrets.delete_secret(call.aws, str(_secret(call).secret_id))
    return _tagged("secrets-manager", "delete", result)


async def _ps_get(call: ToolCall) -> dict[str, object]:
    params = _secret(call)
    result = await secrets.get_parameter(
        call.aws, str(params.parameter_name), with_decryption=params.with_decryption
    )
    return _tagged("parameter-store", "get", result)


async def _ps_get_by_path(call: ToolCall) -> dict[str, object]:
    params = _secret(call)
    result = await secrets.get_parameters_by_path(
        call.aws, str(params.parameter_name), with_decryption=params.with_decryption
    )
    return _tagged("parameter-store", "get-by-path", result)


async def _ps_list(call: ToolCall) -> dict[str, object]:
    page = await secrets.list_parameters(call.aws, next_token=_secret(call).next_token)
    listed = page["resources"]
    return _tagged(
        "parameter-store",
        "list",
        {"count": len(listed), "parameters": listed, "nextToken": page.get("nextToken")},  # type: ignore[arg-type]
    )


def _ps_put(operation: str):
    async def _handler(call: ToolCall) -> dict[str, object]:
        params = _secret(call)
        result = await secrets.put_parameter(
            call.aws,
            str(params.parameter_name),
            str(params.secret_value),
            overwrite=operation == "update",
            parameter_type=params.parameter_type,
            description=params.description,
        )
        return _tagged("parameter-store", operation, result)

    return _handler


async def _ps_delete(call: ToolCall) -> dict[str, object]:
    result = await secrets.delete_parameter(call.aws, str(_secret(call).parameter_name))
    return _tagged("parameter-store", "delete", result)


_SECRET_ID = ("secretId",)
_SECRET_WRITE = ("secretId", "secretValue")
_PARAMETER = ("parameterName",)
_PARAMETER_WRITE = ("parameterName", "secretValue")

SECRETS_ROUTES = {
    OperationKey.of("secrets-manager", "get"): Route(_sm_get, required=_SECRET_ID),
    OperationKey.of("secrets-manager", "list"): Route(_sm_list, cache=True, family="secrets"),
    OperationKey.of("secrets-manager", "create"): Route(
        _sm_create, required=_SECRET_WRITE, mutates=True, family="secrets"
    ),
    OperationKey.of("secrets-manager", "update"): Route(
        _sm_update, required=_SECRET_WRITE, mutates=True, family="secrets"
    ),
    OperationKey.of("secrets-manager", "delete"): Route(
        _sm_delete, required=_SECRET_ID, mutates=True, family="secrets"
    ),
    OperationKey.of("parameter-store", "get"): Route(_ps_get, required=_PARAMETER),
    OperationKey.of("parameter-store", "get-by-path"): Route(_ps_get_by_path, required=_PARAMETER),
    OperationKey.of("parameter-store", "list"): Route(_ps_list, cache=True, family="parameters"),
    OperationKey.of("parameter-store", "create"): Route(
        _ps_put("create"), required=_PARAMETER_WRITE, mutates=True, family="parameters"
    ),
    OperationKey.of("parameter-store", "update"): Route(
        _ps_put("update"), required=_PARAMETER_WRITE, mutates=True, family="parameters"
    ),
    OperationKey.of("parameter-store", "delete"): Route(
        _ps_delete, required=_PARAMETER, mutates=True, family="parameters"
    ),
}

SECRETS_DISPATCHER = ToolDispatcher(
    name="aws-manage-secrets",
    schema=MANAGE_SECRETS_SCHEMA,
    input_model=SecretsInput,
    routes=SECRETS_ROUTES,
    key_for=lambda params: OperationKey.of(
        cast(SecretsInput, params).service, cast(SecretsInput, params).operation
    ),
    key_label="secrets operation",
)


async def manage_secrets(payload: dict[str, object]) -> ToolResult:
    return await SECRETS_DISPATCHER.dispatch(get_app_context(), payload)


query_database_tool = ToolSpec(
    name="aws-query-database",
    description=(
        "Query databases: DynamoDB query, scan, get-item and batch-get with plain JSON "
        "values, or SQL on Aurora through the RDS Data API (execute-sql)."
    ),
    input_schema=QUERY_DATABASE_SCHEMA,
    handler=query_database,
)

manage_secrets_tool = ToolSpec(
    name="aws-manage-secrets",
    description=(
        "Read and manage Secrets Manager secrets and SSM Parameter Store parameters. "
        "Secret deletion keeps the 30-day recovery window."
    ),
    input_schema=MANAGE_SECRETS_SCHEMA,
    handler=manage_secrets,
)
