"""JSON Schema definitions for the twelve account-management tools.

Discriminator enums here must list exactly the keys of each tool's route
table; ``tests/test_tools_registry.py`` holds them together.
"""

from __future__ import annotations

_CONNECTION = {
    "region": {"type": "string", "description": "AWS region (optional)."},
    "profile": {
        "type": "string",
        "description": "AWS profile to use (optional, falls back to the active profile).",
    },
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}


def _schema(properties: dict[str, object], required: list[str]) -> dict[str, object]:
    return {
        "type": "object",
        "properties": {**properties, **_CONNECTION},
        "required": required,
        "additionalProperties": False,
    }


PROFILE_OPERATIONS = [
    "create",
    "update",
    "delete",
    "list",
    "get",
    "set-active",
    "get-active",
    "validate",
]

ENVIRONMENTS = ["dev", "staging", "production", "test"]

MANAGE_PROFILES_SCHEMA = {
    "type": "object",
    "properties": {
        "operation": {
            "type": "string",
            "enum": PROFILE_OPERATIONS,
            "description": "Profile operation to perform.",
        },
        "profileName": {
            "type": "string",
            "description": "Profile name (required for all operations except list and get-active).",
        },
        "accessKeyId": {"type": "string", "description": "AWS access key id (required for create)."},
        "secretAccessKey": {
            "type": "string",
            "description": "AWS secret access key (required for create).",
        },
        "region": {"type": "string", "description": "Default AWS region (required for create)."},
        "sessionToken": {
            "type": "string",
            "description": "Optional session token for temporary credentials.",
        },
        "environment": {
            "type": "string",
            "enum": ENVIRONMENTS,
            "description": "Environment type (required for create).",
        },
        "description": {"type": "string", "description": "Profile description (optional)."},
    },
    "required": ["operation"],
    "additionalProperties": False,
}

LIST_RESOURCE_TYPES = [
    "ec2-instances",
    "ec2-key-pairs",
    "ec2-security-groups",
    "rds-instances",
    "rds-clusters",
    "rds-snapshots",
    "rds-cluster-snapshots",
    "dynamodb-tables",
    "dynamodb-backups",
    "dynamodb-global-tables",
    "ecs-clusters",
    "ecs-services",
    "ecs-tasks",
    "ecs-task-definitions",
    "eks-clusters",
    "eks-nodegroups",
    "eks-addons",
    "s3-buckets",
    "lambda-functions",
    "log-groups",
    "log-streams",
    "secrets",
    "parameters",
]

LIST_RESOURCES_SCHEMA = _schema(
    {
        "resourceType": {
            "type": "string",
            "enum": LIST_RESOURCE_TYPES,
            "description": "Type of AWS resource to list.",
        },
        "filters": {
            "type": "object",
            "description": (
                "Resource-specific filters: EC2 filter map, clusterName, serviceName, "
                "tableName, prefix, logGroupName, nextToken."
            ),
            "additionalProperties": True,
        },
        "maxResults": {
            "type": "integer",
            "minimum": 1,
            "description": "Maximum number of results to return (optional).",
        },
    },
    ["resourceType"],
)

DESCRIBE_RESOURCE_TYPES = [
    "ec2-instance",
    "ec2-key-pair",
    "ec2-security-group",
    "rds-instance",
    "rds-cluster",
    "rds-snapshot",
    "dynamodb-table",
    "dynamodb-backup",
    "dynamodb-ttl",
    "ecs-cluster",
    "ecs-service",
    "ecs-task",
    "ecs-task-definition",
    "eks-cluster",
    "eks-nodegroup",
    "eks-addon",
    "s3-bucket",
    "lambda-function",
]

DESCRIBE_RESOURCE_SCHEMA = _schema(
    {
        "resourceType": {
            "type": "string",
            "enum": DESCRIBE_RESOURCE_TYPES,
            "description": "Type of AWS resource to describe.",
        },
        "resourceId": {
            "type": "string",
            "minLength": 1,
            "description": "Resource identifier (instance id, table name, cluster ARN, ...).",
        },
        "additionalParams": {
            "type": "object",
            "description": "Extra parameters, e.g. 'cluster' for ECS and EKS child resources.",
            "additionalProperties": True,
        },
    },
    ["resourceType", "resourceId"],
)

ACTIONS = ["start", "stop", "reboot", "terminate", "delete", "update", "restart"]

ACTION_RESOURCE_TYPES = [
    "ec2-instances",
    "rds-instances",
    "rds-clusters",
    "ecs-services",
    "ecs-tasks",
    "eks-nodegroups",
    "lambda-functions",
    "dynamodb-tables",
]

EXECUTE_ACTION_SCHEMA = _schema(
    {
        "action": {"type": "string", "enum": ACTIONS, "description": "Action to perform."},
        "resourceType": {
            "type": "string",
            "enum": ACTION_RESOURCE_TYPES,
            "description": "Type of AWS resource.",
        },
        "resourceIds": {
            **_STRING_LIST,
            "minItems": 1,
            "description": "Resource identifiers to act upon; each is processed independently.",
        },
        "actionParams": {
            "type": "object",
            "description": "Additional parameters for the action.",
            "additionalProperties": True,
        },
    },
    ["action", "resourceType", "resourceIds"],
)

DATABASE_TYPES = ["dynamodb", "rds"]
DATABASE_OPERATIONS = ["query", "scan", "get-item", "batch-get", "execute-sql"]

QUERY_DATABASE_SCHEMA = _schema(
    {
        "databaseType": {
            "type": "string",
            "enum": DATABASE_TYPES,
            "description": "Database service type.",
        },
        "operation": {
            "type": "string",
            "enum": DATABASE_OPERATIONS,
            "description": "Database operation to perform.",
        },
        "tableName": {"type": "string", "description": "Table name (DynamoDB)."},
        "databaseName": {"type": "string", "description": "Database name (RDS)."},
        "queryParams": {
            "type": "object",
            "description": "Conditions, filters, projections, keys or the SQL statement.",
            "additionalProperties": True,
        },
    },
    ["databaseType", "operation"],
)

LOG_OPERATIONS = [
    "list-groups",
    "list-streams",
    "get-events",
    "tail",
    "filter",
    "insights-query",
    "insights-results",
]

LOGS_OPERATIONS_SCHEMA = _schema(
    {
        "operation": {
            "type": "string",
            "enum": LOG_OPERATIONS,
            "description": "CloudWatch Logs operation.",
        },
        "logGroup": {"type": "string", "description": "Log group name."},
        "logStream": {"type": "string", "description": "Log stream name (required for get-events)."},
        "query": {
            "type": "string",
            "description": "Name prefix, filter pattern or Logs Insights query string.",
        },
        "queryId": {"type": "string", "description": "Query id (for insights-results)."},
        "startTime": {
            "type": ["string", "integer"],
            "description": "Start time (ISO 8601 or epoch milliseconds).",
        },
        "endTime": {
            "type": ["string", "integer"],
            "description": "End time (ISO 8601 or epoch milliseconds).",
        },
        "limit": {"type": "integer", "minimum": 1, "description": "Maximum number of results."},
        "nextToken": {
            "type": "string",
            "description": "Token from a previous list-groups, list-streams or filter page.",
        },
        "waitSeconds": {
            "type": "integer",
            "minimum": 0,
            "description": "For insights-query: seconds to wait for completion (0 returns the query id).",
        },
    },
    ["operation"],
)

STATISTICS = ["Average", "Sum", "Minimum", "Maximum", "SampleCount"]

GET_METRICS_SCHEMA = _schema(
    {
        "namespace": {
            "type": "string",
            "minLength": 1,
            "description": "Metric namespace, e.g. AWS/EC2, AWS/RDS, AWS/Lambda.",
        },
        "metricName": {
            "type": "string",
            "description": "Metric name; omit to list the namespace's metrics.",
        },
        "dimensions": {
            "type": "object",
            "description": "Metric dimensions, e.g. {\"InstanceId\": \"i-1234\"}.",
            "additionalProperties": True,
        },
        "statistics": {
            "type": "array",
            "items": {"type": "string", "enum": STATISTICS},
            "description": "Statistics to retrieve (default: Average).",
        },
        "period": {"type": "integer", "minimum": 1, "description": "Period in seconds (default 300)."},
        "startTime": {
            "type": ["string", "integer"],
            "description": "Start time (ISO 8601 or epoch milliseconds, default one hour ago).",
        },
        "endTime": {
            "type": ["string", "integer"],
            "description": "End time (ISO 8601 or epoch milliseconds, default now).",
        },
    },
    ["namespace"],
)

SEARCH_TYPES = [
    "by-service",
    "by-tag",
    "by-arn",
    "all-resources",
    "resource-summary",
    "tag-keys",
    "tag-values",
]

SEARCH_RESOURCES_SCHEMA = _schema(
    {
        "searchType": {"type": "string", "enum": SEARCH_TYPES, "description": "Type of search."},
        "serviceName": {"type": "string", "description": "Service or resource type filter, e.g. ec2."},
        "tagKey": {"type": "string", "description": "Tag key (by-tag, tag-values)."},
        "tagValue": {"type": "string", "description": "Tag value (by-tag)."},
        "arn": {"type": "string", "description": "Resource ARN (by-arn)."},
        "nextToken": {
            "type": "string",
            "description": "Token from a previous by-service or by-tag page.",
        },
        "filters": {
            "type": "object",
            "description": "For all-resources: resourceTypes and tagFilters.",
            "additionalProperties": True,
        },
    },
    ["searchType"],
)

COST_OPERATIONS = ["cost-and-usage", "forecast"]

GET_COSTS_SCHEMA = _schema(
    {
        "operation": {
            "type": "string",
            "enum": COST_OPERATIONS,
            "description": "Cost operation to perform.",
        },
        "startDate": {"type": "string", "description": "Start date (YYYY-MM-DD)."},
        "endDate": {"type": "string", "description": "End date (YYYY-MM-DD)."},
        "granularity": {
            "type": "string",
            "enum": ["DAILY", "MONTHLY", "HOURLY"],
            "description": "Time granularity (default DAILY).",
        },
        "groupBy": {
            "type": "array",
            "items": {
                "type": "string",
                "enum": ["SERVICE", "REGION", "LINKED_ACCOUNT", "USAGE_TYPE"],
            },
            "description": "Group results by dimension.",
        },
        "metrics": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Metrics to retrieve (default UnblendedCost).",
        },
        "filters": {
            "type": "object",
            "description": "services, regions, linkedAccounts, usageTypes and tags.",
            "additionalProperties": True,
        },
    },
    ["operation"],
)

INFO_TYPES = ["identity", "regions", "quotas", "quota-details", "default-quotas", "contact"]

ACCOUNT_INFO_SCHEMA = _schema(
    {
        "infoType": {
            "type": "string",
            "enum": INFO_TYPES,
            "description": "Type of account information to retrieve.",
        },
        "serviceCode": {"type": "string", "description": "Service code, e.g. ec2 (quotas)."},
        "quotaCode": {"type": "string", "description": "Quota code (quota-details, default-quotas)."},
    },
    ["infoType"],
)

SECRET_SERVICES = ["secrets-manager", "parameter-store"]
SECRET_OPERATIONS = ["get", "get-by-path", "list", "create", "update", "delete"]

MANAGE_SECRETS_SCHEMA = _schema(
    {
        "service": {"type": "string", "enum": SECRET_SERVICES, "description": "Service to use."},
        "operation": {
            "type": "string",
            "enum": SECRET_OPERATIONS,
            "description": "Operation to perform.",
        },
        "secretId": {"type": "string", "description": "Secret id or name (Secrets Manager)."},
        "parameterName": {"type": "string", "description": "Parameter name or path (Parameter Store)."},
        "secretValue": {"type": "string", "description": "Secret or parameter value (create/update)."},
        "description": {"type": "string", "description": "Description (create/update)."},
        "parameterType": {
            "type": "string",
            "enum": ["String", "StringList", "SecureString"],
            "description": "Parameter type (default String).",
        },
        "withDecryption": {
            "type": "boolean",
            "description": "Decrypt SecureString parameters (default true).",
        },
        "nextToken": {
            "type": "string",
            "description": "Token from a previous list page.",
        },
    },
    ["service", "operation"],
)

PLATFORMS = ["ecs", "eks"]
CONTAINER_RESOURCE_TYPES = ["clusters", "services", "tasks", "task-definitions", "nodegroups", "addons"]
CONTAINER_OPERATIONS = ["list", "describe", "update", "scale", "restart", "delete", "stop"]

CONTAINER_OPERATIONS_SCHEMA = _schema(
    {
        "platform": {"type": "string", "enum": PLATFORMS, "description": "Container platform."},
        "resourceType": {
            "type": "string",
            "enum": CONTAINER_RESOURCE_TYPES,
            "description": "Resource type to operate on.",
        },
        "operation": {
            "type": "string",
            "enum": CONTAINER_OPERATIONS,
            "description": "Operation to perform.",
        },
        "clusterName": {
            "type": "string",
            "description": "Cluster name (ECS default 'default'; required for EKS child resources).",
        },
        "resourceIds": {
            **_STRING_LIST,
            "description": "Resource identifiers (service names, task ARNs, nodegroup names, ...).",
        },
        "operationParams": {
            "type": "object",
            "description": "Additional parameters for update, scale, delete and stop; nextToken for list.",
            "additionalProperties": True,
        },
    },
    ["platform", "resourceType", "operation"],
)
