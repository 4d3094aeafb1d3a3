"""Secrets Manager secrets and SSM Parameter Store parameters."""

from __future__ import annotations

import base64

from aws_account_mcp.adapters._common import tags_to_dict
from aws_account_mcp.execution.session import AwsSession

SECRETS_CAPABILITY = "secretsmanager"
PARAMETERS_CAPABILITY = "ssm"
DEFAULT_PARAMETER_TYPE = "String"
DELETION_NOTE = "Secret scheduled for deletion with 30-day recovery period"


# -- Secrets Manager ------------------------------------------------------------


async def get_secret(session: AwsSession, secret_id: str) -> dict[str, object]:
    response = await session.call(SECRETS_CAPABILITY, "get_secret_value", SecretId=secret_id)
    binary = response.get("SecretBinary")
    return {
        "secret": {
            "arn": response.get("ARN"),
            "name": response.get("Name"),
            "versionId": response.get("VersionId"),
            "secretString": response.get("SecretString"),
            "secretBinary": base64.b64encode(binary).decode("ascii") if binary else None,
            "createdDate": response.get("CreatedDate"),
        }
    }


async def list_secrets(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        SECRETS_CAPABILITY, "list_secrets", MaxResults=max_results, NextToken=next_token
    )
    return {
        "resources": [
            {
                "arn": secret.get("ARN"),
                "name": secret.get("Name"),
                "description": secret.get("Description"),
                "lastChangedDate": secret.get("LastChangedDate"),
                "lastAccessedDate": secret.get("LastAccessedDate"),
                "tags": tags_to_dict(secret.get("Tags")),
            }
            for secret in response.get("SecretList", [])
        ],
        "nextToken": response.get("NextToken"),
    }


async def create_secret(
    session: AwsSession, name: str, value: str, description: str | None = None
) -> dict[str, object]:
    response = await session.call(
        SECRETS_CAPABILITY,
        "create_secret",
        Name=name,
        SecretString=value,
        Description=description,
    )
    return {
        "secret": {
            "arn": response.get("ARN"),
            "name": response.get("Name"),
            "versionId": response.get("VersionId"),
        }
    }


async def update_secret(
    session: AwsSession, secret_id: str, value: str, description: str | None = None
) -> dict[str, object]:
    response = await session.call(
        SECRETS_CAPABILITY,
        "update_secret",
        SecretId=secret_id,
        SecretString=value,
        Description=description,
    )
    return {
        "secret": {
            "arn": response.get("ARN"),
            "name": response.get("Name"),
            "versionId": response.get("VersionId"),
        }
    }


async def delete_secret(session: AwsSession, secret_id: str) -> dict[str, object]:
    response = await session.call(
        SECRETS_CAPABILITY,
        "delete_secret",
        SecretId=secret_id,
        ForceDeleteWithoutRecovery=False,
    )
    return {
        "secret": {
            "arn": response.get("ARN"),
            "name": response.get("Name"),
            "deletionDate": response.get("DeletionDate"),
        },
        "note": DELETION_NOTE,
    }


# -- Parameter Store ------------------------------------------------------------


def _parameter_view(parameter: dict[str, object]) -> dict[str, object]:
    return {
        "name": parameter.get("Name"),
        "type": parameter.get("Type"),
        "value": parameter.get("Value"),
        "version": parameter.get("Version"),
        "lastModifiedDate": parameter.get("LastModifiedDate"),
        "arn": parameter.get("ARN"),
    }


async def get_parameter(
    session: AwsSession, name: str, with_decryption: bool = True
) -> dict[str, object]:
    response = await session.call(
        PARAMETERS_CAPABILITY, "get_parameter", Name=name, WithDecryption=with_decryption
    )
    return {"parameter": _parameter_view(response.get("Parameter") or {})}


async def get_parameters_by_path(
    session: AwsSession,
    path: str,
    with_decryption: bool = True,
    recursive: bool = True,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        PARAMETERS_CAPABILITY,
        "get_parameters_by_path",
        Path=path,
        Recursive=recursive,
        WithDecryption=with_decryption,
        NextToken=next_token,
    )
    parameters = [_parameter_view(item) for item in response.get("Parameters", [])]
    return {
        "path": path,
        "count": len(parameters),
        "parameters": parameters,
        "nextToken": response.get("NextToken"),
    }


async def list_parameters(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        PARAMETERS_CAPABILITY, "describe_parameters", MaxResults=max_results, NextToken=next_token
    )
    return {
        "resources": [
            {
                "name": parameter.get("Name"),
                "type": parameter.get("Type"),
                "description": parameter.get("Description"),
                "version": parameter.get("Version"),
                "lastModifiedDate": parameter.get("LastModifiedDate"),
                "tier": parameter.get("Tier"),
            }
            for parameter in response.get("Parameters", [])
        ],
        "nextToken": response.get("NextToken"),
    }


async def put_parameter(
    session: AwsSession,
    name: str,
    value: str,
    *,
    overwrite: bool,
    parameter_type: str | None = None,
    description: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        PARAMETERS_CAPABILITY,
        "put_parameter",
        Name=name,
        Value=value,
        Type=parameter_type or DEFAULT_PARAMETER_TYPE,
        Overwrite=overwrite,
        Description=description,
    )
    return {
        "parameter": {
            "name": name,
            "version": response.get("Version"),
            "tier": response.get("Tier"),
        }
    }


async def delete_parameter(session: AwsSession, name: str) -> dict[str, object]:
    await session.call(PARAMETERS_CAPABILITY, "delete_parameter", Name=name)
    return {"parameter": {"name": name}, "message": f"Parameter {name} deleted"}
