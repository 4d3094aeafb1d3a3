"""Tool registry and agreement between schema enums and route tables."""

from __future__ import annotations

import asyncio
import itertools
from unittest.mock import MagicMock, patch

import pytest

from aws_account_mcp.tools import _schemas, get_tool_registry, get_tool_specs, register_tools
from aws_account_mcp.tools.account import ACCOUNT_DISPATCHER, COSTS_DISPATCHER
from aws_account_mcp.tools.containers import CONTAINER_DISPATCHER
from aws_account_mcp.tools.data import QUERY_DISPATCHER, SECRETS_DISPATCHER
from aws_account_mcp.tools.profiles import DISPATCHER as PROFILES_DISPATCHER
from aws_account_mcp.tools.resources import (
    ACTION_DISPATCHER,
    DESCRIBE_DISPATCHER,
    LIST_DISPATCHER,
    SEARCH_DISPATCHER,
)
from aws_account_mcp.tools.telemetry import LOGS_DISPATCHER

TOOL_NAMES = [
    "aws-manage-profiles",
    "aws-list-resources",
    "aws-describe-resource",
    "aws-execute-action",
    "aws-query-database",
    "aws-logs-operations",
    "aws-get-metrics",
    "aws-search-resources",
    "aws-get-costs",
    "aws-account-info",
    "aws-manage-secrets",
    "aws-container-operations",
]


def _keys(dispatcher) -> set[tuple[str, ...]]:
    return {key.parts for key in dispatcher.routes}


def test_get_tool_specs_and_registry() -> None:
    names = [tool.name for tool in get_tool_specs()]

    assert names == TOOL_NAMES
    assert list(get_tool_registry()) == TOOL_NAMES


def test_register_tools_adds_all_specs() -> None:
    server = MagicMock()
    with patch("aws_account_mcp.tools.get_logger") as mock_get_logger:
        logger = MagicMock()
        mock_get_logger.return_value = logger
        register_tools(server)

    assert server.add_tool.call_count == len(TOOL_NAMES)
    assert logger.info.call_count >= 2


@pytest.mark.parametrize("spec", get_tool_specs(), ids=lambda spec: spec.name)
def test_every_schema_is_closed_and_takes_region(spec) -> None:
    schema = spec.input_schema

    assert schema["type"] == "object"
    assert schema["additionalProperties"] is False
    assert "region" in schema["properties"]
    # Profile management works on the store itself, never through a profile.
    assert ("profile" in schema["properties"]) is (spec.name != "aws-manage-profiles")
    assert spec.description


@pytest.mark.parametrize(
    ("dispatcher", "values"),
    [
        (PROFILES_DISPATCHER, _schemas.PROFILE_OPERATIONS),
        (LIST_DISPATCHER, _schemas.LIST_RESOURCE_TYPES),
        (DESCRIBE_DISPATCHER, _schemas.DESCRIBE_RESOURCE_TYPES),
        (LOGS_DISPATCHER, _schemas.LOG_OPERATIONS),
        (SEARCH_DISPATCHER, _schemas.SEARCH_TYPES),
        (COSTS_DISPATCHER, _schemas.COST_OPERATIONS),
        (ACCOUNT_DISPATCHER, _schemas.INFO_TYPES),
    ],
    ids=lambda value: getattr(value, "name", None),
)
def test_single_discriminator_enums_match_routes(dispatcher, values) -> None:
    assert _keys(dispatcher) == {(value,) for value in values}


@pytest.mark.parametrize(
    ("dispatcher", "axes"),
    [
        (ACTION_DISPATCHER, (_schemas.ACTION_RESOURCE_TYPES, _schemas.ACTIONS)),
        (QUERY_DISPATCHER, (_schemas.DATABASE_TYPES, _schemas.DATABASE_OPERATIONS)),
        (SECRETS_DISPATCHER, (_schemas.SECRET_SERVICES, _schemas.SECRET_OPERATIONS)),
        (
            CONTAINER_DISPATCHER,
            (_schemas.PLATFORMS, _schemas.CONTAINER_RESOURCE_TYPES, _schemas.CONTAINER_OPERATIONS),
        ),
    ],
    ids=lambda value: getattr(value, "name", None),
)
def test_composite_routes_stay_inside_schema_enums(dispatcher, axes) -> None:
    keys = _keys(dispatcher)

    assert keys <= set(itertools.product(*axes))
    for position, values in enumerate(axes):
        assert {key[position] for key in keys} == set(values)


def test_every_unrouted_action_combination_is_reported_unsupported(app_context) -> None:
    routed = _keys(ACTION_DISPATCHER)
    for resource_type, action in itertools.product(
        _schemas.ACTION_RESOURCE_TYPES, _schemas.ACTIONS
    ):
        if (resource_type, action) in routed:
            continue
        result = asyncio.run(
            ACTION_DISPATCHER.dispatch(
                app_context,
                {"action": action, "resourceType": resource_type, "resourceIds": ["x"]},
            )
        )
        assert result.is_error is True
        assert "Unsupported" in result.structured_content["error"]["message"]


def test_every_unrouted_container_combination_is_reported_unsupported(app_context) -> None:
    routed = _keys(CONTAINER_DISPATCHER)
    for key in itertools.product(
        _schemas.PLATFORMS, _schemas.CONTAINER_RESOURCE_TYPES, _schemas.CONTAINER_OPERATIONS
    ):
        if key in routed:
            continue
        platform, resource_type, operation = key
        result = asyncio.run(
            CONTAINER_DISPATCHER.dispatch(
                app_context,
                {"platform": platform, "resourceType": resource_type, "operation": operation},
            )
        )
        assert result.is_error is True
        assert result.structured_content["error"]["code"] == "UnsupportedOperation"
