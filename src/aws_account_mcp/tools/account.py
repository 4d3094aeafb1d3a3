"""Account tools: aws-get-costs and aws-account-info."""

from __future__ import annotations

from typing import cast

from aws_account_mcp.adapters import account, costs, ec2
from aws_account_mcp.app import get_app_context
from aws_account_mcp.domain.operations import OperationKey
from aws_account_mcp.mcp_runtime import ToolResult, ToolSpec
from aws_account_mcp.tools._dispatch import Route, ToolCall, ToolDispatcher, ToolInput
from aws_account_mcp.tools._schemas import ACCOUNT_INFO_SCHEMA, GET_COSTS_SCHEMA

# -- aws-get-costs -------------------------------------------------------------


class CostsInput(ToolInput):
    operation: str
    start_date: str | None = None
    end_date: str | None = None
    granularity: str | None = None
    group_by: list[str] | None = None
    metrics: list[str] | None = None
    filters: dict[str, object] = {}


def _costs(call: ToolCall) -> CostsInput:
    return cast(CostsInput, call.params)


async def _cost_and_usage(call: ToolCall) -> dict[str, object]:
    params = _costs(call)
    result = await costs.cost_and_usage(
        call.aws,
        str(params.start_date),
        str(params.end_date),
        granularity=params.granularity,
        metrics=params.metrics,
        group_by=params.group_by,
        filters=params.filters,
    )
    return {"operation": "cost-and-usage", **result}


async def _forecast(call: ToolCall) -> dict[str, object]:
    params = _costs(call)
    result = await costs.forecast(
        call.aws,
        str(params.end_date),
        start_date=params.start_date,
        granularity=params.granularity,
        metrics=params.metrics,
        filters=params.filters,
    )
    return {"operation": "forecast", **result}


COSTS_ROUTES = {
    OperationKey.of("cost-and-usage"): Route(_cost_and_usage, required=("startDate", "endDate")),
    OperationKey.of("forecast"): Route(_forecast, required=("endDate",)),
}

COSTS_DISPATCHER = ToolDispatcher(
    name="aws-get-costs",
    schema=GET_COSTS_SCHEMA,
    input_model=CostsInput,
    routes=COSTS_ROUTES,
    key_for=lambda params: OperationKey.of(cast(CostsInput, params).operation),
    key_label="cost operation",
    fixed_region=costs.REGION,
)


async def get_costs(payload: dict[str, object]) -> ToolResult:
    return await COSTS_DISPATCHER.dispatch(get_app_context(), payload)


# -- aws-account-info ----------------------------------------------------------


class AccountInput(ToolInput):
    info_type: str
    service_code: str | None = None
    quota_code: str | None = None


def _account(call: ToolCall) -> AccountInput:
    return cast(AccountInput, call.params)


async def _identity(call: ToolCall) -> dict[str, object]:
    result = await account.caller_identity(call.aws)
    return {"infoType": "identity", **result}


async def _regions(call: ToolCall) -> dict[str, object]:
    result = await ec2.describe_regions(call.aws)
    return {"infoType": "regions", **result}


async def _quotas(call: ToolCall) -> dict[str, object]:
    result = await account.list_quotas(call.aws, str(_account(call).service_code))
    return {"infoType": "quotas", **result}


async def _quota_details(call: ToolCall) -> dict[str, object]:
    params = _account(call)
    result = await account.quota_details(call.aws, str(params.service_code), str(params.quota_code))
    return {"infoType": "quota-details", **result}


async def _default_quotas(call: ToolCall) -> dict[str, object]:
    params = _account(call)
    result = await account.default_quota(call.aws, str(params.service_code), str(params.quota_code))
    return {"infoType": "default-quotas", **result}


async def _contact(call: ToolCall) -> dict[str, object]:
    result = await account.contact_information(call.aws)
    return {"infoType": "contact", **result}


_QUOTA = ("serviceCode", "quotaCode")

ACCOUNT_ROUTES = {
    OperationKey.of("identity"): Route(_identity),
    OperationKey.of("regions"): Route(_regions),
    OperationKey.of("quotas"): Route(_quotas, required=("serviceCode",)),
    OperationKey.of("quota-details"): Route(_quota_details, required=_QUOTA),
    OperationKey.of("default-quotas"): Route(_default_quotas, required=_QUOTA),
    OperationKey.of("contact"): Route(_contact),
}

ACCOUNT_DISPATCHER = ToolDispatcher(
    name="aws-account-info",
    schema=ACCOUNT_INFO_SCHEMA,
    input_model=AccountInput,
    routes=ACCOUNT_ROUTES,
    key_for=lambda params: OperationKey.of(cast(AccountInput, params).info_type),
    key_label="info type",
)


async def account_info(payload: dict[str, object]) -> ToolResult:
    return await ACCOUNT_DISPATCHER.dispatch(get_app_context(), payload)


get_costs_tool = ToolSpec(
    name="aws-get-costs",
    description=(
        "Cost Explorer: cost-and-usage for a date range (YYYY-MM-DD) with optional grouping "
        "and filters, or a cost forecast up to endDate. Always queried in us-east-1."
    ),
    input_schema=GET_COSTS_SCHEMA,
    handler=get_costs,
)

account_info_tool = ToolSpec(
    name="aws-account-info",
    description=(
        "Account information: caller identity, all regions with opt-in status, service "
        "quotas (serviceCode, quotaCode) and account contact details."
    ),
    input_schema=ACCOUNT_INFO_SCHEMA,
    handler=account_info,
)
