"""Caller identity, service quotas and account contact details."""

from __future__ import annotations

from aws_account_mcp.execution.session import AwsSession

STS_CAPABILITY = "sts"
QUOTAS_CAPABILITY = "service-quotas"
ACCOUNT_CAPABILITY = "account"


async def caller_identity(session: AwsSession) -> dict[str, object]:
    response = await session.call(STS_CAPABILITY, "get_caller_identity")
    return {
        "identity": {
            "userId": response.get("UserId"),
            "account": response.get("Account"),
            "arn": response.get("Arn"),
        }
    }


def _quota_view(quota: dict[str, object]) -> dict[str, object]:
    return {
        "quotaName": quota.get("QuotaName"),
        "quotaCode": quota.get("QuotaCode"),
        "quotaArn": quota.get("QuotaArn"),
        "value": quota.get("Value"),
        "unit": quota.get("Unit"),
        "adjustable": quota.get("Adjustable"),
        "globalQuota": quota.get("GlobalQuota"),
        "usageMetric": quota.get("UsageMetric"),
    }


async def list_quotas(
    session: AwsSession,
    service_code: str,
    max_results: int | None = None,
    next_token: str | None = None,
) -> dict[str, object]:
    response = await session.call(
        QUOTAS_CAPABILITY,
        "list_service_quotas",
        ServiceCode=service_code,
        MaxResults=max_results,
        NextToken=next_token,
    )
    quotas = [_quota_view(quota) for quota in response.get("Quotas", [])]
    return {
        "serviceCode": service_code,
        "count": len(quotas),
        "quotas": quotas,
        "nextToken": response.get("NextToken"),
    }


async def quota_details(session: AwsSession, service_code: str, quota_code: str) -> dict[str, object]:
    response = await session.call(
        QUOTAS_CAPABILITY, "get_service_quota", ServiceCode=service_code, QuotaCode=quota_code
    )
    quota = response.get("Quota") or {}
    return {
        "serviceCode": service_code,
        "quota": {
            **_quota_view(quota),
            "period": quota.get("Period"),
            "errorReason": quota.get("ErrorReason"),
        },
    }


async def default_quota(session: AwsSession, service_code: str, quota_code: str) -> dict[str, object]:
    response = await session.call(
        QUOTAS_CAPABILITY,
        "get_aws_default_service_quota",
        ServiceCode=service_code,
        QuotaCode=quota_code,
    )
    return {"serviceCode": service_code, "quota": _quota_view(response.get("Quota") or {})}


async def contact_information(session: AwsSession) -> dict[str, object]:
    response = await session.call(ACCOUNT_CAPABILITY, "get_contact_information")
    return {"contactInformation": response.get("ContactInformation")}
