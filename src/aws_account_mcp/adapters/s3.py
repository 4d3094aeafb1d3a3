"""S3 buckets."""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "s3"

logger = logging.getLogger(__name__)


async def list_buckets(session: AwsSession) -> dict[str, object]:
    response = await session.call(CAPABILITY, "list_buckets")
    return {
        "resources": [
            {"name": bucket.get("Name"), "creationDate": bucket.get("CreationDate")}
            for bucket in response.get("Buckets", [])
        ]
    }


async def describe_bucket(session: AwsSession, bucket_name: str) -> dict[str, object]:
    # A missing bucket fails here and propagates; the optional settings below may be absent.
    location = await session.call(CAPABILITY, "get_bucket_location", Bucket=bucket_name)
    resource: dict[str, object] = {
        "bucketName": bucket_name,
        "location": location.get("LocationConstraint") or "us-east-1",
        "versioning": None,
        "encryption": None,
    }
    try:
        versioning = await session.call(CAPABILITY, "get_bucket_versioning", Bucket=bucket_name)
        resource["versioning"] = {
            "status": versioning.get("Status"),
            "mfaDelete": versioning.get("MFADelete"),
        }
    except ClientError as exc:
        logger.debug("Versioning unavailable for %s: %s", bucket_name, exc)
    try:
        encryption = await session.call(CAPABILITY, "get_bucket_encryption", Bucket=bucket_name)
        rules = (encryption.get("ServerSideEncryptionConfiguration") or {}).get("Rules", [])
        resource["encryption"] = {"rules": rules}
    except ClientError as exc:
        logger.debug("Encryption configuration unavailable for %s: %s", bucket_name, exc)
    return resource
