"""RDS instances, clusters and snapshots, plus SQL through the RDS Data API."""

from __future__ import annotations

from collections.abc import Sequence

from aws_account_mcp.adapters._common import first, run_batch, tags_to_dict
from aws_account_mcp.execution.session import AwsSession

CAPABILITY = "rds"
DATA_API_CAPABILITY = "rds-data"

# DescribeDB* calls reject MaxRecords outside this range.
MIN_RECORDS = 20
MAX_RECORDS = 100


def page_size(max_results: int | None) -> int | None:
    if max_results is None:
        return None
    return max(MIN_RECORDS, min(MAX_RECORDS, max_results))


async def list_instances(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_db_instances", MaxRecords=page_size(max_results), Marker=next_token
    )
    return {
        "resources": [
            {
                "identifier": db.get("DBInstanceIdentifier"),
                "engine": db.get("Engine"),
                "engineVersion": db.get("EngineVersion"),
                "status": db.get("DBInstanceStatus"),
                "instanceClass": db.get("DBInstanceClass"),
                "endpoint": (db.get("Endpoint") or {}).get("Address"),
                "port": (db.get("Endpoint") or {}).get("Port"),
            }
            for db in response.get("DBInstances", [])
        ],
        "nextToken": response.get("Marker"),
    }


async def list_clusters(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_db_clusters", MaxRecords=page_size(max_results), Marker=next_token
    )
    return {
        "resources": [
            {
                "identifier": cluster.get("DBClusterIdentifier"),
                "engine": cluster.get("Engine"),
                "engineVersion": cluster.get("EngineVersion"),
                "status": cluster.get("Status"),
                "endpoint": cluster.get("Endpoint"),
                "readerEndpoint": cluster.get("ReaderEndpoint"),
            }
            for cluster in response.get("DBClusters", [])
        ],
        "nextToken": response.get("Marker"),
    }


async def list_snapshots(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_db_snapshots", MaxRecords=page_size(max_results), Marker=next_token
    )
    return {
        "resources": [
            {
                "identifier": snapshot.get("DBSnapshotIdentifier"),
                "instanceIdentifier": snapshot.get("DBInstanceIdentifier"),
                "status": snapshot.get("Status"),
                "snapshotType": snapshot.get("SnapshotType"),
                "createTime": snapshot.get("SnapshotCreateTime"),
            }
            for snapshot in response.get("DBSnapshots", [])
        ],
        "nextToken": response.get("Marker"),
    }


async def list_cluster_snapshots(
    session: AwsSession, max_results: int | None = None, next_token: str | None = None
) -> dict[str, object]:
    response = await session.call(
        CAPABILITY,
        "describe_db_cluster_snapshots",
        MaxRecords=page_size(max_results),
        Marker=next_token,
    )
    return {
        "resources": [
            {
                "identifier": snapshot.get("DBClusterSnapshotIdentifier"),
                "clusterIdentifier": snapshot.get("DBClusterIdentifier"),
                "status": snapshot.get("Status"),
                "snapshotType": snapshot.get("SnapshotType"),
                "createTime": snapshot.get("SnapshotCreateTime"),
            }
            for snapshot in response.get("DBClusterSnapshots", [])
        ],
        "nextToken": response.get("Marker"),
    }


async def describe_instance(session: AwsSession, identifier: str) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_db_instances", DBInstanceIdentifier=identifier
    )
    db = first(response.get("DBInstances"), "RDS instance", identifier)
    endpoint = db.get("Endpoint")
    return {
        "dbInstanceIdentifier": db.get("DBInstanceIdentifier"),
        "dbInstanceClass": db.get("DBInstanceClass"),
        "engine": db.get("Engine"),
        "engineVersion": db.get("EngineVersion"),
        "status": db.get("DBInstanceStatus"),
        "availabilityZone": db.get("AvailabilityZone"),
        "multiAZ": db.get("MultiAZ"),
        "endpoint": {"address": endpoint.get("Address"), "port": endpoint.get("Port")}
        if endpoint
        else None,
        "allocatedStorage": db.get("AllocatedStorage"),
        "storageType": db.get("StorageType"),
        "vpcId": (db.get("DBSubnetGroup") or {}).get("VpcId"),
        "securityGroups": [
            {"id": group.get("VpcSecurityGroupId"), "status": group.get("Status")}
            for group in db.get("VpcSecurityGroups", [])
        ],
        "backupRetentionPeriod": db.get("BackupRetentionPeriod"),
        "publiclyAccessible": db.get("PubliclyAccessible"),
        "tags": tags_to_dict(db.get("TagList")),
    }


async def describe_cluster(session: AwsSession, identifier: str) -> dict[str, object]:
    response = await session.call(CAPABILITY, "describe_db_clusters", DBClusterIdentifier=identifier)
    cluster = first(response.get("DBClusters"), "RDS cluster", identifier)
    return {
        "dbClusterIdentifier": cluster.get("DBClusterIdentifier"),
        "engine": cluster.get("Engine"),
        "engineVersion": cluster.get("EngineVersion"),
        "status": cluster.get("Status"),
        "endpoint": cluster.get("Endpoint"),
        "readerEndpoint": cluster.get("ReaderEndpoint"),
        "multiAZ": cluster.get("MultiAZ"),
        "members": [
            {"instanceId": member.get("DBInstanceIdentifier"), "isWriter": member.get("IsClusterWriter")}
            for member in cluster.get("DBClusterMembers", [])
        ],
        "availabilityZones": cluster.get("AvailabilityZones", []),
        "backupRetentionPeriod": cluster.get("BackupRetentionPeriod"),
        "tags": tags_to_dict(cluster.get("TagList")),
    }


async def describe_snapshot(session: AwsSession, identifier: str) -> dict[str, object]:
    response = await session.call(
        CAPABILITY, "describe_db_snapshots", DBSnapshotIdentifier=identifier
    )
    snapshot = first(response.get("DBSnapshots"), "RDS snapshot", identifier)
    return {
        "dbSnapshotIdentifier": snapshot.get("DBSnapshotIdentifier"),
        "dbInstanceId": snapshot.get("DBInstanceIdentifier"),
        "snapshotType": snapshot.get("SnapshotType"),
        "status": snapshot.get("Status"),
        "engine": snapshot.get("Engine"),
        "engineVersion": snapshot.get("EngineVersion"),
        "allocatedStorage": snapshot.get("AllocatedStorage"),
        "snapshotCreateTime": snapshot.get("SnapshotCreateTime"),
        "encrypted": snapshot.get("Encrypted"),
    }


async def start_instances(session: AwsSession, identifiers: Sequence[str]) -> list[dict[str, object]]:
    async def _start(identifier: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY, "start_db_instance", DBInstanceIdentifier=identifier
        )
        return {"status": (response.get("DBInstance") or {}).get("DBInstanceStatus")}

    return await run_batch(identifiers, "instanceId", _start)


async def stop_instances(session: AwsSession, identifiers: Sequence[str]) -> list[dict[str, object]]:
    async def _stop(identifier: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "stop_db_instance", DBInstanceIdentifier=identifier)
        return {"status": (response.get("DBInstance") or {}).get("DBInstanceStatus")}

    return await run_batch(identifiers, "instanceId", _stop)


async def reboot_instances(
    session: AwsSession, identifiers: Sequence[str]
) -> list[dict[str, object]]:
    async def _reboot(identifier: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY, "reboot_db_instance", DBInstanceIdentifier=identifier
        )
        return {"status": (response.get("DBInstance") or {}).get("DBInstanceStatus")}

    return await run_batch(identifiers, "instanceId", _reboot)


async def delete_instances(
    session: AwsSession,
    identifiers: Sequence[str],
    skip_final_snapshot: bool = True,
    final_snapshot_identifier: str | None = None,
) -> list[dict[str, object]]:
    async def _delete(identifier: str) -> dict[str, object]:
        response = await session.call(
            CAPABILITY,
            "delete_db_instance",
            DBInstanceIdentifier=identifier,
            SkipFinalSnapshot=skip_final_snapshot,
            FinalDBSnapshotIdentifier=None if skip_final_snapshot else final_snapshot_identifier,
        )
        return {"status": (response.get("DBInstance") or {}).get("DBInstanceStatus")}

    return await run_batch(identifiers, "instanceId", _delete)


async def start_clusters(session: AwsSession, identifiers: Sequence[str]) -> list[dict[str, object]]:
    async def _start(identifier: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "start_db_cluster", DBClusterIdentifier=identifier)
        return {"status": (response.get("DBCluster") or {}).get("Status")}

    return await run_batch(identifiers, "clusterId", _start)


async def stop_clusters(session: AwsSession, identifiers: Sequence[str]) -> list[dict[str, object]]:
    async def _stop(identifier: str) -> dict[str, object]:
        response = await session.call(CAPABILITY, "stop_db_cluster", DBClusterIdentifier=identifier)
        return {"status": (response.get("DBCluster") or {}).get("Status")}

    return await run_batch(identifiers, "clusterId", _stop)


async def execute_sql(
    session: AwsSession,
    resource_arn: str,
    secret_arn: str,
    sql: str,
    database: str | None = None,
    parameters: list[dict[str, object]] | None = None,
    include_result_metadata: bool = True,
) -> dict[str, object]:
    response = await session.call(
        DATA_API_CAPABILITY,
        "execute_statement",
        resourceArn=resource_arn,
        secretArn=secret_arn,
        sql=sql,
        database=database,
        parameters=parameters,
        includeResultMetadata=include_result_metadata,
    )
    return {
        "database": database,
        "numberOfRecordsUpdated": response.get("numberOfRecordsUpdated"),
        "records": response.get("records", []),
        "columnMetadata": response.get("columnMetadata", []),
        "generatedFields": response.get("generatedFields", []),
    }
