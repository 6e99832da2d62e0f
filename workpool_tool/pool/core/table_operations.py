"""
Table management operations for the work pool.
"""

from typing import Any, Literal

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..constants import (
    ATTR_OWNER_PK,
    ATTR_PK,
    ATTR_POOL_PK,
    ATTR_SK,
    OWNER_INDEX,
    POOL_INDEX,
)
from ..exceptions import (
    StoreUnavailableError,
    TableAlreadyExistsError,
    TableNotFoundError,
    WorkPoolError,
)


def _session_client(region: str | None, profile: str | None) -> Any:
    session = boto3.Session(profile_name=profile, region_name=region)
    return session.client("dynamodb")


def create_table(
    table_name: str,
    region: str | None = None,
    profile: str | None = None,
    billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST",
) -> dict[str, Any]:
    """
    Create DynamoDB table for the work pool.

    The table has PK/SK string keys plus two sparse indexes: pool-index for
    unclaimed items per campaign ordered by creation time, and owner-index
    for owned items per worker ordered by claim time.

    Args:
        table_name: Table name
        region: AWS region (optional)
        profile: AWS profile (optional)
        billing_mode: Billing mode (PAY_PER_REQUEST or PROVISIONED)

    Returns:
        Table description

    Raises:
        TableAlreadyExistsError: If table already exists
    """
    dynamodb = _session_client(region, profile)

    index_throughput: dict[str, Any] = {}
    table_throughput: dict[str, Any] = {}
    if billing_mode == "PROVISIONED":
        capacity = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}
        index_throughput = {"ProvisionedThroughput": capacity}
        table_throughput = {"ProvisionedThroughput": capacity}

    try:
        response = dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": ATTR_PK, "KeyType": "HASH"},  # Partition key
                {"AttributeName": ATTR_SK, "KeyType": "RANGE"},  # Sort key
            ],
            AttributeDefinitions=[
                {"AttributeName": ATTR_PK, "AttributeType": "S"},
                {"AttributeName": ATTR_SK, "AttributeType": "S"},
                {"AttributeName": ATTR_POOL_PK, "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "N"},
                {"AttributeName": ATTR_OWNER_PK, "AttributeType": "S"},
                {"AttributeName": "claimed_at", "AttributeType": "N"},
            ],
            BillingMode=billing_mode,
            GlobalSecondaryIndexes=[
                {
                    "IndexName": POOL_INDEX,
                    "KeySchema": [
                        {"AttributeName": ATTR_POOL_PK, "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                    **index_throughput,
                },
                {
                    "IndexName": OWNER_INDEX,
                    "KeySchema": [
                        {"AttributeName": ATTR_OWNER_PK, "KeyType": "HASH"},
                        {"AttributeName": "claimed_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                    **index_throughput,
                },
            ],
            Tags=[
                {"Key": "ManagedBy", "Value": "workpool-tool"},
                {"Key": "Purpose", "Value": "work-pool"},
            ],
            **table_throughput,
        )
        return response["TableDescription"]  # type: ignore[no-any-return]

    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            raise TableAlreadyExistsError(f"Table '{table_name}' already exists")
        raise WorkPoolError(f"Failed to create table '{table_name}': {e}")
    except BotoCoreError as e:
        raise StoreUnavailableError(f"DynamoDB unreachable: {e}")


def drop_table(
    table_name: str, region: str | None = None, profile: str | None = None
) -> dict[str, Any]:
    """
    Drop DynamoDB table.

    Args:
        table_name: Table name
        region: AWS region (optional)
        profile: AWS profile (optional)

    Returns:
        Table description

    Raises:
        TableNotFoundError: If table does not exist
    """
    dynamodb = _session_client(region, profile)

    try:
        response = dynamodb.delete_table(TableName=table_name)
        return response["TableDescription"]  # type: ignore[no-any-return]
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceNotFoundException":
            raise TableNotFoundError(f"Table '{table_name}' not found")
        raise WorkPoolError(f"Failed to drop table '{table_name}': {e}")
    except BotoCoreError as e:
        raise StoreUnavailableError(f"DynamoDB unreachable: {e}")


def check_table_exists(
    table_name: str, region: str | None = None, profile: str | None = None
) -> bool:
    """
    Check if table exists.

    Args:
        table_name: Table name
        region: AWS region (optional)
        profile: AWS profile (optional)

    Returns:
        True if table exists, False otherwise
    """
    dynamodb = _session_client(region, profile)

    try:
        dynamodb.describe_table(TableName=table_name)
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceNotFoundException":
            return False
        raise WorkPoolError(f"Failed to describe table '{table_name}': {e}")
    except BotoCoreError as e:
        raise StoreUnavailableError(f"DynamoDB unreachable: {e}")
