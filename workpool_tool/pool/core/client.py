"""
DynamoDB client wrapper with error handling.
"""

from collections.abc import Iterator
from typing import Any

import boto3
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import (
    ConditionFailedError,
    StorePermissionError,
    StoreThrottledError,
    StoreUnavailableError,
    TableNotFoundError,
    WorkPoolError,
)

_THROTTLING_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
}


class DynamoDBClient:
    """DynamoDB client wrapper with error handling."""

    def __init__(
        self,
        table_name: str,
        region: str | None = None,
        profile: str | None = None,
    ):
        """
        Initialize DynamoDB client.

        Args:
            table_name: DynamoDB table name
            region: AWS region (optional, uses SDK default)
            profile: AWS profile (optional, uses SDK default)
        """
        session = boto3.Session(profile_name=profile, region_name=region)
        self.dynamodb = session.resource("dynamodb")
        self.client = session.client("dynamodb")
        self.table = self.dynamodb.Table(table_name)
        self.table_name = table_name
        self._serializer = TypeSerializer()

    def put_item(
        self,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Put item with optional condition.

        Args:
            item: Item to put
            condition_expression: Optional condition expression
            expression_attribute_names: Optional expression attribute names
            expression_attribute_values: Optional expression attribute values

        Returns:
            Response from DynamoDB

        Raises:
            ConditionFailedError: If condition fails
            WorkPoolError: For other DynamoDB errors
        """
        kwargs: dict[str, Any] = {"Item": item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = expression_attribute_names
        if expression_attribute_values:
            kwargs["ExpressionAttributeValues"] = expression_attribute_values
        return self._call(self.table.put_item, **kwargs)

    def get_item(self, key: dict[str, Any], consistent: bool = True) -> dict[str, Any] | None:
        """
        Get item by key.

        Args:
            key: Key to retrieve
            consistent: Use a strongly consistent read (default: True)

        Returns:
            Item if found, None otherwise

        Raises:
            WorkPoolError: For DynamoDB errors
        """
        response = self._call(self.table.get_item, Key=key, ConsistentRead=consistent)
        return response.get("Item")

    def update_item(
        self,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
        condition_expression: str | None = None,
        return_values: str = "ALL_NEW",
    ) -> dict[str, Any]:
        """
        Update item with optional condition.

        This is a single atomic write: the condition is evaluated against the
        item as stored at commit time.

        Args:
            key: Key of the item to update
            update_expression: Update expression (SET / REMOVE / ADD)
            expression_attribute_names: Optional expression attribute names
            expression_attribute_values: Optional expression attribute values
            condition_expression: Optional condition expression
            return_values: Which attributes to return (default: ALL_NEW)

        Returns:
            Response from DynamoDB

        Raises:
            ConditionFailedError: If condition fails
            WorkPoolError: For other DynamoDB errors
        """
        kwargs: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ReturnValues": return_values,
        }
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = expression_attribute_names
        if expression_attribute_values:
            kwargs["ExpressionAttributeValues"] = expression_attribute_values
        return self._call(self.table.update_item, **kwargs)

    def query(
        self,
        key_condition_expression: Any,
        index_name: str | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        Query one page of items by key condition.

        Args:
            key_condition_expression: Key condition expression
            index_name: Optional secondary index to query
            limit: Maximum number of items to evaluate
            scan_index_forward: Ascending sort key order when True
            exclusive_start_key: Pagination token from a previous page

        Returns:
            Tuple of (items, last evaluated key or None when exhausted)

        Raises:
            WorkPoolError: For DynamoDB errors
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition_expression,
            "ScanIndexForward": scan_index_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if limit:
            kwargs["Limit"] = limit
        if exclusive_start_key:
            kwargs["ExclusiveStartKey"] = exclusive_start_key

        response = self._call(self.table.query, **kwargs)
        return response.get("Items", []), response.get("LastEvaluatedKey")

    def scan(self, filter_expression: Any | None = None) -> Iterator[dict[str, Any]]:
        """
        Scan the table, following pagination.

        Args:
            filter_expression: Optional filter expression

        Yields:
            Items matching the filter

        Raises:
            WorkPoolError: For DynamoDB errors
        """
        kwargs: dict[str, Any] = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression

        while True:
            response = self._call(self.table.scan, **kwargs)
            yield from response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    def transact_put(self, items: list[dict[str, Any]]) -> None:
        """
        Put several new items atomically. Each put requires the key to be absent.

        Args:
            items: Items in resource (Python) format

        Raises:
            ConditionFailedError: If any of the keys already exists
            WorkPoolError: For other DynamoDB errors
        """
        transact_items = [
            {
                "Put": {
                    "TableName": self.table_name,
                    "Item": {k: self._serializer.serialize(v) for k, v in item.items()},
                    "ConditionExpression": "attribute_not_exists(PK)",
                }
            }
            for item in items
        ]
        self._call(self.client.transact_write_items, TransactItems=transact_items)

    def transact_update(self, updates: list[dict[str, Any]]) -> None:
        """
        Apply several conditional updates atomically.

        Args:
            updates: One dict per update with keys key, update_expression,
                expression_attribute_names, expression_attribute_values and
                optionally condition_expression, all in resource (Python) format

        Raises:
            ConditionFailedError: If any condition fails. `reasons` holds the
                cancellation code of each update in request order.
            WorkPoolError: For other DynamoDB errors
        """
        transact_items = []
        for update in updates:
            request: dict[str, Any] = {
                "TableName": self.table_name,
                "Key": {k: self._serializer.serialize(v) for k, v in update["key"].items()},
                "UpdateExpression": update["update_expression"],
                "ExpressionAttributeNames": update["expression_attribute_names"],
                "ExpressionAttributeValues": {
                    k: self._serializer.serialize(v)
                    for k, v in update["expression_attribute_values"].items()
                },
            }
            if update.get("condition_expression"):
                request["ConditionExpression"] = update["condition_expression"]
            transact_items.append({"Update": request})
        self._call(self.client.transact_write_items, TransactItems=transact_items)

    def _call(self, method: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return method(**kwargs)  # type: ignore[no-any-return]
        except ClientError as e:
            self._handle_error(e)
            raise  # For type checker
        except BotoCoreError as e:
            raise StoreUnavailableError(f"DynamoDB unreachable: {e}")

    def _handle_error(self, error: ClientError) -> None:
        """
        Convert boto3 errors to work pool exceptions.

        Args:
            error: ClientError from boto3

        Raises:
            ConditionFailedError: If condition check failed
            TableNotFoundError: If table not found
            StoreThrottledError: If throttled
            StorePermissionError: If permission denied
            StoreUnavailableError: For transient service failures
            WorkPoolError: For other errors
        """
        code = error.response["Error"]["Code"]

        if code == "ConditionalCheckFailedException":
            raise ConditionFailedError(f"Condition failed: {error}")
        elif code == "TransactionCanceledException":
            reasons = [
                reason.get("Code", "None")
                for reason in error.response.get("CancellationReasons", [])
            ]
            if "ConditionalCheckFailed" in reasons or "ConditionalCheckFailed" in str(error):
                raise ConditionFailedError(
                    f"Transaction condition failed: {error}", reasons=reasons
                )
            raise StoreUnavailableError(f"Transaction cancelled - retry: {error}")
        elif code == "ResourceNotFoundException":
            raise TableNotFoundError(f"Table '{self.table_name}' not found")
        elif code in _THROTTLING_CODES:
            raise StoreThrottledError("DynamoDB throttling - retry with backoff")
        elif code == "AccessDeniedException":
            raise StorePermissionError("AWS permission denied")
        elif code in ("InternalServerError", "ServiceUnavailable"):
            raise StoreUnavailableError(f"DynamoDB unavailable: {error}")
        else:
            raise WorkPoolError(f"DynamoDB error: {error}")
