"""DynamoDB service wrapper for document-style table operations."""

import json
import os
import threading
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

# Module-level singleton for connection reuse
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Get or create the singleton DynamoDB service instance.

    Args:
        environment: Environment name. Only used on first call.

    Returns:
        Shared DynamoDBService instance
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Reset the singleton instance (for testing only).

    This allows tests to create a fresh DynamoDBService inside
    a mock_aws context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def to_dynamo(value: Any) -> Any:
    """Convert floats (at any depth) to Decimal so boto3 accepts the value."""
    if value is None or isinstance(value, (str, bool, int, Decimal)):
        return value
    if isinstance(value, float):
        return Decimal(json.dumps(value))
    if isinstance(value, dict):
        return {str(k): to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return str(value)


class DynamoDBService:
    """Service for DynamoDB operations with environment-aware table names."""

    def __init__(self, environment: str | None = None) -> None:
        """Initialize DynamoDB service.

        Args:
            environment: Environment name (dev/prod). Defaults to ENVIRONMENT env var.
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        # Allow override via DYNAMODB_TABLE_PREFIX for testing
        self.name_prefix = os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"cashfree-{self.environment}"
        )
        # boto3 resources are not thread-safe; background tasks run on a
        # threadpool, so each thread builds its own. The client is shared.
        self._local = threading.local()
        self._client = boto3.client("dynamodb")
        self._serializer = TypeSerializer()

    def table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    def _resource(self) -> Any:
        resource = getattr(self._local, "resource", None)
        if resource is None:
            resource = boto3.Session().resource("dynamodb")
            self._local.resource = resource
        return resource

    def _get_table(self, table: str) -> Any:
        return self._resource().Table(self.table_name(table))

    # Generic CRUD operations

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Table name without prefix
            key: Primary key dict

        Returns:
            Item dict or None if not found
        """
        response = self._get_table(table).get_item(Key=key, ConsistentRead=True)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Table name without prefix
            item: Item to store
            condition_expression: Optional condition for write

        Returns:
            True if successful, False if condition failed
        """
        try:
            kwargs: dict[str, Any] = {"Item": to_dynamo(item)}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self._get_table(table).put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any] | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Update an item with expressions.

        Args:
            table: Table name without prefix
            key: Primary key dict
            update_expression: DynamoDB update expression
            expression_attribute_values: Values for expression
            expression_attribute_names: Names for expression (for reserved words)
            condition_expression: Optional condition for update

        Returns:
            Updated attributes or None if condition failed
        """
        try:
            kwargs: dict[str, Any] = {
                "Key": key,
                "UpdateExpression": update_expression,
                "ReturnValues": "ALL_NEW",
            }
            if expression_attribute_values:
                kwargs["ExpressionAttributeValues"] = to_dynamo(expression_attribute_values)
            if expression_attribute_names:
                kwargs["ExpressionAttributeNames"] = expression_attribute_names
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            response = self._get_table(table).update_item(**kwargs)
            attrs: dict[str, Any] | None = response.get("Attributes")
            return attrs
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise

    def merge_item(
        self,
        table: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        *,
        set_if_not_exists: dict[str, Any] | None = None,
        condition_expression: str | None = None,
        condition_names: dict[str, str] | None = None,
        condition_values: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Merge fields into a document, creating it if absent.

        ``None`` values are skipped so a merge never erases a stored field.
        Attribute names and values are always bound through ``#fN``/``:vN``
        placeholders; a condition supplies its own names and values.

        Args:
            table: Table name without prefix
            key: Primary key dict
            fields: Attributes to SET
            set_if_not_exists: Attributes written only when not yet present
            condition_expression: Optional condition for the merge
            condition_names: Names used by the condition
            condition_values: Values used by the condition

        Returns:
            Updated attributes or None if the condition failed
        """
        names: dict[str, str] = dict(condition_names or {})
        values: dict[str, Any] = dict(condition_values or {})
        clauses: list[str] = []

        def bind(attribute: str, value: Any) -> tuple[str, str]:
            index = len(clauses)
            name_ph, value_ph = f"#f{index}", f":v{index}"
            names[name_ph] = attribute
            values[value_ph] = value
            return name_ph, value_ph

        for attribute, value in fields.items():
            if value is None or attribute in key:
                continue
            name_ph, value_ph = bind(attribute, value)
            clauses.append(f"{name_ph} = {value_ph}")

        for attribute, value in (set_if_not_exists or {}).items():
            if value is None or attribute in key:
                continue
            name_ph, value_ph = bind(attribute, value)
            clauses.append(f"{name_ph} = if_not_exists({name_ph}, {value_ph})")

        if not clauses:
            return self.get_item(table, key)

        return self.update_item(
            table=table,
            key=key,
            update_expression="SET " + ", ".join(clauses),
            expression_attribute_values=values,
            expression_attribute_names=names,
            condition_expression=condition_expression,
        )

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query a GSI by partition key (field-equality lookup).

        Args:
            table: Table name without prefix
            index_name: GSI name
            partition_key_name: Name of partition key attribute
            partition_key_value: Value to query
            limit: Max items to return

        Returns:
            List of items
        """
        kwargs: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(partition_key_name).eq(partition_key_value),
        }
        if limit:
            kwargs["Limit"] = limit

        response = self._get_table(table).query(**kwargs)
        items: list[dict[str, Any]] = response.get("Items", [])
        return items

    def transact_write(
        self,
        items: list[dict[str, Any]],
    ) -> bool:
        """Execute transactional write for multiple items.

        Args:
            items: List of TransactWriteItem dicts (see build_transact_update)

        Returns:
            True if successful, False if transaction was cancelled
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                return False
            raise

    def build_transact_update(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Build a low-level ``Update`` entry for transact_write.

        The client API takes typed attribute values, so keys and values are
        serialised here.
        """
        update: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Key": {k: self._serializer.serialize(v) for k, v in to_dynamo(key).items()},
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": {
                k: self._serializer.serialize(v)
                for k, v in to_dynamo(expression_attribute_values).items()
            },
        }
        if expression_attribute_names:
            update["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            update["ConditionExpression"] = condition_expression
        return {"Update": update}
