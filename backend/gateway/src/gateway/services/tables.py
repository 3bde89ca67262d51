"""DynamoDB table layouts used by the gateway."""

from typing import Any

# Logical table -> (hash key, [GSI attributes])
TABLES: dict[str, tuple[str, list[str]]] = {
    "mandates": ("mandate_id", ["subscription_id", "cf_subscription_id"]),
    "payments": ("payment_id", ["mandate_id"]),
    "webhook-events": ("event_key", []),
    "events": ("event_id", []),
    "enrollments": ("enrollment_id", []),
    "users": ("user_id", ["cashfree_merchant_id"]),
}


def index_name(attribute: str) -> str:
    """GSI naming convention: ``<attribute>-index``."""
    return f"{attribute}-index"


def table_definitions(prefix: str) -> list[dict[str, Any]]:
    """Build ``create_table`` kwargs for every gateway table.

    Args:
        prefix: Table name prefix (e.g. ``cashfree-dev``)

    Returns:
        One kwargs dict per table, ready for ``client.create_table(**kwargs)``
    """
    definitions: list[dict[str, Any]] = []
    for table, (hash_key, gsi_attributes) in TABLES.items():
        definition: dict[str, Any] = {
            "TableName": f"{prefix}-{table}",
            "KeySchema": [{"AttributeName": hash_key, "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": name, "AttributeType": "S"}
                for name in [hash_key, *gsi_attributes]
            ],
            "BillingMode": "PAY_PER_REQUEST",
        }
        if gsi_attributes:
            definition["GlobalSecondaryIndexes"] = [
                {
                    "IndexName": index_name(name),
                    "KeySchema": [{"AttributeName": name, "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                }
                for name in gsi_attributes
            ]
        definitions.append(definition)
    return definitions
