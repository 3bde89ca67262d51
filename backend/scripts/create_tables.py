#!/usr/bin/env python3
"""Create the gateway's DynamoDB tables.

Intended for local development (DynamoDB Local) and fresh sandbox
accounts. Existing tables are left alone.

Usage:
    python scripts/create_tables.py --env dev
    python scripts/create_tables.py --env dev --endpoint-url http://localhost:8000
"""

import argparse
import os
import sys
from pathlib import Path

# Add the gateway package to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "gateway" / "src"))

import boto3  # noqa: E402
from botocore.exceptions import ClientError  # noqa: E402

from gateway.services.tables import table_definitions  # noqa: E402


def create_tables(prefix: str, region: str | None, endpoint_url: str | None) -> list[str]:
    """Create every missing table.

    Returns:
        Names of the tables that were created
    """
    client = boto3.client("dynamodb", region_name=region, endpoint_url=endpoint_url)
    created: list[str] = []
    for definition in table_definitions(prefix):
        name = definition["TableName"]
        try:
            client.create_table(**definition)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                print(f"  exists   {name}")
                continue
            raise
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"  created  {name}")
        created.append(name)
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Create gateway DynamoDB tables")
    parser.add_argument("--env", default=os.getenv("ENVIRONMENT", "dev"), help="Environment name")
    parser.add_argument("--prefix", default=None, help="Table prefix (default: cashfree-<env>)")
    parser.add_argument("--region", default=os.getenv("AWS_DEFAULT_REGION"), help="AWS region")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. DynamoDB Local)")
    args = parser.parse_args()

    prefix = args.prefix or os.getenv("DYNAMODB_TABLE_PREFIX") or f"cashfree-{args.env}"
    print(f"Creating tables with prefix {prefix}")
    created = create_tables(prefix, args.region, args.endpoint_url)
    print(f"Done: {len(created)} table(s) created")


if __name__ == "__main__":
    main()
