"""Unit tests for DynamoDBService against moto."""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from gateway.services.dynamodb import DynamoDBService, to_dynamo


class TestThreadedAccess:
    """Background webhook work runs on a threadpool."""

    def test_each_thread_gets_its_own_resource(self, dynamodb_tables: DynamoDBService):
        seen: dict[str, object] = {}

        def grab(name: str) -> None:
            seen[name] = dynamodb_tables._resource()

        threads = [threading.Thread(target=grab, args=(name,)) for name in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert seen["a"] is not seen["b"]
        assert dynamodb_tables._resource() is dynamodb_tables._resource()

    def test_concurrent_writes_from_worker_threads(self, dynamodb_tables: DynamoDBService):
        def write(index: int) -> bool:
            return dynamodb_tables.put_item("events", {"event_id": f"evt_{index}", "type": "t"})

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(write, range(8)))

        assert all(results)
        for index in range(8):
            assert dynamodb_tables.get_item("events", {"event_id": f"evt_{index}"}) is not None


class TestQueryByGsi:
    def test_limit_applied(self, dynamodb_tables: DynamoDBService):
        for index in range(3):
            dynamodb_tables.put_item("payments", {"payment_id": f"pay_{index}", "mandate_id": "mandate_E1"})

        items = dynamodb_tables.query_by_gsi(
            "payments", "mandate_id-index", "mandate_id", "mandate_E1", limit=2
        )

        assert len(items) == 2
        assert {item["mandate_id"] for item in items} == {"mandate_E1"}


class TestToDynamo:
    def test_nested_floats_become_decimals(self):
        assert to_dynamo({"a": [1.5, {"b": 2.25}], "c": None}) == {
            "a": [Decimal("1.5"), {"b": Decimal("2.25")}],
            "c": None,
        }
