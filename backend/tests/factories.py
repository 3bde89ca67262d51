"""Webhook payload builders and signing helpers shared by the test suites."""

import json
import time
from typing import Any

from gateway.services.signature import compute_signature

WEBHOOK_SECRET = "test-partner-key"
# Clock value used by the verifier fixture
FIXED_NOW = 1_736_916_012


def signed_headers(body: str, timestamp: str | None = None, secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    """Headers Cashfree would send for ``body``."""
    ts = timestamp or str(int(time.time()))
    return {
        "x-webhook-signature": compute_signature(secret, ts, body),
        "x-webhook-timestamp": ts,
        "content-type": "application/json",
    }


def payment_success_payload(
    payment_id: str = "pay_001",
    amount: int = 500,
    subscription_id: str = "mandate_E1",
    cf_subscription_id: str | None = "cf_sub_1001",
    event_time: str = "2025-01-15T10:20:12+05:30",
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "payment_id": payment_id,
        "cf_payment_id": f"cf_{payment_id}",
        "payment_type": "CHARGE",
        "payment_amount": amount,
        "payment_currency": "INR",
        "subscription_id": subscription_id,
    }
    if cf_subscription_id:
        data["cf_subscription_id"] = cf_subscription_id
    return {"type": "SUBSCRIPTION_PAYMENT_SUCCESS", "event_time": event_time, "data": data}


def status_changed_payload(
    status: str,
    subscription_id: str = "mandate_E1",
    event_time: str = "2025-01-15T09:00:00+05:30",
) -> dict[str, Any]:
    return {
        "type": "SUBSCRIPTION_STATUS_CHANGED",
        "event_time": event_time,
        "data": {
            "subscription_details": {
                "subscription_id": subscription_id,
                "subscription_status": status,
                "next_schedule_date": "2025-02-01",
            }
        },
    }


def dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"))


# Bearer token accepted by the stub Cognito client in contract tests
VALID_TOKEN = "valid-access-token"
AUTH_HEADERS = {"Authorization": f"Bearer {VALID_TOKEN}"}
