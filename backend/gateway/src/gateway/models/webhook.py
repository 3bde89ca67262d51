"""Webhook dedup ledger and audit log models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

NO_PAYMENT_ID = "NA"


def webhook_event_key(event_type: str, event_time: str | None, payment_id: str | None) -> str:
    """Build the dedup key ``type|event_time|payment_id_or_NA``."""
    return f"{event_type}|{event_time or ''}|{payment_id or NO_PAYMENT_ID}"


class WebhookEvent(BaseModel):
    """A fully applied webhook delivery.

    Presence of a record for ``event_key`` means the delivery was already
    applied and a redelivery with the same key is a no-op. Written only
    after the mutation succeeded.
    """

    model_config = ConfigDict(strict=True)

    event_key: str = Field(
        ...,
        description="Dedup key built from type, event_time and payment id",
        examples=["SUBSCRIPTION_PAYMENT_SUCCESS|2025-01-15T10:20:12+05:30|pay_001"],
    )
    event_type: str = Field(..., examples=["SUBSCRIPTION_STATUS_CHANGED"])
    event_time: str | None = Field(default=None)
    mandate_id: str | None = Field(default=None)
    payment_id: str | None = Field(default=None)
    payload_hash: str = Field(..., description="SHA-256 of the parsed payload")
    processing_result: str = Field(default="success")
    processed_at: datetime = Field(...)


class AuditEvent(BaseModel):
    """Append-only record of a significant gateway action."""

    event_id: str
    type: str = Field(..., examples=["cashfree.mandate.created", "cashfree.webhook.invalid_signature"])
    created_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
