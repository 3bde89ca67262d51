"""Payment model for AUTH and CHARGE records tied to a mandate."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentStatus, PaymentType


class Payment(BaseModel):
    """One money movement attempt against a mandate.

    Created and updated only from Cashfree notifications. ``payment_id`` is
    the processor-supplied merchant payment id and is the idempotency key
    for success processing.
    """

    model_config = ConfigDict(strict=True)

    payment_id: str = Field(..., description="Merchant payment id from Cashfree")
    mandate_id: str | None = Field(default=None, description="Owning mandate document")
    subscription_id: str | None = Field(default=None, description="Merchant subscription id")
    cf_payment_id: str | None = Field(default=None, description="Cashfree internal payment id")
    payment_type: PaymentType | None = Field(default=None, description="AUTH or CHARGE")
    payment_status: PaymentStatus = Field(..., description="Latest known status")
    amount: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="INR")
    failure_reason: str | None = Field(default=None)
    refund_status: str | None = Field(default=None)
    refund_amount: Decimal | None = Field(default=None, ge=0)
    raw: dict[str, Any] | None = Field(default=None, description="Last notification payload")
    created_at: datetime | None = None
    updated_at: datetime | None = None
