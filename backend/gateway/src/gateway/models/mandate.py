"""Mandate (subscription) models.

A mandate is keyed by ``mandate_id = "mandate_" + enrollment_id``. The same
value doubles as the local id, the merchant subscription id sent to Cashfree
and the idempotency key of the create call.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from .enums import AuthPaymentMethod

MANDATE_ID_PREFIX = "mandate_"
AUTH_PAYMENT_ID_PREFIX = "auth_"


def mandate_id_for(enrollment_id: str) -> str:
    """Derive the mandate document id for an enrollment."""
    return f"{MANDATE_ID_PREFIX}{enrollment_id}"


def auth_payment_id_for(enrollment_id: str) -> str:
    """Derive the deterministic AUTH payment id for an enrollment."""
    return f"{AUTH_PAYMENT_ID_PREFIX}{enrollment_id}"


class CustomerDetails(BaseModel):
    """Customer contact details forwarded to Cashfree."""

    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_bank_account_holder_name: str | None = None
    customer_bank_account_number: str | None = None
    customer_bank_ifsc: str | None = None


class PlanDetails(BaseModel):
    """Either an existing Cashfree plan id or an inline plan."""

    plan_id: str | None = None
    plan_name: str | None = None
    plan_type: str = Field(default="PERIODIC", description="PERIODIC or ON_DEMAND")
    plan_amount: float | None = Field(default=None, description="Recurring charge amount")
    plan_max_amount: float | None = None
    plan_currency: str = "INR"
    plan_interval_type: str = Field(default="MONTH", examples=["DAY", "WEEK", "MONTH", "YEAR"])
    plan_intervals: int = 1
    plan_max_cycles: int | None = None
    plan_note: str | None = None


class SchedulingDetails(BaseModel):
    """When the mandate starts and stops charging, and where to send the customer."""

    subscription_first_charge_time: str | None = Field(
        default=None, description="ISO-8601 time of the first CHARGE"
    )
    subscription_expiry_time: str | None = None
    return_url: str | None = None
    payment_methods: list[str] = Field(default_factory=lambda: ["upi"])
    authorization_amount: float = Field(default=1.0, description="AUTH payment amount")


class MandateHandle(BaseModel):
    """Identifiers and status of a located mandate document."""

    mandate_id: str
    subscription_id: str | None = None
    cf_subscription_id: str | None = None
    subscription_session_id: str | None = None
    subscription_status: str | None = None
    enrollment_id: str | None = None
    merchant_id: str | None = None


class AuthHandle(BaseModel):
    """Result of issuing the AUTH payment for a mandate."""

    mandate_id: str
    payment_id: str
    auth_status: str
    payment_payload: dict[str, Any] | None = None


class Mandate(BaseModel):
    """A stored recurring-payment authorization."""

    mandate_id: str = Field(..., description="Document key (mandate_<enrollment_id>)")
    local_id: str | None = None
    subscription_id: str | None = Field(default=None, description="Merchant subscription id")
    cf_subscription_id: str | None = Field(default=None, description="Cashfree internal id")
    subscription_session_id: str | None = None
    subscription_status: str | None = None
    auth_status: str | None = None
    auth_payment_id: str | None = None
    last_payment_status: str | None = None
    last_payment_date: str | None = None
    last_payment_id: str | None = None
    next_schedule_date: str | None = None
    subscription_first_charge_time: str | None = None
    merchant_id: str | None = None
    user_id: str | None = None
    enrollment_id: str | None = None
    plan_amount: Decimal | None = None
    raw_cf_response: dict[str, Any] | None = None
    payment_payload: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthorizeRequest(BaseModel):
    """How the customer will approve the mandate."""

    payment_method: AuthPaymentMethod = AuthPaymentMethod.UPI
    upi_id: str | None = Field(default=None, description="VPA for UPI collect flow")
    upi_channel: str = Field(default="link", description="link, collect or qrcode")
    bank_account_number: str | None = None
    bank_ifsc: str | None = None
    bank_account_type: str | None = None
