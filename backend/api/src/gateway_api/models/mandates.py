"""Request and response bodies for mandate endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from gateway.models.enums import ManageAction
from gateway.models.mandate import CustomerDetails, PlanDetails, SchedulingDetails


class CreateMandateRequest(BaseModel):
    """Body of POST /mandate/create."""

    merchant_id: str = Field(..., min_length=1, description="Cashfree merchant id", examples=["MERCH_123"])
    enrollment_id: str = Field(..., min_length=1, description="Enrollment being paid for", examples=["E1"])
    customer: CustomerDetails
    plan: PlanDetails
    scheduling: SchedulingDetails = Field(default_factory=SchedulingDetails)


class CreateMandateResponse(BaseModel):
    ok: bool = True
    mandate_id: str
    local_id: str
    subscription_id: str | None = None
    cf_subscription_id: str | None = None
    subscription_session_id: str | None = None
    status: str | None = Field(default=None, examples=["INITIALIZED"])


class AuthorizeResponse(BaseModel):
    ok: bool = True
    payment_id: str = Field(..., examples=["auth_E1"])
    auth_status: str = Field(..., examples=["PENDING"])
    payment_payload: dict[str, Any] | None = None


class ManageMandateRequest(BaseModel):
    """Body of POST /mandate/{subscription_id}/manage."""

    merchant_id: str | None = Field(default=None, description="Cashfree merchant id")
    action: ManageAction = Field(..., examples=["PAUSE"])


class ManageMandateResponse(BaseModel):
    ok: bool = True
    mandate_id: str
    applied: bool = Field(..., description="Whether the local status changed")
    subscription_status: str | None = None
    cf_response: dict[str, Any] | None = None
