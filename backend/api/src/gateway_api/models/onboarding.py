"""Request and response bodies for merchant onboarding endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class OnboardRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User that owns the merchant")
    merchant_info: dict[str, Any] = Field(
        ...,
        description="Merchant details forwarded to Cashfree",
        examples=[{"merchant_id": "MERCH_123", "merchant_email": "owner@example.com"}],
    )


class OnboardingLinkRequest(BaseModel):
    merchant_id: str | None = Field(default=None, description="Merchant id; looked up from user_id if omitted")
    user_id: str | None = None
    link_type: str | None = Field(default=None, examples=["standard"])
    return_url: str | None = None


class CashfreeResponse(BaseModel):
    """Processor response passed through to the caller."""

    ok: bool = True
    cf_response: dict[str, Any]
