"""Merchant onboarding models."""

from typing import Any

from pydantic import BaseModel


class MerchantOnboardingRecord(BaseModel):
    """Cashfree merchant mapping stored on a user document under ``cashfree``."""

    merchant_id: str | None = None
    onboarding_status: str = "CREATED"
    raw: dict[str, Any] | None = None
