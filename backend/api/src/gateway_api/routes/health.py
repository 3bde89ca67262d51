"""Health and debug endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from gateway.config import get_settings
from gateway.services.authenticator import Principal
from gateway.services.onboarding_service import OnboardingService

from gateway_api.dependencies import get_onboarding_service
from gateway_api.models.common import HealthResponse
from gateway_api.security import require_principal

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Health check",
    response_model=HealthResponse,
)
async def health() -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(UTC).isoformat(),
        environment=get_settings().environment,
    )


@router.get(
    "/merchant/{merchant_id}/status",
    summary="Merchant status",
    description="Fetch a partner merchant's current record from Cashfree. **Requires bearer token.**",
    responses={
        401: {"description": "Bearer token missing or invalid"},
        404: {"description": "Merchant not found"},
        502: {"description": "Cashfree error"},
    },
)
async def merchant_status(
    merchant_id: str,
    principal: Principal = Depends(require_principal),
    onboarding: OnboardingService = Depends(get_onboarding_service),
) -> dict[str, Any]:
    return {"ok": True, "cf_response": onboarding.get_merchant_status(merchant_id)}
