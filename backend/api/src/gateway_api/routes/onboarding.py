"""Merchant onboarding endpoints.

Provides REST endpoints for:
- Creating a Cashfree partner merchant for a user (bearer token required)
- Requesting a hosted onboarding link (bearer token required)
- The return page Cashfree redirects to after onboarding (public)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from gateway.services.authenticator import Principal
from gateway.services.onboarding_service import OnboardingService

from gateway_api.dependencies import get_onboarding_service
from gateway_api.models.onboarding import CashfreeResponse, OnboardingLinkRequest, OnboardRequest
from gateway_api.security import require_principal

router = APIRouter(prefix="/onboard", tags=["onboarding"])


@router.post(
    "",
    summary="Create partner merchant",
    response_model=CashfreeResponse,
    responses={
        400: {"description": "user_id or merchant_info missing"},
        401: {"description": "Bearer token missing or invalid"},
        502: {"description": "Cashfree error"},
    },
)
async def onboard(
    body: OnboardRequest,
    principal: Principal = Depends(require_principal),
    onboarding: OnboardingService = Depends(get_onboarding_service),
) -> CashfreeResponse:
    response = onboarding.create_merchant(body.user_id, body.merchant_info)
    return CashfreeResponse(cf_response=response)


@router.post(
    "/link",
    summary="Create onboarding link",
    description="""
Request a hosted onboarding link for a merchant.

The merchant is taken from `merchant_id`, or looked up from `user_id`.
Set `link_type` to `standard` for the standard onboarding flow.
""",
    response_model=CashfreeResponse,
    responses={
        400: {"description": "No merchant could be determined"},
        401: {"description": "Bearer token missing or invalid"},
        502: {"description": "Cashfree error"},
    },
)
async def onboarding_link(
    body: OnboardingLinkRequest,
    principal: Principal = Depends(require_principal),
    onboarding: OnboardingService = Depends(get_onboarding_service),
) -> CashfreeResponse:
    response = onboarding.create_onboarding_link(
        merchant_id=body.merchant_id,
        user_id=body.user_id,
        link_type=body.link_type,
        return_url=body.return_url,
    )
    return CashfreeResponse(cf_response=response)


@router.get("/link/callback", response_class=HTMLResponse, summary="Onboarding return page")
async def onboarding_callback() -> str:
    return "<html><body><h3>Onboarding submitted</h3><p>You can close this window.</p></body></html>"
