"""Mandate (subscription) endpoints.

All routes require a bearer token. Status changes after creation arrive
through webhooks; these endpoints only create, authorize, manage and read.
"""

from fastapi import APIRouter, Depends

from gateway.models.mandate import AuthorizeRequest, Mandate
from gateway.services.authenticator import Principal
from gateway.services.mandate_lifecycle import MandateLifecycle

from gateway_api.dependencies import get_mandate_lifecycle
from gateway_api.models.mandates import (
    AuthorizeResponse,
    CreateMandateRequest,
    CreateMandateResponse,
    ManageMandateRequest,
    ManageMandateResponse,
)
from gateway_api.security import require_principal

router = APIRouter(prefix="/mandate", tags=["mandates"])

AUTH_RESPONSES = {401: {"description": "Bearer token missing or invalid"}}


@router.post(
    "/create",
    summary="Create mandate",
    description="""
Create a Cashfree subscription for an enrollment and persist the mandate.

**Notes:**
- The mandate id is `mandate_<enrollment_id>`; it is also the idempotency key
- A second create for an enrollment that already has a Cashfree subscription returns 409
- A failed attempt that never reached Cashfree can be retried
""",
    response_model=CreateMandateResponse,
    responses={
        **AUTH_RESPONSES,
        400: {"description": "Missing customer contact or plan fields"},
        409: {"description": "Mandate already created for this enrollment"},
        502: {"description": "Cashfree error"},
    },
)
async def create_mandate(
    body: CreateMandateRequest,
    principal: Principal = Depends(require_principal),
    lifecycle: MandateLifecycle = Depends(get_mandate_lifecycle),
) -> CreateMandateResponse:
    handle = lifecycle.create(
        merchant_id=body.merchant_id,
        enrollment_id=body.enrollment_id,
        customer=body.customer,
        plan=body.plan,
        scheduling=body.scheduling,
        user_id=principal.user_id,
    )
    return CreateMandateResponse(
        mandate_id=handle.mandate_id,
        local_id=handle.mandate_id,
        subscription_id=handle.subscription_id,
        cf_subscription_id=handle.cf_subscription_id,
        subscription_session_id=handle.subscription_session_id,
        status=handle.subscription_status,
    )


@router.post(
    "/{enrollment_id}/authorize",
    summary="Authorize mandate",
    description="Raise the AUTH payment the customer approves with their bank or UPI app.",
    response_model=AuthorizeResponse,
    responses={
        **AUTH_RESPONSES,
        404: {"description": "No mandate for the enrollment"},
        409: {"description": "Mandate already authorized"},
        422: {"description": "Mandate has no session or first charge time"},
        502: {"description": "Cashfree error"},
    },
)
async def authorize_mandate(
    enrollment_id: str,
    body: AuthorizeRequest,
    principal: Principal = Depends(require_principal),
    lifecycle: MandateLifecycle = Depends(get_mandate_lifecycle),
) -> AuthorizeResponse:
    auth = lifecycle.authorize(enrollment_id, body)
    return AuthorizeResponse(
        payment_id=auth.payment_id,
        auth_status=auth.auth_status,
        payment_payload=auth.payment_payload,
    )


@router.post(
    "/{subscription_id}/manage",
    summary="Cancel, pause or activate a mandate",
    response_model=ManageMandateResponse,
    responses={**AUTH_RESPONSES, 502: {"description": "Cashfree error"}},
)
async def manage_mandate(
    subscription_id: str,
    body: ManageMandateRequest,
    principal: Principal = Depends(require_principal),
    lifecycle: MandateLifecycle = Depends(get_mandate_lifecycle),
) -> ManageMandateResponse:
    result = lifecycle.manage(subscription_id, body.merchant_id, body.action)
    return ManageMandateResponse(**result)


@router.get(
    "/{enrollment_id}",
    summary="Get mandate",
    response_model=Mandate,
    responses={**AUTH_RESPONSES, 404: {"description": "No mandate for the enrollment"}},
)
async def get_mandate(
    enrollment_id: str,
    principal: Principal = Depends(require_principal),
    lifecycle: MandateLifecycle = Depends(get_mandate_lifecycle),
) -> Mandate:
    return lifecycle.get_mandate(enrollment_id)
