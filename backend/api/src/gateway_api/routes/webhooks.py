"""Cashfree webhook endpoint.

Does NOT require bearer authentication: the payload is authenticated by
its timestamped HMAC signature. The signature is checked before anything
is acknowledged; a verified delivery is acknowledged immediately and
applied in a background task.
"""

import json
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel
from starlette.status import HTTP_200_OK

from gateway.models.errors import ErrorCode, GatewayError
from gateway.services.webhook_handler import WebhookReconciler
from gateway.utils.logging import get_logger
from gateway_api.dependencies import get_webhook_reconciler

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


class WebhookResponse(BaseModel):
    """Acknowledgement of a verified delivery."""

    received: bool
    event_type: str | None = None


@router.post(
    "/webhook",
    summary="Cashfree webhook",
    response_model=WebhookResponse,
    status_code=HTTP_200_OK,
    responses={
        400: {"description": "Body is not a JSON object"},
        401: {"description": "Invalid or stale signature"},
    },
)
async def cashfree_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
) -> WebhookResponse:
    raw_body = await request.body()
    headers = dict(request.headers)

    if not reconciler.verify(headers, raw_body):
        raise GatewayError(ErrorCode.INVALID_WEBHOOK_SIGNATURE)

    try:
        payload: Any = json.loads(raw_body)
    except ValueError as e:
        raise GatewayError(ErrorCode.VALIDATION_ERROR, {"reason": "body is not valid JSON"}) from e
    if not isinstance(payload, dict):
        raise GatewayError(ErrorCode.VALIDATION_ERROR, {"reason": "body must be a JSON object"})

    background_tasks.add_task(reconciler.process, payload, headers)
    logger.info("Accepted webhook %s", payload.get("type"))
    return WebhookResponse(received=True, event_type=payload.get("type"))
