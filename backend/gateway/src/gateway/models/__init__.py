"""Pydantic models for the Cashfree mandate gateway."""

from .enums import (
    MANAGE_ACTION_TARGETS,
    ONBOARDING_EVENT_TYPES,
    AuthPaymentMethod,
    AuthStatus,
    ManageAction,
    PaymentStatus,
    PaymentType,
    SubscriptionStatus,
    WebhookEventType,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorResponse,
    GatewayError,
)
from .mandate import (
    AuthHandle,
    AuthorizeRequest,
    CustomerDetails,
    Mandate,
    MandateHandle,
    PlanDetails,
    SchedulingDetails,
    auth_payment_id_for,
    mandate_id_for,
)
from .onboarding import MerchantOnboardingRecord
from .payment import Payment
from .webhook import AuditEvent, WebhookEvent, webhook_event_key

__all__ = [
    # Enums
    "AuthPaymentMethod",
    "AuthStatus",
    "ManageAction",
    "MANAGE_ACTION_TARGETS",
    "ONBOARDING_EVENT_TYPES",
    "PaymentStatus",
    "PaymentType",
    "SubscriptionStatus",
    "WebhookEventType",
    # Mandate
    "AuthHandle",
    "AuthorizeRequest",
    "CustomerDetails",
    "Mandate",
    "MandateHandle",
    "PlanDetails",
    "SchedulingDetails",
    "auth_payment_id_for",
    "mandate_id_for",
    # Payment
    "Payment",
    # Onboarding
    "MerchantOnboardingRecord",
    # Webhooks and audit
    "AuditEvent",
    "WebhookEvent",
    "webhook_event_key",
    # Errors
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "GatewayError",
]
