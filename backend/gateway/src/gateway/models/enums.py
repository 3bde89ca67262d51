"""Enumeration types for mandate, payment and webhook data."""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a subscription mandate."""

    INITIALIZED = "INITIALIZED"
    BANK_APPROVAL_PENDING = "BANK_APPROVAL_PENDING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CUSTOMER_CANCELLED = "CUSTOMER_CANCELLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class AuthStatus(str, Enum):
    """Status of the mandate authorization (AUTH payment)."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PaymentType(str, Enum):
    """Kind of money movement against a mandate."""

    AUTH = "AUTH"
    CHARGE = "CHARGE"


class PaymentStatus(str, Enum):
    """Status of a single payment attempt."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class AuthPaymentMethod(str, Enum):
    """Instruments the customer can authorize a mandate with."""

    UPI = "upi"
    CARD = "card"
    ENACH = "enach"
    PNACH = "pnach"


class ManageAction(str, Enum):
    """Merchant-initiated subscription management actions."""

    CANCEL = "CANCEL"
    PAUSE = "PAUSE"
    ACTIVATE = "ACTIVATE"


class WebhookEventType(str, Enum):
    """Webhook event types with dedicated handling."""

    SUBSCRIPTION_STATUS_CHANGED = "SUBSCRIPTION_STATUS_CHANGED"
    SUBSCRIPTION_AUTH_STATUS = "SUBSCRIPTION_AUTH_STATUS"
    SUBSCRIPTION_PAYMENT_NOTIFICATION_INITIATED = "SUBSCRIPTION_PAYMENT_NOTIFICATION_INITIATED"
    SUBSCRIPTION_PAYMENT_SUCCESS = "SUBSCRIPTION_PAYMENT_SUCCESS"
    SUBSCRIPTION_PAYMENT_FAILED = "SUBSCRIPTION_PAYMENT_FAILED"
    SUBSCRIPTION_PAYMENT_CANCELLED = "SUBSCRIPTION_PAYMENT_CANCELLED"
    SUBSCRIPTION_REFUND_STATUS = "SUBSCRIPTION_REFUND_STATUS"
    SUBSCRIPTION_CARD_EXPIRY_REMINDER = "SUBSCRIPTION_CARD_EXPIRY_REMINDER"
    MERCHANT_ONBOARDING_STATUS = "MERCHANT_ONBOARDING_STATUS"
    MERCHANT_ONBOARDING = "MERCHANT_ONBOARDING"


# Action -> status the mandate should move to once the processor accepts it
MANAGE_ACTION_TARGETS: dict[ManageAction, SubscriptionStatus] = {
    ManageAction.CANCEL: SubscriptionStatus.CANCELLED,
    ManageAction.PAUSE: SubscriptionStatus.ON_HOLD,
    ManageAction.ACTIVATE: SubscriptionStatus.ACTIVE,
}

ONBOARDING_EVENT_TYPES = frozenset(
    {
        WebhookEventType.MERCHANT_ONBOARDING_STATUS.value,
        WebhookEventType.MERCHANT_ONBOARDING.value,
    }
)
