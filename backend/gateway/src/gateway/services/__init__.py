"""Backend services for the Cashfree mandate gateway."""

from .authenticator import CognitoAuthenticator, Principal
from .cashfree_client import CashfreeClient, CashfreeClientError
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .event_service import EventService
from .identifier_resolver import IdentifierResolver, extract_identifiers
from .mandate_lifecycle import MandateLifecycle
from .mandate_store import MandateStore
from .onboarding_service import OnboardingService
from .payment_service import PaymentRecordError, PaymentService
from .signature import SignatureVerifier, compute_signature
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .tables import table_definitions
from .webhook_handler import WebhookReconciler

__all__ = [
    "CashfreeClient",
    "CashfreeClientError",
    "CognitoAuthenticator",
    "DynamoDBService",
    "EventService",
    "IdentifierResolver",
    "MandateLifecycle",
    "MandateStore",
    "OnboardingService",
    "PaymentRecordError",
    "PaymentService",
    "Principal",
    "SignatureVerifier",
    "SSMService",
    "SSMServiceError",
    "WebhookReconciler",
    "compute_signature",
    "extract_identifiers",
    "get_dynamodb_service",
    "get_ssm_service",
    "reset_dynamodb_service",
    "table_definitions",
]
