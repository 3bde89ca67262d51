"""FastAPI dependency injection providers for gateway services.

Services are lazily instantiated and cached with @lru_cache.

Service Dependency Graph:
    GatewaySettings (get_settings)
    DynamoDBService (singleton via get_dynamodb_service)
        ├── MandateStore
        │       └── IdentifierResolver
        ├── EventService
        ├── PaymentService
        └── OnboardingService ── CashfreeClient
    MandateLifecycle (store, resolver, client, payments, events)
    WebhookReconciler (verifier, resolver, lifecycle, events, onboarding)

Testing:
    Use reset_services() to clear cached instances between tests, or
    app.dependency_overrides to swap a provider.
"""

from functools import lru_cache

from gateway.config import get_settings
from gateway.services.authenticator import CognitoAuthenticator
from gateway.services.cashfree_client import CashfreeClient
from gateway.services.dynamodb import get_dynamodb_service
from gateway.services.event_service import EventService
from gateway.services.identifier_resolver import IdentifierResolver
from gateway.services.mandate_lifecycle import MandateLifecycle
from gateway.services.mandate_store import MandateStore
from gateway.services.onboarding_service import OnboardingService
from gateway.services.payment_service import PaymentService
from gateway.services.signature import SignatureVerifier
from gateway.services.webhook_handler import WebhookReconciler


@lru_cache
def get_cashfree_client() -> CashfreeClient:
    return CashfreeClient(get_settings())


@lru_cache
def get_event_service() -> EventService:
    return EventService(db=get_dynamodb_service(), prefix=get_settings().event_type_prefix)


@lru_cache
def get_mandate_store() -> MandateStore:
    return MandateStore(db=get_dynamodb_service())


@lru_cache
def get_identifier_resolver() -> IdentifierResolver:
    return IdentifierResolver(store=get_mandate_store())


@lru_cache
def get_payment_service() -> PaymentService:
    return PaymentService(db=get_dynamodb_service())


@lru_cache
def get_mandate_lifecycle() -> MandateLifecycle:
    """Get cached MandateLifecycle wired to the shared store and client."""
    return MandateLifecycle(
        store=get_mandate_store(),
        resolver=get_identifier_resolver(),
        client=get_cashfree_client(),
        payments=get_payment_service(),
        events=get_event_service(),
    )


@lru_cache
def get_onboarding_service() -> OnboardingService:
    return OnboardingService(
        db=get_dynamodb_service(),
        client=get_cashfree_client(),
        events=get_event_service(),
    )


@lru_cache
def get_signature_verifier() -> SignatureVerifier:
    settings = get_settings()
    return SignatureVerifier(settings.webhook_secret, settings.webhook_tolerance_seconds)


@lru_cache
def get_webhook_reconciler() -> WebhookReconciler:
    """Get cached WebhookReconciler with every collaborator wired in."""
    return WebhookReconciler(
        db=get_dynamodb_service(),
        verifier=get_signature_verifier(),
        resolver=get_identifier_resolver(),
        lifecycle=get_mandate_lifecycle(),
        events=get_event_service(),
        onboarding=get_onboarding_service(),
    )


@lru_cache
def get_authenticator() -> CognitoAuthenticator:
    return CognitoAuthenticator(region=get_settings().cognito_region)


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also closes the cached Cashfree HTTP client and resets the settings
    cache and the DynamoDB singleton.
    """
    from gateway.services.dynamodb import reset_dynamodb_service

    if get_cashfree_client.cache_info().currsize:
        get_cashfree_client().close()
    for provider in (
        get_cashfree_client,
        get_event_service,
        get_mandate_store,
        get_identifier_resolver,
        get_payment_service,
        get_mandate_lifecycle,
        get_onboarding_service,
        get_signature_verifier,
        get_webhook_reconciler,
        get_authenticator,
    ):
        provider.cache_clear()
    get_settings.cache_clear()
    reset_dynamodb_service()
