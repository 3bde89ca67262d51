"""Pytest configuration and fixtures for the Cashfree gateway backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all gateway tables created)
- Wired services (store, resolver, payments, lifecycle, reconciler)
- A mocked Cashfree client
- A fixed-clock webhook signature verifier
- A TestClient with service providers overridden
"""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-cashfree")
os.environ.setdefault("PARTNER_API_KEY", "test-partner-key")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from gateway.config import GatewaySettings  # noqa: E402
from gateway.services.authenticator import CognitoAuthenticator  # noqa: E402
from gateway.services.cashfree_client import CashfreeClient  # noqa: E402
from gateway.services.dynamodb import DynamoDBService  # noqa: E402
from gateway.services.event_service import EventService  # noqa: E402
from gateway.services.identifier_resolver import IdentifierResolver  # noqa: E402
from gateway.services.mandate_lifecycle import MandateLifecycle  # noqa: E402
from gateway.services.mandate_store import MandateStore  # noqa: E402
from gateway.services.onboarding_service import OnboardingService  # noqa: E402
from gateway.services.payment_service import PaymentService  # noqa: E402
from gateway.services.signature import SignatureVerifier  # noqa: E402
from gateway.services.tables import table_definitions  # noqa: E402
from gateway.services.webhook_handler import WebhookReconciler  # noqa: E402

from factories import FIXED_NOW, VALID_TOKEN, WEBHOOK_SECRET  # noqa: E402

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Ensures tests using mock_aws get fresh DynamoDB clients created inside
    the mock context rather than one left over from a previous test.
    """
    from gateway_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def dynamodb_tables() -> Generator[DynamoDBService, None, None]:
    """Create every gateway table in moto and yield a service bound to them."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=os.environ["AWS_DEFAULT_REGION"])
        for definition in table_definitions(TABLE_PREFIX):
            client.create_table(**definition)
        yield DynamoDBService()


@pytest.fixture
def store(dynamodb_tables: DynamoDBService) -> MandateStore:
    return MandateStore(dynamodb_tables)


@pytest.fixture
def resolver(store: MandateStore) -> IdentifierResolver:
    return IdentifierResolver(store)


@pytest.fixture
def payments(dynamodb_tables: DynamoDBService) -> PaymentService:
    return PaymentService(dynamodb_tables)


@pytest.fixture
def events(dynamodb_tables: DynamoDBService) -> EventService:
    return EventService(dynamodb_tables)


# === Cashfree Fixtures ===


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(partner_api_key=WEBHOOK_SECRET, http_timeout_seconds=2.0)


@pytest.fixture
def mock_client() -> MagicMock:
    """Cashfree client double with realistic default responses."""
    client = MagicMock(spec=CashfreeClient)
    client.create_subscription.return_value = {
        "cf_subscription_id": "cf_sub_1001",
        "subscription_session_id": "sess_abc",
        "subscription_status": "INITIALIZED",
    }
    client.create_payment.return_value = {
        "cf_payment_id": "cf_pay_1",
        "payment_status": "PENDING",
        "data": {"url": "https://payments.cashfree.com/auth"},
    }
    client.manage_subscription.return_value = {"subscription_status": "ON_HOLD"}
    client.partner_post.return_value = {"merchant_id": "MERCH_1", "onboarding_status": "CREATED"}
    client.partner_get.return_value = {"merchant_id": "MERCH_1", "onboarding_status": "ACTIVE"}
    return client


@pytest.fixture
def lifecycle(
    store: MandateStore,
    resolver: IdentifierResolver,
    mock_client: MagicMock,
    payments: PaymentService,
    events: EventService,
) -> MandateLifecycle:
    return MandateLifecycle(store, resolver, mock_client, payments, events)


@pytest.fixture
def onboarding(
    dynamodb_tables: DynamoDBService, mock_client: MagicMock, events: EventService
) -> OnboardingService:
    return OnboardingService(dynamodb_tables, mock_client, events)


@pytest.fixture
def verifier() -> SignatureVerifier:
    return SignatureVerifier(WEBHOOK_SECRET, tolerance_seconds=300, clock=lambda: FIXED_NOW)


@pytest.fixture
def reconciler(
    dynamodb_tables: DynamoDBService,
    verifier: SignatureVerifier,
    resolver: IdentifierResolver,
    lifecycle: MandateLifecycle,
    events: EventService,
    onboarding: OnboardingService,
) -> WebhookReconciler:
    return WebhookReconciler(dynamodb_tables, verifier, resolver, lifecycle, events, onboarding)


# === Sample Data Fixtures ===


@pytest.fixture
def create_kwargs() -> dict[str, Any]:
    """Arguments for MandateLifecycle.create for enrollment E1."""
    from gateway.models.mandate import CustomerDetails, PlanDetails, SchedulingDetails

    return {
        "merchant_id": "MERCH_1",
        "enrollment_id": "E1",
        "customer": CustomerDetails(
            customer_name="Asha Rao",
            customer_email="asha@example.com",
            customer_phone="9999999999",
        ),
        "plan": PlanDetails(plan_amount=500.0, plan_max_amount=500.0),
        "scheduling": SchedulingDetails(
            subscription_first_charge_time="2025-02-01T10:00:00+05:30",
            return_url="https://example.com/return",
        ),
        "user_id": "user-1",
    }


# === API Fixtures ===


def _get_user(AccessToken: str) -> dict[str, Any]:
    if AccessToken != VALID_TOKEN:
        raise ClientError({"Error": {"Code": "NotAuthorizedException", "Message": "bad"}}, "GetUser")
    return {"Username": "asha", "UserAttributes": [{"Name": "sub", "Value": "user-1"}]}


@pytest.fixture
def authenticator() -> CognitoAuthenticator:
    """Authenticator whose Cognito stub accepts only VALID_TOKEN."""
    cognito = MagicMock()
    cognito.get_user.side_effect = _get_user
    return CognitoAuthenticator(client=cognito)


@pytest.fixture
def api_client(
    authenticator: CognitoAuthenticator,
    lifecycle: MandateLifecycle,
    onboarding: OnboardingService,
    reconciler: WebhookReconciler,
) -> Generator[TestClient, None, None]:
    """TestClient with every service provider overridden.

    Routes run against the moto-backed services above with the Cashfree
    client mocked.
    """
    from gateway_api.dependencies import (
        get_authenticator,
        get_mandate_lifecycle,
        get_onboarding_service,
        get_webhook_reconciler,
    )
    from gateway_api.main import app

    app.dependency_overrides[get_authenticator] = lambda: authenticator
    app.dependency_overrides[get_mandate_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_onboarding_service] = lambda: onboarding
    app.dependency_overrides[get_webhook_reconciler] = lambda: reconciler
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
