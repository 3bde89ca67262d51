"""Unit tests for the Cashfree HTTP client using httpx.MockTransport."""

import json

import httpx
import pytest

from gateway.config import GatewaySettings
from gateway.services.cashfree_client import CashfreeClient, CashfreeClientError


# === Test Fixtures ===


class Recorder:
    """Captures requests and replies with a canned response."""

    def __init__(self, status_code: int = 200, body: object = None, raise_exc: Exception | None = None):
        self.status_code = status_code
        self.body = {"ok": True} if body is None else body
        self.raise_exc = raise_exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc:
            raise self.raise_exc
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)


def make_client(settings: GatewaySettings, recorder: Recorder) -> CashfreeClient:
    return CashfreeClient(settings, transport=httpx.MockTransport(recorder))


# === Tests ===


class TestRequests:
    """Tests for URLs, headers and bodies."""

    def test_create_subscription_headers_and_url(self, settings: GatewaySettings):
        recorder = Recorder(body={"cf_subscription_id": "cf_1"})
        client = make_client(settings, recorder)

        response = client.create_subscription("MERCH_1", {"subscription_id": "mandate_E1"}, "mandate_E1")

        assert response == {"cf_subscription_id": "cf_1"}
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://sandbox.cashfree.com/pg/subscriptions"
        assert request.headers["x-partner-apikey"] == "test-partner-key"
        assert request.headers["x-api-version"] == "2025-01-01"
        assert request.headers["x-partner-merchantid"] == "MERCH_1"
        assert request.headers["x-idempotency-key"] == "mandate_E1"
        assert json.loads(request.content) == {"subscription_id": "mandate_E1"}

    def test_create_payment_url(self, settings: GatewaySettings):
        recorder = Recorder()
        make_client(settings, recorder).create_payment("MERCH_1", {"payment_id": "auth_E1"}, "auth_E1")

        assert str(recorder.requests[0].url) == "https://sandbox.cashfree.com/pg/subscriptions/pay"
        assert recorder.requests[0].headers["x-idempotency-key"] == "auth_E1"

    def test_manage_subscription_body(self, settings: GatewaySettings):
        recorder = Recorder()
        make_client(settings, recorder).manage_subscription("MERCH_1", "mandate_E1", "PAUSE")

        request = recorder.requests[0]
        assert str(request.url) == "https://sandbox.cashfree.com/pg/subscriptions/mandate_E1/manage"
        assert json.loads(request.content) == {"subscription_id": "mandate_E1", "action": "PAUSE"}
        assert "x-idempotency-key" not in request.headers

    def test_partner_calls_use_partner_version(self, settings: GatewaySettings):
        recorder = Recorder()
        client = make_client(settings, recorder)

        client.partner_post("/merchants", {"merchant_id": "M1"})
        client.partner_get("merchants/M1")

        post, get = recorder.requests
        assert str(post.url) == "https://api-sandbox.cashfree.com/partners/merchants"
        assert post.headers["x-api-version"] == "2023-01-01"
        assert "x-partner-merchantid" not in post.headers
        assert get.method == "GET"
        assert str(get.url) == "https://api-sandbox.cashfree.com/partners/merchants/M1"

    def test_production_base_urls(self):
        settings = GatewaySettings(partner_api_key="k", cf_env="prod")
        recorder = Recorder()
        make_client(settings, recorder).create_payment("M", {}, "k1")

        assert str(recorder.requests[0].url) == "https://api.cashfree.com/pg/subscriptions/pay"


class TestErrors:
    """Tests for failure mapping to CashfreeClientError."""

    def test_non_2xx_carries_status_and_body(self, settings: GatewaySettings):
        recorder = Recorder(status_code=409, body={"message": "subscription exists"})

        with pytest.raises(CashfreeClientError) as exc_info:
            make_client(settings, recorder).create_subscription("M", {}, "k")

        assert exc_info.value.status_code == 409
        assert exc_info.value.body == {"message": "subscription exists"}
        assert exc_info.value.to_details()["status_code"] == 409

    def test_non_json_error_body_kept_as_text(self, settings: GatewaySettings):
        recorder = Recorder(status_code=502, body="Bad Gateway")

        with pytest.raises(CashfreeClientError) as exc_info:
            make_client(settings, recorder).partner_get("/merchants/M1")

        assert exc_info.value.body == "Bad Gateway"

    @pytest.mark.parametrize("body", ["not json", [1, 2]])
    def test_malformed_success_body(self, settings: GatewaySettings, body):
        with pytest.raises(CashfreeClientError):
            make_client(settings, Recorder(body=body)).partner_get("/merchants/M1")

    def test_timeout(self, settings: GatewaySettings):
        recorder = Recorder(raise_exc=httpx.ReadTimeout("slow"))

        with pytest.raises(CashfreeClientError, match="Timed out"):
            make_client(settings, recorder).create_payment("M", {}, "k")

    def test_connection_error(self, settings: GatewaySettings):
        recorder = Recorder(raise_exc=httpx.ConnectError("refused"))

        with pytest.raises(CashfreeClientError, match="Could not reach"):
            make_client(settings, recorder).create_payment("M", {}, "k")

    def test_missing_partner_key(self):
        recorder = Recorder()
        client = make_client(GatewaySettings(partner_api_key=None), recorder)

        with pytest.raises(CashfreeClientError):
            client.partner_get("/merchants/M1")
        assert recorder.requests == []
