"""HTTP client for the Cashfree partner and payment-gateway APIs.

Every call carries the partner API key and an API version header.
Subscription-scoped calls also carry ``x-partner-merchantid``; create calls
carry ``x-idempotency-key``. Any network failure, timeout, non-2xx status or
non-JSON body raises CashfreeClientError.
"""

import logging
from typing import Any

import httpx

from gateway.config import GatewaySettings

logger = logging.getLogger(__name__)


class CashfreeClientError(Exception):
    """Raised when a Cashfree call fails or returns an unusable response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def to_details(self) -> dict[str, Any]:
        return {"status_code": self.status_code, "body": self.body, "message": str(self)}


class CashfreeClient:
    """Synchronous Cashfree API client.

    Args:
        settings: Gateway settings (base URLs, key, versions, timeout)
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        settings: GatewaySettings,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._http = httpx.Client(
            timeout=settings.http_timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._http.close()

    def _headers(
        self,
        api_version: str,
        merchant_id: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, str]:
        if not self._settings.partner_api_key:
            raise CashfreeClientError("Cashfree partner API key is not configured")

        headers = {
            "x-partner-apikey": self._settings.partner_api_key,
            "x-api-version": api_version,
        }
        if merchant_id:
            headers["x-partner-merchantid"] = merchant_id
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._http.request(method, url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            logger.error("Cashfree %s %s timed out", method, url)
            raise CashfreeClientError(f"Timed out calling {url}") from e
        except httpx.HTTPError as e:
            logger.error("Cashfree %s %s failed: %s", method, url, e)
            raise CashfreeClientError(f"Could not reach {url}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            logger.warning("Cashfree %s %s returned %s", method, url, response.status_code)
            raise CashfreeClientError(
                f"Cashfree returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=payload if payload is not None else response.text,
            )

        if not isinstance(payload, dict):
            raise CashfreeClientError(
                "Cashfree returned a malformed response",
                status_code=response.status_code,
                body=response.text,
            )
        return payload

    # Payment gateway (subscriptions)

    def create_subscription(
        self,
        merchant_id: str,
        payload: dict[str, Any],
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Create a subscription for a partner merchant.

        Args:
            merchant_id: Cashfree merchant id the subscription belongs to
            payload: Subscription request body
            idempotency_key: Key that makes a retried create a no-op upstream

        Returns:
            Parsed response body

        Raises:
            CashfreeClientError: On any failure
        """
        return self._request(
            "POST",
            f"{self._settings.pg_base_url}/subscriptions",
            self._headers(self._settings.pg_api_version, merchant_id, idempotency_key),
            payload,
        )

    def create_payment(
        self,
        merchant_id: str | None,
        payload: dict[str, Any],
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Raise an AUTH or CHARGE payment against a subscription."""
        return self._request(
            "POST",
            f"{self._settings.pg_base_url}/subscriptions/pay",
            self._headers(self._settings.pg_api_version, merchant_id, idempotency_key),
            payload,
        )

    def manage_subscription(
        self,
        merchant_id: str | None,
        subscription_id: str,
        action: str,
    ) -> dict[str, Any]:
        """Send a CANCEL, PAUSE or ACTIVATE action for a subscription."""
        return self._request(
            "POST",
            f"{self._settings.pg_base_url}/subscriptions/{subscription_id}/manage",
            self._headers(self._settings.pg_api_version, merchant_id),
            {"subscription_id": subscription_id, "action": action},
        )

    # Partner API (merchants)

    def partner_post(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request(
            "POST",
            f"{self._settings.partners_base_url}/{path.lstrip('/')}",
            self._headers(self._settings.partner_api_version),
            body or {},
        )

    def partner_get(self, path: str) -> dict[str, Any]:
        return self._request(
            "GET",
            f"{self._settings.partners_base_url}/{path.lstrip('/')}",
            self._headers(self._settings.partner_api_version),
        )
