"""Cashfree webhook signature verification.

Signature scheme: ``base64(HMAC-SHA256(secret, "{timestamp}.{raw_body}"))``
where ``timestamp`` is the header value exactly as received.
"""

import base64
import hashlib
import hmac
import logging
import math
import time
from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-webhook-signature", "x-cashfree-signature")
TIMESTAMP_HEADERS = ("x-webhook-timestamp", "x-cashfree-timestamp")

# Longer timestamps are milliseconds
SECONDS_TIMESTAMP_DIGITS = 10


def compute_signature(secret: str, timestamp: str, raw_body: str | bytes) -> str:
    """Compute the expected base64 signature for a webhook body."""
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8")
    message = f"{timestamp}.{raw_body}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    lowered = {str(k).lower(): v for k, v in headers.items()}
    for name in names:
        value = lowered.get(name)
        if value:
            return str(value)
    return None


class SignatureVerifier:
    """Validates authenticity and freshness of inbound webhooks.

    ``verify`` never raises. Anything unexpected is logged and treated as
    an invalid signature.

    Args:
        secret: Signing secret; when missing every webhook is rejected
        tolerance_seconds: Accepted clock distance in either direction
        clock: Returns current UNIX time in seconds
    """

    def __init__(
        self,
        secret: str | None,
        tolerance_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._tolerance = tolerance_seconds
        self._clock = clock

    def verify(self, headers: Mapping[str, str], raw_body: str | bytes | None) -> bool:
        """Check the signature and timestamp headers against the raw body.

        Args:
            headers: Request headers (any case)
            raw_body: Exact request body as received

        Returns:
            True only when the signature matches and the timestamp is fresh
        """
        try:
            if not self._secret:
                logger.error("Webhook signing secret is not configured; rejecting webhook")
                return False

            signature = _first_header(headers, SIGNATURE_HEADERS)
            timestamp = _first_header(headers, TIMESTAMP_HEADERS)
            if not signature or not timestamp or not raw_body:
                return False

            try:
                ts_value = float(timestamp)
            except ValueError:
                return False
            if not math.isfinite(ts_value):
                return False

            ts_seconds = ts_value // 1000 if len(timestamp) > SECONDS_TIMESTAMP_DIGITS else ts_value
            if abs(math.floor(self._clock()) - ts_seconds) > self._tolerance:
                logger.warning("Webhook timestamp %s outside tolerance window", timestamp)
                return False

            expected = compute_signature(self._secret, timestamp, raw_body).encode("utf-8")
            provided = signature.encode("utf-8")
            if len(expected) != len(provided):
                return False
            return hmac.compare_digest(expected, provided)
        except Exception:
            logger.exception("Webhook signature verification error")
            return False
