"""Locate a stored mandate from whichever identifier a payload carries.

Cashfree payloads name the same subscription differently across API
versions. Extraction is an ordered list of pure functions per identifier;
resolution tries the document key, then ``subscription_id``, then
``cf_subscription_id``.
"""

import logging
from collections.abc import Callable
from typing import Any

from gateway.models.mandate import MandateHandle

from .mandate_store import MandateStore

logger = logging.getLogger(__name__)

Extractor = Callable[[dict[str, Any]], str | None]


def _path(*keys: str) -> Extractor:
    """Build an extractor that walks ``keys`` through nested dicts."""

    def extract(payload: dict[str, Any]) -> str | None:
        node: Any = payload
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if node is None or node == "":
            return None
        return str(node)

    extract.__name__ = "extract_" + "_".join(keys)
    return extract


CF_SUBSCRIPTION_ID_EXTRACTORS: list[Extractor] = [
    _path("data", "subscription_details", "cf_subscription_id"),
    _path("data", "cf_subscription_id"),
    _path("data", "cfSubscriptionId"),
]

SUBSCRIPTION_ID_EXTRACTORS: list[Extractor] = [
    _path("data", "subscription_details", "subscription_id"),
    _path("data", "subscription_id"),
    _path("data", "subscriptionId"),
    _path("data", "subscription", "id"),
]

PAYMENT_ID_EXTRACTORS: list[Extractor] = [
    _path("data", "payment_id"),
    _path("data", "cf_payment_id"),
]

AMOUNT_EXTRACTORS: list[Extractor] = [
    _path("data", "payment_amount"),
    _path("data", "amount"),
]

# Create-subscription responses, wrapped in ``data`` by some API versions
RESPONSE_CF_SUBSCRIPTION_ID_EXTRACTORS: list[Extractor] = [
    _path("data", "cf_subscription_id"),
    _path("cf_subscription_id"),
]

RESPONSE_SESSION_ID_EXTRACTORS: list[Extractor] = [
    _path("data", "subscription_session_id"),
    _path("subscription_session_id"),
]


def first_match(payload: dict[str, Any], extractors: list[Extractor]) -> str | None:
    """Return the first non-empty value produced by ``extractors``."""
    for extractor in extractors:
        value = extractor(payload)
        if value:
            return value
    return None


def extract_identifiers(payload: dict[str, Any]) -> dict[str, str | None]:
    """Pull every identifier the reconciler needs out of a webhook payload."""
    return {
        "cf_subscription_id": first_match(payload, CF_SUBSCRIPTION_ID_EXTRACTORS),
        "subscription_id": first_match(payload, SUBSCRIPTION_ID_EXTRACTORS),
        "payment_id": first_match(payload, PAYMENT_ID_EXTRACTORS),
    }


def _to_handle(item: dict[str, Any]) -> MandateHandle:
    return MandateHandle(
        mandate_id=item["mandate_id"],
        subscription_id=item.get("subscription_id"),
        cf_subscription_id=item.get("cf_subscription_id"),
        subscription_session_id=item.get("subscription_session_id"),
        subscription_status=item.get("subscription_status"),
        enrollment_id=item.get("enrollment_id"),
        merchant_id=item.get("merchant_id"),
    )


class IdentifierResolver:
    """Resolve candidate identifiers to a single mandate document."""

    def __init__(self, store: MandateStore) -> None:
        self.store = store

    def resolve(self, candidate_id: str | None, *, create_if_missing: bool = False) -> MandateHandle | None:
        """Resolve one candidate id.

        Order: document key, then ``subscription_id``, then
        ``cf_subscription_id``. First match wins.

        Args:
            candidate_id: Any of local_id / subscription_id / cf_subscription_id
            create_if_missing: Create a stub keyed by ``candidate_id`` on a miss

        Returns:
            Handle for the matching mandate, or None if not found
        """
        if not candidate_id:
            return None

        item = self.store.get(candidate_id)
        if item is None:
            for field in ("subscription_id", "cf_subscription_id"):
                matches = self.store.find_by_field(field, candidate_id, limit=1)
                if matches:
                    item = matches[0]
                    break

        if item is not None:
            return _to_handle(item)

        if not create_if_missing:
            return None

        logger.warning("No mandate for %s; creating stub", candidate_id)
        self.store.create_stub(candidate_id, {"subscription_id": candidate_id, "local_id": candidate_id})
        stub = self.store.get(candidate_id)
        return _to_handle(stub) if stub else None

    def resolve_by_fields(
        self,
        *,
        cf_subscription_id: str | None = None,
        subscription_id: str | None = None,
    ) -> MandateHandle | None:
        """Resolve using ``cf_subscription_id`` first, then ``subscription_id``."""
        for candidate in (cf_subscription_id, subscription_id):
            handle = self.resolve(candidate)
            if handle is not None:
                return handle
        return None
