"""Webhook reconciliation for Cashfree notifications.

Keeps business logic separate from HTTP routing so the same flow runs
from the FastAPI route, a Lambda handler or a test.

Per delivery: verify signature, audit receipt, check the dedup ledger,
resolve the mandate, apply the event, and write the ledger record last.
A crash before the ledger write makes a redelivery reprocess the event
instead of silently skipping it.
"""

import datetime as dt
import hashlib
import json
from collections.abc import Mapping
from typing import Any

from gateway.models.enums import ONBOARDING_EVENT_TYPES
from gateway.models.webhook import WebhookEvent, webhook_event_key
from gateway.utils.logging import get_logger, log_webhook_event

from .dynamodb import DynamoDBService
from .event_service import EventService
from .identifier_resolver import IdentifierResolver, extract_identifiers
from .mandate_lifecycle import MandateLifecycle
from .onboarding_service import OnboardingService
from .signature import SIGNATURE_HEADERS, TIMESTAMP_HEADERS, SignatureVerifier

logger = get_logger(__name__)

# Results returned by process()
RESULT_DUPLICATE = "duplicate"
RESULT_UNRESOLVED = "unresolved"
RESULT_ERROR = "error"
RESULT_INVALID_SIGNATURE = "invalid_signature"
RESULT_MALFORMED = "malformed"


def compute_payload_hash(payload: dict[str, Any]) -> str:
    return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()


class WebhookReconciler:
    """Applies verified Cashfree webhooks to local state.

    ``process`` never raises: every failure is written to the audit log
    and reported through the returned result label.
    """

    WEBHOOK_EVENTS_TABLE = "webhook-events"

    def __init__(
        self,
        db: DynamoDBService,
        verifier: SignatureVerifier,
        resolver: IdentifierResolver,
        lifecycle: MandateLifecycle,
        events: EventService,
        onboarding: OnboardingService | None = None,
    ) -> None:
        self._db = db
        self.verifier = verifier
        self.resolver = resolver
        self.lifecycle = lifecycle
        self.events = events
        self.onboarding = onboarding

    # Dedup ledger

    def is_event_already_processed(self, event_key: str) -> bool:
        """Check if a delivery with this key was already applied."""
        existing = self._db.get_item(self.WEBHOOK_EVENTS_TABLE, {"event_key": event_key})
        return existing is not None

    def mark_processed(
        self,
        event_key: str,
        event_type: str,
        event_time: str | None,
        payload: dict[str, Any],
        mandate_id: str | None,
        payment_id: str | None,
        processing_result: str,
    ) -> None:
        """Write the ledger record for a fully applied delivery."""
        record = WebhookEvent(
            event_key=event_key,
            event_type=event_type,
            event_time=event_time,
            mandate_id=mandate_id,
            payment_id=payment_id,
            payload_hash=compute_payload_hash(payload),
            processing_result=processing_result,
            processed_at=dt.datetime.now(dt.UTC),
        )
        item = record.model_dump(exclude_none=True)
        item["processed_at"] = record.processed_at.isoformat()
        self._db.put_item(self.WEBHOOK_EVENTS_TABLE, item)

    # Entry points

    def verify(self, headers: Mapping[str, str], raw_body: str | bytes | None) -> bool:
        """Check the signature; audit and return False when it is invalid."""
        if self.verifier.verify(headers, raw_body):
            return True

        lowered = {str(k).lower(): v for k, v in headers.items()}
        self._safe_log(
            "webhook.invalid_signature",
            {
                "headers": {
                    name: lowered.get(name)
                    for name in (*SIGNATURE_HEADERS, *TIMESTAMP_HEADERS)
                    if lowered.get(name)
                },
            },
        )
        logger.warning("Rejected webhook with invalid signature")
        return False

    def handle(
        self,
        headers: Mapping[str, str],
        raw_body: str | bytes | None,
        parsed_body: dict[str, Any] | None,
    ) -> str:
        """Verify then process one delivery.

        Args:
            headers: Request headers
            raw_body: Exact body bytes the signature covers
            parsed_body: Decoded JSON body

        Returns:
            Result label of the delivery
        """
        if not self.verify(headers, raw_body):
            return RESULT_INVALID_SIGNATURE
        return self.process(parsed_body or {}, headers)

    def process(self, payload: dict[str, Any], headers: Mapping[str, str] | None = None) -> str:
        """Apply an already verified delivery.

        Args:
            payload: Parsed webhook body
            headers: Request headers, recorded in the receipt audit event

        Returns:
            Result label: a lifecycle result, "duplicate", "unresolved",
            "malformed" or "error"
        """
        event_type = str(payload.get("type") or "")
        if not event_type:
            self._safe_log("webhook.processing_error", {"error": "missing event type", "payload": payload})
            return RESULT_MALFORMED

        raw_time = payload.get("event_time")
        event_time = str(raw_time) if raw_time is not None else None
        ids = extract_identifiers(payload)
        event_key = webhook_event_key(event_type, event_time, ids["payment_id"])
        mandate_id: str | None = None

        try:
            self._audit_receipt(event_type, payload, headers)

            if self.is_event_already_processed(event_key):
                log_webhook_event(logger, event_type, event_key, result=RESULT_DUPLICATE)
                return RESULT_DUPLICATE

            if event_type in ONBOARDING_EVENT_TYPES:
                if self.onboarding is None:
                    logger.warning("Onboarding webhook received but onboarding is not configured")
                    return RESULT_UNRESOLVED
                result = self.onboarding.apply_onboarding_webhook(payload)
            else:
                handle = self.resolver.resolve_by_fields(
                    cf_subscription_id=ids["cf_subscription_id"],
                    subscription_id=ids["subscription_id"],
                )
                if handle is None:
                    self.events.log(
                        "webhook.upsert_error",
                        {
                            "event_key": event_key,
                            "event_type": event_type,
                            "cf_subscription_id": ids["cf_subscription_id"],
                            "subscription_id": ids["subscription_id"],
                        },
                    )
                    log_webhook_event(
                        logger, event_type, event_key, result="skipped", error="mandate not found"
                    )
                    return RESULT_UNRESOLVED
                mandate_id = handle.mandate_id
                result = self.lifecycle.apply_webhook_transition(handle, event_type, payload)

            self.mark_processed(
                event_key, event_type, event_time, payload, mandate_id, ids["payment_id"], result
            )
            log_webhook_event(
                logger,
                event_type,
                event_key,
                mandate_id=mandate_id,
                payment_id=ids["payment_id"],
                result=result,
            )
            return result
        except Exception as e:
            logger.exception("Webhook processing failed for %s", event_key)
            self._safe_log(
                "webhook.processing_error",
                {
                    "event_key": event_key,
                    "event_type": event_type,
                    "mandate_id": mandate_id,
                    "error": str(e),
                },
            )
            log_webhook_event(
                logger, event_type, event_key, mandate_id=mandate_id, result=RESULT_ERROR, error=str(e)
            )
            return RESULT_ERROR

    def _audit_receipt(
        self, event_type: str, payload: dict[str, Any], headers: Mapping[str, str] | None
    ) -> None:
        lowered = {str(k).lower(): v for k, v in (headers or {}).items()}
        self.events.log(
            f"webhook.{event_type}",
            {
                "payload": payload,
                "timestamp": next((lowered[h] for h in TIMESTAMP_HEADERS if lowered.get(h)), None),
                "signature": next((lowered[h] for h in SIGNATURE_HEADERS if lowered.get(h)), None),
            },
        )

    def _safe_log(self, kind: str, payload: dict[str, Any]) -> None:
        """Audit write used on error paths, where raising is not an option."""
        try:
            self.events.log(kind, payload)
        except Exception:
            logger.exception("Could not write %s audit event", kind)
