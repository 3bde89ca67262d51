"""Append-only audit log of gateway actions."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from gateway.models.webhook import AuditEvent

from .dynamodb import DynamoDBService

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"


class EventService:
    """Writes audit events to the ``events`` table.

    Event types are namespaced with the configured prefix, so
    ``log("mandate.created", ...)`` stores ``cashfree.mandate.created``.
    """

    def __init__(self, db: DynamoDBService, prefix: str = "cashfree") -> None:
        self.db = db
        self.prefix = prefix

    def event_type(self, kind: str) -> str:
        return f"{self.prefix}.{kind}"

    def log(self, kind: str, payload: dict[str, Any] | None = None) -> AuditEvent:
        """Append one audit event.

        Args:
            kind: Event kind without prefix (e.g. "webhook.upsert_error")
            payload: Arbitrary JSON-compatible context

        Returns:
            The stored AuditEvent
        """
        event = AuditEvent(
            event_id=str(uuid.uuid4()),
            type=self.event_type(kind),
            created_at=datetime.now(timezone.utc),
            payload=payload or {},
        )
        self.db.put_item(
            EVENTS_TABLE,
            {
                "event_id": event.event_id,
                "type": event.type,
                "created_at": event.created_at.isoformat(),
                "payload": event.payload,
            },
            condition_expression="attribute_not_exists(event_id)",
        )
        logger.debug("Audit event %s written", event.type)
        return event
