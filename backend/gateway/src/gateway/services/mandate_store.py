"""Persistence for mandate documents."""

import logging
from datetime import datetime, timezone
from typing import Any

from gateway.models.enums import AuthStatus, PaymentStatus, SubscriptionStatus
from gateway.models.mandate import Mandate

from .dynamodb import DynamoDBService
from .tables import index_name
from .transitions import transition_condition

logger = logging.getLogger(__name__)

MANDATES_TABLE = "mandates"

AUTH_NOT_SUCCESS_CONDITION = "attribute_not_exists(#as) OR #as <> :auth_success"

# A failure may replace the last payment only when it is that payment, or
# when the stored outcome is not a success
LAST_PAYMENT_CONDITION = (
    "attribute_not_exists(#lpid) OR #lpid = :pid OR attribute_not_exists(#lps) OR #lps <> :paid"
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MandateStore:
    """Create, read and merge mandate documents.

    All writes are field merges keyed by ``mandate_id``; nothing here
    overwrites a whole document except stub creation, which is guarded by
    ``attribute_not_exists``.
    """

    def __init__(self, db: DynamoDBService) -> None:
        self.db = db

    def get(self, mandate_id: str) -> dict[str, Any] | None:
        return self.db.get_item(MANDATES_TABLE, {"mandate_id": mandate_id})

    def get_model(self, mandate_id: str) -> Mandate | None:
        item = self.get(mandate_id)
        return Mandate.model_validate(item) if item else None

    def find_by_field(self, field: str, value: str, limit: int = 1) -> list[dict[str, Any]]:
        """Field-equality lookup through the field's GSI."""
        if not value:
            return []
        return self.db.query_by_gsi(
            table=MANDATES_TABLE,
            index_name=index_name(field),
            partition_key_name=field,
            partition_key_value=value,
            limit=limit,
        )

    def save(
        self,
        mandate_id: str,
        fields: dict[str, Any],
        initial: dict[str, Any] | None = None,
        *,
        condition_expression: str | None = None,
        condition_names: dict[str, str] | None = None,
        condition_values: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Merge ``fields`` into the mandate, creating it if absent.

        ``created_at`` and any ``initial`` fields are set only when not yet
        stored; ``updated_at`` always. With a condition, nothing is written
        when it fails and None is returned.
        """
        now = utc_now_iso()
        return self.db.merge_item(
            MANDATES_TABLE,
            {"mandate_id": mandate_id},
            {**fields, "updated_at": now},
            set_if_not_exists={**(initial or {}), "created_at": now},
            condition_expression=condition_expression,
            condition_names=condition_names,
            condition_values=condition_values,
        )

    def save_auth_status(
        self,
        mandate_id: str,
        status: str,
        fields: dict[str, Any] | None = None,
    ) -> bool:
        """Merge an authorization status without downgrading SUCCESS.

        SUCCESS is always written. Any other status, together with
        ``fields``, is written only while the stored ``auth_status`` is not
        SUCCESS.

        Returns:
            True if written, False if a stored SUCCESS was kept
        """
        record = {**(fields or {}), "auth_status": status}
        if status == AuthStatus.SUCCESS.value:
            self.save(mandate_id, record)
            return True

        written = self.save(
            mandate_id,
            record,
            condition_expression=AUTH_NOT_SUCCESS_CONDITION,
            condition_names={"#as": "auth_status"},
            condition_values={":auth_success": AuthStatus.SUCCESS.value},
        )
        if written is None:
            logger.warning("Kept SUCCESS auth on %s; ignoring %s", mandate_id, status)
            return False
        return True

    def save_payment_failure(self, mandate_id: str, payment_id: str, status: PaymentStatus) -> bool:
        """Record a failed or cancelled payment as the mandate's last outcome.

        A late failure for an older payment never replaces a newer success.

        Returns:
            True if written, False if the stored success was kept
        """
        written = self.save(
            mandate_id,
            {"last_payment_status": status.value, "last_payment_id": payment_id},
            condition_expression=LAST_PAYMENT_CONDITION,
            condition_names={"#lpid": "last_payment_id", "#lps": "last_payment_status"},
            condition_values={":pid": payment_id, ":paid": PaymentStatus.SUCCESS.value},
        )
        return written is not None

    def create_stub(self, mandate_id: str, fields: dict[str, Any]) -> bool:
        """Create a minimal mandate document if none exists under the key.

        Returns:
            True if created, False if the document already existed
        """
        now = utc_now_iso()
        item = {k: v for k, v in fields.items() if v is not None}
        item.update({"mandate_id": mandate_id, "created_at": now, "updated_at": now})
        created = self.db.put_item(
            MANDATES_TABLE, item, condition_expression="attribute_not_exists(mandate_id)"
        )
        if created:
            logger.info("Created stub mandate %s", mandate_id)
        return created

    def apply_transition(
        self,
        mandate_id: str,
        target: SubscriptionStatus,
        fields: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Set ``subscription_status`` to ``target`` with accompanying fields.

        The status and the fields form one conditional unit: if the stored
        status does not permit ``target``, nothing is written.

        Returns:
            Updated attributes, or None if the transition was not allowed
        """
        condition, names, values = transition_condition(target)
        # The document must already exist; this never creates one
        condition = f"attribute_exists(mandate_id) AND ({condition})"
        return self.db.merge_item(
            MANDATES_TABLE,
            {"mandate_id": mandate_id},
            {**(fields or {}), "subscription_status": target.value, "updated_at": utc_now_iso()},
            condition_expression=condition,
            condition_names=names,
            condition_values=values,
        )
