"""Payment ledger for AUTH and CHARGE notifications.

Success processing is exactly-once per ``payment_id``: the payment update,
the enrollment's paid-amount increment and the mandate's last-payment
fields are written in one DynamoDB transaction guarded by "payment is not
already SUCCESS". A redelivered success cancels the transaction and
changes nothing.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from gateway.models.enums import PaymentStatus, PaymentType
from gateway.models.payment import Payment

from .mandate_store import utc_now_iso

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = logging.getLogger(__name__)

NOT_SUCCESS_CONDITION = "attribute_not_exists(#ps) OR #ps <> :success"

# Key and creation time are never SET from notification fields
_PROTECTED_FIELDS = frozenset({"payment_id", "created_at"})


class PaymentRecordError(Exception):
    """Raised when a success transaction fails for a reason other than a duplicate."""


def to_amount(value: Any) -> Decimal | None:
    """Parse an amount from a payload value, or None if absent or invalid."""
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("Ignoring unparseable amount %r", value)
        return None
    return amount if amount.is_finite() else None


def _set_clauses(
    fields: dict[str, Any], prefix: str
) -> tuple[list[str], dict[str, str], dict[str, Any]]:
    """SET clauses for non-None fields with ``#<prefix>N``/``:<prefix>N`` placeholders."""
    clauses: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for index, (name, value) in enumerate(fields.items()):
        if value is None or name in _PROTECTED_FIELDS:
            continue
        names[f"#{prefix}{index}"] = name
        values[f":{prefix}{index}"] = value
        clauses.append(f"#{prefix}{index} = :{prefix}{index}")
    return clauses, names, values


class PaymentService:
    """Records payment notifications against mandates."""

    PAYMENTS_TABLE = "payments"
    ENROLLMENTS_TABLE = "enrollments"
    MANDATES_TABLE = "mandates"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize payment service.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get_payment(self, payment_id: str) -> Payment | None:
        item = self.db.get_item(self.PAYMENTS_TABLE, {"payment_id": payment_id})
        return Payment.model_validate(item, strict=False) if item else None

    def _merge_unless_success(self, payment_id: str, fields: dict[str, Any]) -> bool:
        """Merge fields into a payment that is not yet SUCCESS.

        Returns:
            True if written, False if the payment already succeeded
        """
        now = utc_now_iso()
        clauses, names, values = _set_clauses({**fields, "updated_at": now}, "p")
        names["#ps"] = "payment_status"
        names["#ca"] = "created_at"
        values[":success"] = PaymentStatus.SUCCESS.value
        values[":now"] = now
        clauses.append("#ca = if_not_exists(#ca, :now)")

        result = self.db.update_item(
            table=self.PAYMENTS_TABLE,
            key={"payment_id": payment_id},
            update_expression="SET " + ", ".join(clauses),
            expression_attribute_values=values,
            expression_attribute_names=names,
            condition_expression=NOT_SUCCESS_CONDITION,
        )
        return result is not None

    def record_pending(self, payment_id: str, fields: dict[str, Any]) -> bool:
        """Store a non-terminal payment state without downgrading SUCCESS."""
        return self._merge_unless_success(
            payment_id, {**fields, "payment_status": PaymentStatus.PENDING.value}
        )

    def record_failure(
        self,
        payment_id: str,
        status: PaymentStatus,
        failure_reason: str | None,
        fields: dict[str, Any],
    ) -> bool:
        """Record a FAILED or CANCELLED payment.

        A payment that already succeeded keeps its SUCCESS status.

        Returns:
            True if written, False if the payment was already SUCCESS
        """
        written = self._merge_unless_success(
            payment_id,
            {**fields, "payment_status": status.value, "failure_reason": failure_reason},
        )
        if not written:
            logger.warning("Ignoring %s for already successful payment %s", status.value, payment_id)
        return written

    def record_success(
        self,
        payment_id: str,
        *,
        mandate_id: str,
        payment_type: PaymentType | None,
        amount: Decimal | None,
        enrollment_id: str | None,
        fields: dict[str, Any],
    ) -> bool:
        """Apply a payment success exactly once.

        In one transaction: mark the payment SUCCESS, add ``amount`` to the
        enrollment's ``paid_amount`` (CHARGE payments only) and set the
        mandate's last-payment fields.

        Args:
            payment_id: Merchant payment id (idempotency key)
            mandate_id: Resolved mandate document id
            payment_type: AUTH or CHARGE
            amount: Payment amount
            enrollment_id: Enrollment to credit for CHARGE payments
            fields: Extra payment attributes to store

        Returns:
            True if applied now, False if the payment was already SUCCESS

        Raises:
            PaymentRecordError: If the transaction failed and the payment is
                still not SUCCESS (e.g. the mandate document is missing)
        """
        now = utc_now_iso()
        payment_fields = {
            **fields,
            "mandate_id": mandate_id,
            "payment_type": payment_type.value if payment_type else None,
            "amount": amount,
            "payment_status": PaymentStatus.SUCCESS.value,
            "updated_at": now,
        }
        clauses, names, values = _set_clauses(payment_fields, "p")
        names.update({"#ps": "payment_status", "#ca": "created_at"})
        values.update({":success": PaymentStatus.SUCCESS.value, ":now": now})
        clauses.append("#ca = if_not_exists(#ca, :now)")

        items = [
            self.db.build_transact_update(
                table=self.PAYMENTS_TABLE,
                key={"payment_id": payment_id},
                update_expression="SET " + ", ".join(clauses),
                expression_attribute_values=values,
                expression_attribute_names=names,
                condition_expression=NOT_SUCCESS_CONDITION,
            )
        ]

        if payment_type == PaymentType.CHARGE and enrollment_id and amount is not None:
            items.append(
                self.db.build_transact_update(
                    table=self.ENROLLMENTS_TABLE,
                    key={"enrollment_id": enrollment_id},
                    update_expression="SET #lpd = :lpd ADD #paid :amt",
                    expression_attribute_values={":lpd": now, ":amt": amount},
                    expression_attribute_names={"#lpd": "last_payment_date", "#paid": "paid_amount"},
                )
            )

        items.append(
            self.db.build_transact_update(
                table=self.MANDATES_TABLE,
                key={"mandate_id": mandate_id},
                update_expression="SET #lps = :lps, #lpd = :lpd, #lpi = :lpi, #ua = :lpd",
                expression_attribute_values={
                    ":lps": PaymentStatus.SUCCESS.value,
                    ":lpd": now,
                    ":lpi": payment_id,
                },
                expression_attribute_names={
                    "#lps": "last_payment_status",
                    "#lpd": "last_payment_date",
                    "#lpi": "last_payment_id",
                    "#ua": "updated_at",
                },
                condition_expression="attribute_exists(mandate_id)",
            )
        )

        if self.db.transact_write(items):
            logger.info("Recorded payment success %s for mandate %s", payment_id, mandate_id)
            return True

        existing = self.get_payment(payment_id)
        if existing is not None and existing.payment_status == PaymentStatus.SUCCESS:
            logger.info("Payment %s already SUCCESS; skipping effects", payment_id)
            return False
        raise PaymentRecordError(f"Could not record success for payment {payment_id}")

    def record_refund(self, payment_id: str, fields: dict[str, Any]) -> None:
        """Merge refund details into a payment without touching its status."""
        self.db.merge_item(
            self.PAYMENTS_TABLE,
            {"payment_id": payment_id},
            {**fields, "updated_at": utc_now_iso()},
            set_if_not_exists={"created_at": utc_now_iso()},
        )
