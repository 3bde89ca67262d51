"""Unit tests for the payment ledger.

Verifies that success effects (payment status, enrollment paid amount,
mandate last-payment fields) apply exactly once per payment id, and
that failure notifications never downgrade a successful payment.
"""

from decimal import Decimal

import pytest

from gateway.models.enums import PaymentStatus, PaymentType
from gateway.services.dynamodb import DynamoDBService
from gateway.services.mandate_store import MandateStore
from gateway.services.payment_service import PaymentRecordError, PaymentService, to_amount


# === Test Fixtures ===


@pytest.fixture
def mandate(store: MandateStore) -> str:
    store.save("mandate_E1", {"enrollment_id": "E1", "subscription_status": "ACTIVE"})
    return "mandate_E1"


def record_charge(payments: PaymentService, payment_id: str = "pay_001", amount: str = "500") -> bool:
    return payments.record_success(
        payment_id,
        mandate_id="mandate_E1",
        payment_type=PaymentType.CHARGE,
        amount=Decimal(amount),
        enrollment_id="E1",
        fields={"cf_payment_id": "cf_1", "raw": {"payment_amount": 500.0}},
    )


def paid_amount(db: DynamoDBService, enrollment_id: str = "E1") -> Decimal | None:
    item = db.get_item("enrollments", {"enrollment_id": enrollment_id})
    return item.get("paid_amount") if item else None


# === Tests ===


class TestToAmount:
    @pytest.mark.parametrize("value,expected", [(500, Decimal("500")), ("12.50", Decimal("12.50"))])
    def test_parses(self, value, expected):
        assert to_amount(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN"])
    def test_invalid_is_none(self, value):
        assert to_amount(value) is None


class TestRecordSuccess:
    """Tests for exactly-once success processing."""

    def test_first_success_applies_all_effects(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService, store: MandateStore, mandate
    ):
        assert record_charge(payments) is True

        payment = payments.get_payment("pay_001")
        assert payment.payment_status == PaymentStatus.SUCCESS
        assert payment.payment_type == PaymentType.CHARGE
        assert payment.amount == Decimal("500")
        assert paid_amount(dynamodb_tables) == Decimal("500")

        item = store.get("mandate_E1")
        assert item["last_payment_status"] == "SUCCESS"
        assert item["last_payment_id"] == "pay_001"

    def test_repeated_success_increments_once(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService, mandate
    ):
        assert record_charge(payments) is True
        assert record_charge(payments) is False

        assert paid_amount(dynamodb_tables) == Decimal("500")

    def test_distinct_payments_accumulate(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService, mandate
    ):
        record_charge(payments, "pay_001", "500")
        record_charge(payments, "pay_002", "250.50")

        assert paid_amount(dynamodb_tables) == Decimal("750.50")

    def test_auth_success_does_not_credit_enrollment(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService, mandate
    ):
        applied = payments.record_success(
            "auth_E1",
            mandate_id="mandate_E1",
            payment_type=PaymentType.AUTH,
            amount=Decimal("1"),
            enrollment_id="E1",
            fields={},
        )

        assert applied is True
        assert paid_amount(dynamodb_tables) is None

    def test_missing_mandate_raises_and_writes_nothing(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService
    ):
        with pytest.raises(PaymentRecordError):
            record_charge(payments)

        assert payments.get_payment("pay_001") is None
        assert paid_amount(dynamodb_tables) is None

    def test_success_after_failure_applies(
        self, payments: PaymentService, dynamodb_tables: DynamoDBService, mandate
    ):
        payments.record_failure("pay_001", PaymentStatus.FAILED, "insufficient funds", {})

        assert record_charge(payments) is True
        assert payments.get_payment("pay_001").payment_status == PaymentStatus.SUCCESS
        assert paid_amount(dynamodb_tables) == Decimal("500")


class TestRecordFailure:
    """Tests for failure and pending notifications."""

    def test_failure_recorded_with_reason(self, payments: PaymentService):
        assert payments.record_failure("pay_009", PaymentStatus.FAILED, "bank declined", {}) is True

        payment = payments.get_payment("pay_009")
        assert payment.payment_status == PaymentStatus.FAILED
        assert payment.failure_reason == "bank declined"
        assert payment.created_at is not None

    def test_failure_does_not_downgrade_success(self, payments: PaymentService, mandate):
        record_charge(payments)

        assert payments.record_failure("pay_001", PaymentStatus.FAILED, "late failure", {}) is False
        assert payments.get_payment("pay_001").payment_status == PaymentStatus.SUCCESS

    def test_pending_does_not_downgrade_success(self, payments: PaymentService, mandate):
        record_charge(payments)

        assert payments.record_pending("pay_001", {}) is False
        assert payments.get_payment("pay_001").payment_status == PaymentStatus.SUCCESS


class TestRecordRefund:
    def test_refund_keeps_status(self, payments: PaymentService, mandate):
        record_charge(payments)

        payments.record_refund("pay_001", {"refund_status": "SUCCESS", "refund_amount": Decimal("100")})

        payment = payments.get_payment("pay_001")
        assert payment.payment_status == PaymentStatus.SUCCESS
        assert payment.refund_status == "SUCCESS"
        assert payment.refund_amount == Decimal("100")
