"""Unit tests for MandateStore against moto DynamoDB."""

from gateway.models.enums import PaymentStatus, SubscriptionStatus
from gateway.services.mandate_store import MandateStore


class TestSave:
    """Tests for field-merge persistence."""

    def test_save_creates_document(self, store: MandateStore):
        store.save("mandate_E1", {"enrollment_id": "E1", "plan_amount": 500.0})

        item = store.get("mandate_E1")
        assert item is not None
        assert item["enrollment_id"] == "E1"
        assert "created_at" in item
        assert "updated_at" in item

    def test_save_merges_without_erasing(self, store: MandateStore):
        store.save("mandate_E1", {"enrollment_id": "E1", "merchant_id": "M1"})
        store.save("mandate_E1", {"cf_subscription_id": "cf_1", "merchant_id": None})

        item = store.get("mandate_E1")
        assert item["merchant_id"] == "M1"
        assert item["cf_subscription_id"] == "cf_1"

    def test_initial_fields_set_only_once(self, store: MandateStore):
        store.save("mandate_E1", {}, initial={"subscription_status": "INITIALIZED"})
        store.save("mandate_E1", {"subscription_status": "ACTIVE"})
        store.save("mandate_E1", {}, initial={"subscription_status": "INITIALIZED"})

        assert store.get("mandate_E1")["subscription_status"] == "ACTIVE"

    def test_created_at_is_preserved(self, store: MandateStore):
        store.save("mandate_E1", {"enrollment_id": "E1"})
        created = store.get("mandate_E1")["created_at"]
        store.save("mandate_E1", {"merchant_id": "M1"})

        assert store.get("mandate_E1")["created_at"] == created

    def test_get_model_validates(self, store: MandateStore):
        store.save("mandate_E1", {"enrollment_id": "E1", "plan_amount": 500.0})

        mandate = store.get_model("mandate_E1")
        assert mandate is not None
        assert mandate.enrollment_id == "E1"
        assert store.get_model("mandate_missing") is None


class TestGuardedWrites:
    """Writes that must not undo a recorded success."""

    def test_pending_auth_written_before_success(self, store: MandateStore):
        assert store.save_auth_status("mandate_E1", "PENDING", {"auth_payment_id": "auth_E1"}) is True
        assert store.get("mandate_E1")["auth_status"] == "PENDING"

    def test_success_auth_not_downgraded(self, store: MandateStore):
        store.save_auth_status("mandate_E1", "SUCCESS")

        assert store.save_auth_status("mandate_E1", "PENDING", {"raw_cf_response": {"x": 1}}) is False
        item = store.get("mandate_E1")
        assert item["auth_status"] == "SUCCESS"
        assert "raw_cf_response" not in item

    def test_success_written_over_success(self, store: MandateStore):
        store.save_auth_status("mandate_E1", "SUCCESS")
        assert store.save_auth_status("mandate_E1", "SUCCESS", {"auth_payment_id": "auth_E1"}) is True
        assert store.get("mandate_E1")["auth_payment_id"] == "auth_E1"

    def test_failure_for_same_payment_replaces_success(self, store: MandateStore):
        store.save("mandate_E1", {"last_payment_status": "SUCCESS", "last_payment_id": "pay_1"})

        assert store.save_payment_failure("mandate_E1", "pay_1", PaymentStatus.CANCELLED) is True
        assert store.get("mandate_E1")["last_payment_status"] == "CANCELLED"

    def test_failure_for_other_payment_keeps_success(self, store: MandateStore):
        store.save("mandate_E1", {"last_payment_status": "SUCCESS", "last_payment_id": "pay_2"})

        assert store.save_payment_failure("mandate_E1", "pay_1", PaymentStatus.FAILED) is False
        item = store.get("mandate_E1")
        assert item["last_payment_status"] == "SUCCESS"
        assert item["last_payment_id"] == "pay_2"


class TestCreateStub:
    def test_stub_created_once(self, store: MandateStore):
        assert store.create_stub("sub_X", {"subscription_id": "sub_X"}) is True
        assert store.create_stub("sub_X", {"subscription_id": "other"}) is False
        assert store.get("sub_X")["subscription_id"] == "sub_X"


class TestFindByField:
    def test_lookup_through_index(self, store: MandateStore):
        store.save("mandate_E1", {"subscription_id": "mandate_E1", "cf_subscription_id": "cf_1"})

        matches = store.find_by_field("cf_subscription_id", "cf_1")
        assert [m["mandate_id"] for m in matches] == ["mandate_E1"]

    def test_empty_value_returns_nothing(self, store: MandateStore):
        assert store.find_by_field("cf_subscription_id", "") == []


class TestApplyTransition:
    """Tests for conditional status writes."""

    def test_allowed_transition_applied_with_fields(self, store: MandateStore):
        store.save("mandate_E1", {"subscription_status": "BANK_APPROVAL_PENDING"})

        updated = store.apply_transition(
            "mandate_E1", SubscriptionStatus.ACTIVE, {"next_schedule_date": "2025-02-01"}
        )

        assert updated is not None
        item = store.get("mandate_E1")
        assert item["subscription_status"] == "ACTIVE"
        assert item["next_schedule_date"] == "2025-02-01"

    def test_disallowed_transition_writes_nothing(self, store: MandateStore):
        store.save("mandate_E1", {"subscription_status": "COMPLETED"})
        before = store.get("mandate_E1")

        updated = store.apply_transition(
            "mandate_E1", SubscriptionStatus.ACTIVE, {"next_schedule_date": "2025-02-01"}
        )

        assert updated is None
        assert store.get("mandate_E1") == before

    def test_first_transition_from_missing_status(self, store: MandateStore):
        store.create_stub("sub_X", {"subscription_id": "sub_X"})

        assert store.apply_transition("sub_X", SubscriptionStatus.ON_HOLD) is not None
        assert store.get("sub_X")["subscription_status"] == "ON_HOLD"

    def test_never_creates_a_document(self, store: MandateStore):
        assert store.apply_transition("mandate_missing", SubscriptionStatus.ACTIVE) is None
        assert store.get("mandate_missing") is None
