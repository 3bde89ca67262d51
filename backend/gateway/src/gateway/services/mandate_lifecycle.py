"""Mandate lifecycle: creation, authorization, manage actions and webhook transitions."""

from decimal import Decimal
from typing import Any

from gateway.models.enums import (
    MANAGE_ACTION_TARGETS,
    AuthPaymentMethod,
    AuthStatus,
    ManageAction,
    PaymentStatus,
    PaymentType,
    SubscriptionStatus,
    WebhookEventType,
)
from gateway.models.errors import ErrorCode, GatewayError
from gateway.models.mandate import (
    MANDATE_ID_PREFIX,
    AuthHandle,
    AuthorizeRequest,
    CustomerDetails,
    Mandate,
    MandateHandle,
    PlanDetails,
    SchedulingDetails,
    auth_payment_id_for,
    mandate_id_for,
)
from gateway.utils.logging import get_logger, log_mandate_operation

from .cashfree_client import CashfreeClient, CashfreeClientError
from .event_service import EventService
from .identifier_resolver import (
    AMOUNT_EXTRACTORS,
    CF_SUBSCRIPTION_ID_EXTRACTORS,
    PAYMENT_ID_EXTRACTORS,
    RESPONSE_CF_SUBSCRIPTION_ID_EXTRACTORS,
    RESPONSE_SESSION_ID_EXTRACTORS,
    IdentifierResolver,
    first_match,
)
from .mandate_store import MandateStore
from .payment_service import PaymentService, to_amount
from .transitions import parse_status

logger = get_logger(__name__)

# Results returned by apply_webhook_transition
APPLIED = "applied"
REJECTED = "transition_rejected"
DUPLICATE_PAYMENT = "duplicate_payment"
INFORMATIONAL = "informational"
IGNORED = "ignored"


def _data(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data")
    return data if isinstance(data, dict) else {}


def _nested(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    """First dict found under any of ``keys``."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, dict):
            return value
    return {}


def _upstream(error: CashfreeClientError) -> GatewayError:
    return GatewayError(ErrorCode.UPSTREAM_ERROR, error.to_details())


class MandateLifecycle:
    """State machine for subscription mandates.

    Args:
        store: Mandate persistence
        resolver: Identifier resolver used for manage actions
        client: Cashfree API client
        payments: Payment ledger
        events: Audit log
    """

    def __init__(
        self,
        store: MandateStore,
        resolver: IdentifierResolver,
        client: CashfreeClient,
        payments: PaymentService,
        events: EventService,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.client = client
        self.payments = payments
        self.events = events

    # =========================================================================
    # Request-time operations
    # =========================================================================

    def create(
        self,
        merchant_id: str,
        enrollment_id: str,
        customer: CustomerDetails,
        plan: PlanDetails,
        scheduling: SchedulingDetails,
        user_id: str | None = None,
    ) -> MandateHandle:
        """Create the remote subscription and persist the mandate.

        Args:
            merchant_id: Cashfree merchant the subscription belongs to
            enrollment_id: Enrollment being paid for; derives the mandate id
            customer: Customer contact details
            plan: Existing plan id or inline plan
            scheduling: First charge, expiry, return URL and auth settings
            user_id: Authenticated user creating the mandate

        Returns:
            Handle with local and processor identifiers

        Raises:
            GatewayError: VALIDATION_ERROR, CONFLICT or UPSTREAM_ERROR
        """
        self._validate_create(merchant_id, enrollment_id, customer, plan)
        mandate_id = mandate_id_for(enrollment_id)

        existing = self.store.get(mandate_id)
        if existing and existing.get("cf_subscription_id"):
            log_mandate_operation(
                logger, "create", mandate_id=mandate_id, error="mandate already exists"
            )
            raise GatewayError(
                ErrorCode.CONFLICT,
                {"mandate_id": mandate_id, "cf_subscription_id": existing["cf_subscription_id"]},
            )

        base_fields: dict[str, Any] = {
            "local_id": mandate_id,
            "subscription_id": mandate_id,
            "enrollment_id": enrollment_id,
            "merchant_id": merchant_id,
            "user_id": user_id,
            "plan_amount": plan.plan_amount,
            "subscription_first_charge_time": scheduling.subscription_first_charge_time,
        }
        # Persist before the remote call so a failed attempt can be retried
        self.store.save(
            mandate_id,
            base_fields,
            initial={"subscription_status": SubscriptionStatus.INITIALIZED.value},
        )

        payload = self._subscription_payload(mandate_id, enrollment_id, user_id, customer, plan, scheduling)
        try:
            response = self.client.create_subscription(merchant_id, payload, idempotency_key=mandate_id)
        except CashfreeClientError as e:
            log_mandate_operation(logger, "create", mandate_id=mandate_id, error=str(e))
            raise _upstream(e) from e

        cf_subscription_id = first_match(response, RESPONSE_CF_SUBSCRIPTION_ID_EXTRACTORS)
        session_id = first_match(response, RESPONSE_SESSION_ID_EXTRACTORS)
        stored = self.store.save(
            mandate_id,
            {
                "cf_subscription_id": cf_subscription_id,
                "subscription_session_id": session_id,
                "raw_cf_response": response,
            },
        ) or {}
        status = stored.get("subscription_status") or SubscriptionStatus.INITIALIZED.value

        handle = MandateHandle(
            mandate_id=mandate_id,
            subscription_id=mandate_id,
            cf_subscription_id=cf_subscription_id,
            subscription_session_id=session_id,
            subscription_status=status,
            enrollment_id=enrollment_id,
            merchant_id=merchant_id,
        )
        self.events.log(
            "mandate.created",
            {
                "mandate_id": mandate_id,
                "enrollment_id": enrollment_id,
                "merchant_id": merchant_id,
                "cf_subscription_id": handle.cf_subscription_id,
            },
        )
        log_mandate_operation(
            logger,
            "create",
            mandate_id=mandate_id,
            enrollment_id=enrollment_id,
            subscription_id=handle.cf_subscription_id,
            status=status,
        )
        return handle

    @staticmethod
    def _validate_create(
        merchant_id: str,
        enrollment_id: str,
        customer: CustomerDetails,
        plan: PlanDetails,
    ) -> None:
        missing: list[str] = []
        if not merchant_id:
            missing.append("merchant_id")
        if not enrollment_id:
            missing.append("enrollment_id")
        if not customer.customer_email:
            missing.append("customer.customer_email")
        if not customer.customer_phone:
            missing.append("customer.customer_phone")
        if not plan.plan_id and not (plan.plan_amount and plan.plan_amount > 0):
            missing.append("plan.plan_id or plan.plan_amount")
        if missing:
            raise GatewayError(ErrorCode.VALIDATION_ERROR, {"fields": missing})

    @staticmethod
    def _subscription_payload(
        mandate_id: str,
        enrollment_id: str,
        user_id: str | None,
        customer: CustomerDetails,
        plan: PlanDetails,
        scheduling: SchedulingDetails,
    ) -> dict[str, Any]:
        if plan.plan_id:
            plan_details: dict[str, Any] = {"plan_id": plan.plan_id}
        else:
            plan_details = plan.model_dump(exclude_none=True, exclude={"plan_id"})
            plan_details.setdefault("plan_name", f"plan_{enrollment_id}")

        payload: dict[str, Any] = {
            "subscription_id": mandate_id,
            "customer_details": customer.model_dump(exclude_none=True),
            "plan_details": plan_details,
            "authorization_details": {
                "authorization_amount": scheduling.authorization_amount,
                "authorization_amount_refund": True,
                "payment_methods": scheduling.payment_methods,
            },
            "subscription_tags": {"enrollment_id": enrollment_id, "user_id": user_id or ""},
        }
        if scheduling.return_url:
            payload["subscription_meta"] = {"return_url": scheduling.return_url}
        if scheduling.subscription_first_charge_time:
            payload["subscription_first_charge_time"] = scheduling.subscription_first_charge_time
        if scheduling.subscription_expiry_time:
            payload["subscription_expiry_time"] = scheduling.subscription_expiry_time
        return payload

    def authorize(self, enrollment_id: str, request: AuthorizeRequest) -> AuthHandle:
        """Raise the AUTH payment the customer approves out of band.

        The payment id is derived from the enrollment, so a retried call is
        idempotent upstream. The latest processor response replaces
        ``payment_payload``. ``subscription_status`` is not changed here;
        it moves only on webhooks.

        Raises:
            GatewayError: NOT_FOUND, INVALID_STATE, CONFLICT or UPSTREAM_ERROR
        """
        mandate_id = mandate_id_for(enrollment_id)
        mandate = self.store.get(mandate_id)
        if mandate is None:
            raise GatewayError(ErrorCode.NOT_FOUND, {"mandate_id": mandate_id})

        session_id = mandate.get("subscription_session_id")
        if not session_id:
            raise GatewayError(
                ErrorCode.INVALID_STATE,
                {"mandate_id": mandate_id, "missing": "subscription_session_id"},
            )

        if (
            mandate.get("auth_status") == AuthStatus.SUCCESS.value
            or mandate.get("subscription_status") == SubscriptionStatus.ACTIVE.value
        ):
            raise GatewayError(ErrorCode.CONFLICT, {"mandate_id": mandate_id, "reason": "already authorized"})

        if not mandate.get("subscription_first_charge_time"):
            raise GatewayError(
                ErrorCode.INVALID_STATE,
                {"mandate_id": mandate_id, "missing": "subscription_first_charge_time"},
            )

        payment_id = auth_payment_id_for(enrollment_id)
        payload = {
            "subscription_id": mandate.get("subscription_id") or mandate_id,
            "subscription_session_id": session_id,
            "payment_id": payment_id,
            "payment_type": PaymentType.AUTH.value,
            "payment_method": self._payment_method(request),
        }
        try:
            response = self.client.create_payment(
                mandate.get("merchant_id"), payload, idempotency_key=payment_id
            )
        except CashfreeClientError as e:
            log_mandate_operation(logger, "authorize", mandate_id=mandate_id, error=str(e))
            raise _upstream(e) from e

        auth_status = response.get("payment_status") or AuthStatus.PENDING.value
        if not self.store.save_auth_status(
            mandate_id, auth_status, {"auth_payment_id": payment_id, "payment_payload": response}
        ):
            # A SUCCESS webhook landed while the request was in flight
            self.store.save(mandate_id, {"payment_payload": response})
            auth_status = AuthStatus.SUCCESS.value
        self.events.log(
            "mandate.auth_created",
            {"mandate_id": mandate_id, "payment_id": payment_id, "auth_status": auth_status},
        )
        log_mandate_operation(
            logger, "authorize", mandate_id=mandate_id, enrollment_id=enrollment_id, status=auth_status
        )
        return AuthHandle(
            mandate_id=mandate_id,
            payment_id=payment_id,
            auth_status=auth_status,
            payment_payload=response,
        )

    @staticmethod
    def _payment_method(request: AuthorizeRequest) -> dict[str, Any]:
        if request.payment_method == AuthPaymentMethod.UPI:
            upi: dict[str, Any] = {"channel": request.upi_channel}
            if request.upi_id:
                upi["upi_id"] = request.upi_id
            return {"upi": upi}
        if request.payment_method == AuthPaymentMethod.CARD:
            return {"card": {"channel": "link"}}

        bank: dict[str, Any] = {"channel": "link"}
        if request.bank_account_number:
            bank["account_number"] = request.bank_account_number
        if request.bank_ifsc:
            bank["account_ifsc"] = request.bank_ifsc
        if request.bank_account_type:
            bank["account_type"] = request.bank_account_type
        return {request.payment_method.value: bank}

    def manage(self, subscription_id: str, merchant_id: str | None, action: ManageAction) -> dict[str, Any]:
        """Send a merchant action upstream and apply the matching status locally.

        The local status change goes through the transition table; a pair
        it does not allow leaves the mandate untouched and ``applied`` is
        False.
        """
        try:
            response = self.client.manage_subscription(merchant_id, subscription_id, action.value)
        except CashfreeClientError as e:
            log_mandate_operation(logger, "manage", subscription_id=subscription_id, error=str(e))
            raise _upstream(e) from e

        handle = self.resolver.resolve(subscription_id, create_if_missing=True)
        target = MANAGE_ACTION_TARGETS[action]
        updated = self.store.apply_transition(handle.mandate_id, target, {"raw_cf_response": response})
        applied = updated is not None
        status = target.value if applied else handle.subscription_status

        self.events.log(
            "mandate.manage",
            {
                "subscription_id": subscription_id,
                "mandate_id": handle.mandate_id,
                "merchant_id": merchant_id,
                "action": action.value,
                "applied": applied,
            },
        )
        log_mandate_operation(
            logger,
            "manage",
            mandate_id=handle.mandate_id,
            subscription_id=subscription_id,
            status=status,
            action=action.value,
            applied=applied,
        )
        return {
            "mandate_id": handle.mandate_id,
            "applied": applied,
            "subscription_status": status,
            "cf_response": response,
        }

    def get_mandate(self, enrollment_id: str) -> Mandate:
        mandate = self.store.get_model(mandate_id_for(enrollment_id))
        if mandate is None:
            raise GatewayError(ErrorCode.NOT_FOUND, {"enrollment_id": enrollment_id})
        return mandate

    # =========================================================================
    # Webhook transitions
    # =========================================================================

    def apply_webhook_transition(
        self,
        handle: MandateHandle,
        event_type: str,
        payload: dict[str, Any],
    ) -> str:
        """Apply one webhook event to a resolved mandate.

        Args:
            handle: Resolved mandate
            event_type: Cashfree event type
            payload: Parsed webhook body

        Returns:
            Short result label (applied, transition_rejected, ...)
        """
        self._backfill_identifiers(handle, payload)

        handlers = {
            WebhookEventType.SUBSCRIPTION_STATUS_CHANGED.value: self._on_status_changed,
            WebhookEventType.SUBSCRIPTION_AUTH_STATUS.value: self._on_auth_status,
            WebhookEventType.SUBSCRIPTION_PAYMENT_SUCCESS.value: self._on_payment_success,
            WebhookEventType.SUBSCRIPTION_PAYMENT_FAILED.value: self._on_payment_failed,
            WebhookEventType.SUBSCRIPTION_PAYMENT_CANCELLED.value: self._on_payment_failed,
            WebhookEventType.SUBSCRIPTION_REFUND_STATUS.value: self._on_refund_status,
        }
        informational = {
            WebhookEventType.SUBSCRIPTION_PAYMENT_NOTIFICATION_INITIATED.value,
            WebhookEventType.SUBSCRIPTION_CARD_EXPIRY_REMINDER.value,
        }

        if event_type in informational:
            return INFORMATIONAL
        handler = handlers.get(event_type)
        if handler is None:
            logger.warning("Unhandled webhook event type %s", event_type)
            return IGNORED
        return handler(handle, event_type, payload)

    def _backfill_identifiers(self, handle: MandateHandle, payload: dict[str, Any]) -> None:
        """Store a processor id the mandate does not have yet."""
        cf_subscription_id = first_match(payload, CF_SUBSCRIPTION_ID_EXTRACTORS)
        if cf_subscription_id and not handle.cf_subscription_id:
            self.store.save(handle.mandate_id, {"cf_subscription_id": cf_subscription_id})
            handle.cf_subscription_id = cf_subscription_id

    def _on_status_changed(self, handle: MandateHandle, event_type: str, payload: dict[str, Any]) -> str:
        data = _data(payload)
        details = _nested(data, "subscription_details")
        raw_status = details.get("subscription_status") or data.get("subscription_status")
        target = parse_status(raw_status)
        if target is None:
            logger.warning("Unknown subscription status %r for %s", raw_status, handle.mandate_id)
            return IGNORED

        fields = {
            "next_schedule_date": details.get("next_schedule_date") or data.get("next_schedule_date"),
            "raw_cf_response": data,
        }
        updated = self.store.apply_transition(handle.mandate_id, target, fields)
        if updated is None:
            logger.warning(
                "Dropped transition %s -> %s for %s",
                handle.subscription_status,
                target.value,
                handle.mandate_id,
            )
            return REJECTED
        log_mandate_operation(
            logger, "status_changed", mandate_id=handle.mandate_id, status=target.value
        )
        return APPLIED

    def _on_auth_status(self, handle: MandateHandle, event_type: str, payload: dict[str, Any]) -> str:
        data = _data(payload)
        auth = _nested(data, "authorization_details")
        status = str(
            data.get("payment_status") or auth.get("authorization_status") or AuthStatus.PENDING.value
        ).upper()

        payment_id = first_match(payload, PAYMENT_ID_EXTRACTORS)
        if not payment_id and handle.enrollment_id:
            payment_id = auth_payment_id_for(handle.enrollment_id)

        if not self.store.save_auth_status(
            handle.mandate_id, status, {"auth_payment_id": payment_id, "raw_cf_response": data}
        ):
            return REJECTED

        if payment_id:
            fields = self._payment_fields(handle, payload, PaymentType.AUTH)
            if status == PaymentStatus.SUCCESS.value:
                self.payments.record_success(
                    payment_id,
                    mandate_id=handle.mandate_id,
                    payment_type=PaymentType.AUTH,
                    amount=_amount(payload),
                    enrollment_id=None,
                    fields=fields,
                )
            elif status in (PaymentStatus.FAILED.value, PaymentStatus.CANCELLED.value):
                self.payments.record_failure(
                    payment_id, PaymentStatus(status), _failure_reason(data), fields
                )
            else:
                self.payments.record_pending(payment_id, fields)

        log_mandate_operation(logger, "auth_status", mandate_id=handle.mandate_id, status=status)
        return APPLIED

    def _on_payment_success(self, handle: MandateHandle, event_type: str, payload: dict[str, Any]) -> str:
        payment_id = first_match(payload, PAYMENT_ID_EXTRACTORS)
        if not payment_id:
            raise ValueError("Payment success notification without payment id")

        payment_type = _payment_type(_data(payload))
        applied = self.payments.record_success(
            payment_id,
            mandate_id=handle.mandate_id,
            payment_type=payment_type,
            amount=_amount(payload),
            enrollment_id=self._enrollment_id(handle),
            fields=self._payment_fields(handle, payload, payment_type),
        )
        return APPLIED if applied else DUPLICATE_PAYMENT

    def _on_payment_failed(self, handle: MandateHandle, event_type: str, payload: dict[str, Any]) -> str:
        payment_id = first_match(payload, PAYMENT_ID_EXTRACTORS)
        if not payment_id:
            raise ValueError(f"{event_type} without payment id")

        status = (
            PaymentStatus.CANCELLED
            if event_type == WebhookEventType.SUBSCRIPTION_PAYMENT_CANCELLED.value
            else PaymentStatus.FAILED
        )
        data = _data(payload)
        written = self.payments.record_failure(
            payment_id,
            status,
            _failure_reason(data),
            self._payment_fields(handle, payload, _payment_type(data)),
        )
        if not written:
            return DUPLICATE_PAYMENT

        if not self.store.save_payment_failure(handle.mandate_id, payment_id, status):
            logger.warning(
                "Kept newer successful payment on %s; %s recorded on payment %s only",
                handle.mandate_id,
                status.value,
                payment_id,
            )
        return APPLIED

    def _on_refund_status(self, handle: MandateHandle, event_type: str, payload: dict[str, Any]) -> str:
        data = _data(payload)
        refund = _nested(data, "refund_details", "refund") or data
        payment_id = first_match(payload, PAYMENT_ID_EXTRACTORS) or refund.get("payment_id")
        if not payment_id:
            logger.warning("Refund notification without payment id for %s", handle.mandate_id)
            return IGNORED

        self.payments.record_refund(
            str(payment_id),
            {
                "mandate_id": handle.mandate_id,
                "refund_id": refund.get("refund_id"),
                "refund_status": refund.get("refund_status"),
                "refund_amount": to_amount(refund.get("refund_amount")),
                "refund_raw": refund,
            },
        )
        return APPLIED

    @staticmethod
    def _enrollment_id(handle: MandateHandle) -> str | None:
        if handle.enrollment_id:
            return handle.enrollment_id
        if handle.mandate_id.startswith(MANDATE_ID_PREFIX):
            return handle.mandate_id[len(MANDATE_ID_PREFIX):]
        return None

    @staticmethod
    def _payment_fields(
        handle: MandateHandle, payload: dict[str, Any], payment_type: PaymentType | None
    ) -> dict[str, Any]:
        data = _data(payload)
        cf_payment_id = data.get("cf_payment_id")
        return {
            "mandate_id": handle.mandate_id,
            "subscription_id": handle.subscription_id,
            "cf_payment_id": str(cf_payment_id) if cf_payment_id else None,
            "payment_type": payment_type.value if payment_type else None,
            "amount": _amount(payload),
            "currency": data.get("payment_currency") or data.get("currency"),
            "raw": data,
        }


def _amount(payload: dict[str, Any]) -> Decimal | None:
    return to_amount(first_match(payload, AMOUNT_EXTRACTORS))


def _payment_type(data: dict[str, Any]) -> PaymentType:
    raw = str(data.get("payment_type") or PaymentType.CHARGE.value).upper()
    try:
        return PaymentType(raw)
    except ValueError:
        return PaymentType.CHARGE


def _failure_reason(data: dict[str, Any]) -> str | None:
    failure = _nested(data, "failure_details")
    return failure.get("failure_reason") or data.get("failure_reason") or data.get("payment_message")
