"""Partner merchant onboarding."""

import logging
from typing import Any

from gateway.models.errors import ErrorCode, GatewayError
from gateway.models.onboarding import MerchantOnboardingRecord

from .cashfree_client import CashfreeClient, CashfreeClientError
from .dynamodb import DynamoDBService
from .event_service import EventService
from .mandate_store import utc_now_iso
from .tables import index_name

logger = logging.getLogger(__name__)

USERS_TABLE = "users"


def _merchant_id_from(response: dict[str, Any]) -> str | None:
    data = response.get("data")
    if isinstance(data, dict) and data.get("merchant_id"):
        return str(data["merchant_id"])
    merchant_id = response.get("merchant_id")
    return str(merchant_id) if merchant_id else None


def _onboarding_status_from(response: dict[str, Any]) -> str | None:
    data = response.get("data")
    if isinstance(data, dict) and data.get("onboarding_status"):
        return str(data["onboarding_status"])
    status = response.get("onboarding_status")
    return str(status) if status else None


class OnboardingService:
    """Creates Cashfree partner merchants and maps them onto users."""

    def __init__(self, db: DynamoDBService, client: CashfreeClient, events: EventService) -> None:
        self.db = db
        self.client = client
        self.events = events

    def create_merchant(self, user_id: str, merchant_info: dict[str, Any]) -> dict[str, Any]:
        """Create a partner merchant and store the mapping on the user.

        Args:
            user_id: User the merchant belongs to
            merchant_info: Merchant request body forwarded to Cashfree

        Returns:
            The processor response

        Raises:
            GatewayError: VALIDATION_ERROR or UPSTREAM_ERROR
        """
        if not user_id or not merchant_info:
            raise GatewayError(ErrorCode.VALIDATION_ERROR, {"fields": ["user_id", "merchant_info"]})

        try:
            response = self.client.partner_post("/merchants", merchant_info)
        except CashfreeClientError as e:
            raise GatewayError(ErrorCode.UPSTREAM_ERROR, e.to_details()) from e

        record = MerchantOnboardingRecord(
            merchant_id=_merchant_id_from(response),
            onboarding_status=_onboarding_status_from(response) or "CREATED",
            raw=response,
        )
        now = utc_now_iso()
        self.db.merge_item(
            USERS_TABLE,
            {"user_id": user_id},
            {
                "cashfree": record.model_dump(),
                "cashfree_merchant_id": record.merchant_id,
                "updated_at": now,
            },
            set_if_not_exists={"created_at": now},
        )
        self.events.log(
            "onboard.created",
            {"user_id": user_id, "merchant_id": record.merchant_id, "cf_response": response},
        )
        logger.info("Onboarded merchant %s for user %s", record.merchant_id, user_id)
        return response

    def merchant_id_for_user(self, user_id: str) -> str | None:
        user = self.db.get_item(USERS_TABLE, {"user_id": user_id})
        if not user:
            return None
        cashfree = user.get("cashfree") or {}
        return cashfree.get("merchant_id") or user.get("cashfree_merchant_id")

    def create_onboarding_link(
        self,
        merchant_id: str | None = None,
        user_id: str | None = None,
        link_type: str | None = None,
        return_url: str | None = None,
    ) -> dict[str, Any]:
        """Request a hosted onboarding link for a merchant.

        The merchant may be given directly or looked up from the user.
        ``link_type="standard"`` requests the standard onboarding flow.
        """
        resolved = merchant_id or (self.merchant_id_for_user(user_id) if user_id else None)
        if not resolved:
            raise GatewayError(
                ErrorCode.VALIDATION_ERROR,
                {"fields": ["merchant_id or user_id with an onboarded merchant"]},
            )

        path = f"/merchants/{resolved}/onboarding_link"
        if link_type == "standard":
            path += "/standard"
        try:
            response = self.client.partner_post(
                path, {"type": "account_onboarding", "return_url": return_url or ""}
            )
        except CashfreeClientError as e:
            raise GatewayError(ErrorCode.UPSTREAM_ERROR, e.to_details()) from e

        self.events.log("onboard.link_created", {"merchant_id": resolved, "cf_response": response})
        return response

    def get_merchant_status(self, merchant_id: str) -> dict[str, Any]:
        try:
            return self.client.partner_get(f"/merchants/{merchant_id}")
        except CashfreeClientError as e:
            if e.status_code == 404:
                raise GatewayError(ErrorCode.NOT_FOUND, {"merchant_id": merchant_id}) from e
            raise GatewayError(ErrorCode.UPSTREAM_ERROR, e.to_details()) from e

    def apply_onboarding_webhook(self, payload: dict[str, Any]) -> str:
        """Update the onboarding status of the user owning the merchant.

        Returns:
            "applied", or "ignored" when no user matches
        """
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        merchant_id = data.get("merchant_id") or data.get("merchantId")
        status = data.get("onboarding_status") or data.get("status")
        if not merchant_id:
            logger.warning("Onboarding webhook without merchant id")
            return "ignored"

        users = self.db.query_by_gsi(
            table=USERS_TABLE,
            index_name=index_name("cashfree_merchant_id"),
            partition_key_name="cashfree_merchant_id",
            partition_key_value=str(merchant_id),
            limit=1,
        )
        if not users:
            logger.warning("No user for onboarded merchant %s", merchant_id)
            return "ignored"

        user = users[0]
        cashfree = dict(user.get("cashfree") or {})
        if status:
            cashfree["onboarding_status"] = status
        cashfree["raw"] = data
        self.db.merge_item(
            USERS_TABLE,
            {"user_id": user["user_id"]},
            {"cashfree": cashfree, "updated_at": utc_now_iso()},
        )
        logger.info("Merchant %s onboarding status is now %s", merchant_id, status)
        return "applied"
