"""Bearer token verification against Amazon Cognito."""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from gateway.models.errors import ErrorCode, GatewayError

logger = logging.getLogger(__name__)


class Principal(BaseModel):
    """Authenticated caller."""

    user_id: str
    username: str | None = None
    email: str | None = None


class CognitoAuthenticator:
    """Validates Cognito access tokens with ``GetUser``.

    Cognito rejects expired, revoked and malformed tokens, so a successful
    call is enough to trust the returned identity.
    """

    def __init__(self, region: str | None = None, client: Any = None) -> None:
        self._client = client or boto3.client("cognito-idp", region_name=region)

    def verify_token(self, token: str | None) -> Principal:
        """Resolve a bearer token to a principal.

        Raises:
            GatewayError: UNAUTHORIZED if the token is missing or rejected
        """
        if not token:
            raise GatewayError(ErrorCode.UNAUTHORIZED, {"reason": "missing bearer token"})

        try:
            response = self._client.get_user(AccessToken=token)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning("Cognito rejected access token: %s", code)
            raise GatewayError(ErrorCode.UNAUTHORIZED, {"reason": code}) from e
        except BotoCoreError as e:
            logger.error("Cognito token check failed: %s", e)
            raise GatewayError(ErrorCode.UNAUTHORIZED, {"reason": "token verification failed"}) from e

        attributes = {a["Name"]: a["Value"] for a in response.get("UserAttributes", [])}
        return Principal(
            user_id=attributes.get("sub") or response["Username"],
            username=response.get("Username"),
            email=attributes.get("email"),
        )
