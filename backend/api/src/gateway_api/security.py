"""Bearer token dependency for protected routes.

Usage:
    @router.post("/mandate/create")
    async def create(principal: Principal = Depends(require_principal)):
        ...
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gateway.services.authenticator import CognitoAuthenticator, Principal

from gateway_api.dependencies import get_authenticator

bearer_scheme = HTTPBearer(auto_error=False)


async def require_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    authenticator: CognitoAuthenticator = Depends(get_authenticator),
) -> Principal:
    """Resolve the caller from ``Authorization: Bearer <token>``.

    Raises:
        GatewayError: UNAUTHORIZED (401) when the header is missing or the
            token is rejected
    """
    token = credentials.credentials if credentials else None
    return authenticator.verify_token(token)
