"""Standard error codes for the mandate gateway.

Every request-time failure is raised as a GatewayError carrying one of
these codes; the API layer turns it into an ErrorResponse with a matching
HTTP status. Webhook processing catches them and writes audit events
instead of surfacing them.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Gateway error codes."""

    VALIDATION_ERROR = "ERR_VALIDATION"
    CONFLICT = "ERR_CONFLICT"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    UPSTREAM_ERROR = "ERR_UPSTREAM"
    NOT_FOUND = "ERR_NOT_FOUND"
    INVALID_STATE = "ERR_INVALID_STATE"
    INVALID_WEBHOOK_SIGNATURE = "ERR_INVALID_SIGNATURE"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Request is missing required fields or has malformed values",
    ErrorCode.CONFLICT: "The request conflicts with the current state of the mandate",
    ErrorCode.UNAUTHORIZED: "Authentication required or the token is invalid",
    ErrorCode.UPSTREAM_ERROR: "Cashfree returned an error or could not be reached",
    ErrorCode.NOT_FOUND: "Mandate or payment not found",
    ErrorCode.INVALID_STATE: "The mandate is not in a state that allows this operation",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
}

# Recovery suggestions for API clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Fix the listed field and resubmit",
    ErrorCode.CONFLICT: "Do not retry with the same parameters; inspect the existing mandate",
    ErrorCode.UNAUTHORIZED: "Sign in again and send a valid bearer token",
    ErrorCode.UPSTREAM_ERROR: "Retry later; the attached status and body describe the failure",
    ErrorCode.NOT_FOUND: "Verify the enrollment or subscription id",
    ErrorCode.INVALID_STATE: "Complete the missing mandate step before retrying",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify the webhook signing secret configuration",
}


class ErrorResponse(BaseModel):
    """Standard JSON body for failed requests."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, Any]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class GatewayError(Exception):
    """Exception raised by gateway operations.

    Can be caught and converted to an ErrorResponse for HTTP responses.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)
