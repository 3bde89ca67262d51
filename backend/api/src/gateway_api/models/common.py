"""Shared API response models.

Domain models (Mandate, Payment, ...) live in gateway.models. This module
holds HTTP-layer concerns only.
"""

from pydantic import BaseModel, ConfigDict, Field

# Re-export ErrorResponse for convenience - this is the standard error format
from gateway.models.errors import ErrorCode, ErrorResponse

__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "HealthResponse",
]


class HealthResponse(BaseModel):
    """Liveness response."""

    model_config = ConfigDict(strict=True)

    status: str = Field(default="ok", examples=["ok"])
    timestamp: str = Field(..., description="Server time (ISO-8601, UTC)")
    service: str = Field(default="cashfree-gateway")
    environment: str | None = Field(default=None, examples=["dev"])
