"""Process configuration for the gateway.

Settings are read from the environment once at process start and passed
into every component that needs them. Business logic never reads
``os.environ`` directly.

The partner API key can come from ``PARTNER_API_KEY`` or, when that is
unset, from an SSM SecureString named by ``PARTNER_API_KEY_SSM_PARAMETER``.
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

SANDBOX_PARTNERS_BASE = "https://api-sandbox.cashfree.com/partners"
SANDBOX_PG_BASE = "https://sandbox.cashfree.com/pg"
PROD_PARTNERS_BASE = "https://api.cashfree.com/partners"
PROD_PG_BASE = "https://api.cashfree.com/pg"


class GatewaySettings(BaseModel):
    """Immutable runtime configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment")
    cf_env: str = Field(default="sandbox", description="Cashfree environment (sandbox/prod)")
    partner_api_key: str | None = Field(
        default=None,
        description="Cashfree partner API key; also the default webhook signing secret",
    )
    webhook_secret_override: str | None = Field(
        default=None,
        description="Explicit webhook signing secret when it differs from the partner key",
    )
    partner_api_version: str = Field(default="2023-01-01")
    pg_api_version: str = Field(default="2025-01-01")
    webhook_tolerance_seconds: int = Field(default=300, ge=0)
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    event_type_prefix: str = Field(default="cashfree")
    cognito_region: str | None = Field(default=None)

    @property
    def is_production(self) -> bool:
        return self.cf_env == "prod"

    @property
    def partners_base_url(self) -> str:
        return PROD_PARTNERS_BASE if self.is_production else SANDBOX_PARTNERS_BASE

    @property
    def pg_base_url(self) -> str:
        return PROD_PG_BASE if self.is_production else SANDBOX_PG_BASE

    @property
    def webhook_secret(self) -> str | None:
        return self.webhook_secret_override or self.partner_api_key


def _resolve_partner_key(environ: dict[str, str]) -> str | None:
    """Return the partner key from the environment or SSM, or None."""
    key = environ.get("PARTNER_API_KEY")
    if key:
        return key

    parameter = environ.get("PARTNER_API_KEY_SSM_PARAMETER")
    if not parameter:
        return None

    from gateway.services.ssm_service import SSMServiceError, get_ssm_service

    try:
        return get_ssm_service().get_parameter(parameter)
    except SSMServiceError as e:
        logger.error("Could not load partner API key from SSM: %s", e)
        return None


def load_settings(environ: dict[str, str] | None = None) -> GatewaySettings:
    """Build settings from environment variables.

    A missing partner key is reported but does not raise: webhook
    verification then rejects everything and outbound calls fail with an
    upstream error, instead of the process refusing to start.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Populated GatewaySettings.
    """
    env = dict(os.environ if environ is None else environ)

    partner_key = _resolve_partner_key(env)
    if not partner_key:
        logger.error(
            "Missing PARTNER_API_KEY; webhook verification and Cashfree calls will fail"
        )

    return GatewaySettings(
        environment=env.get("ENVIRONMENT", "dev"),
        cf_env=env.get("CF_ENV", "sandbox").lower(),
        partner_api_key=partner_key,
        webhook_secret_override=env.get("CF_WEBHOOK_SECRET") or None,
        partner_api_version=env.get("PARTNER_API_VERSION", "2023-01-01"),
        pg_api_version=env.get("PG_API_VERSION", "2025-01-01"),
        webhook_tolerance_seconds=int(env.get("WEBHOOK_TOLERANCE_SEC", "300")),
        http_timeout_seconds=float(env.get("CF_HTTP_TIMEOUT_SEC", "15")),
        event_type_prefix=env.get("EVENT_TYPE_PREFIX", "cashfree"),
        cognito_region=env.get("COGNITO_REGION") or env.get("AWS_DEFAULT_REGION"),
    )


@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    """Get the process-wide settings (loaded on first call)."""
    return load_settings()
