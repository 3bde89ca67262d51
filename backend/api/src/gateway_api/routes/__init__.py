"""API routes package.

Routers are organized by domain:

- health: Health check and merchant status debug endpoints
- onboarding: Partner merchant onboarding
- mandates: Mandate create/authorize/manage/read
- webhooks: Cashfree webhook receiver

All routers are registered in main.py with /api prefix.
"""

from gateway_api.routes.health import router as health_router
from gateway_api.routes.mandates import router as mandates_router
from gateway_api.routes.onboarding import router as onboarding_router
from gateway_api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "mandates_router",
    "onboarding_router",
    "webhooks_router",
]
