"""FastAPI application for the Cashfree mandate gateway.

This package provides REST endpoints for:
- Health checks
- Merchant onboarding
- Mandate creation, authorization and management
- Cashfree webhooks
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from mangum import Mangum

from gateway_api.exceptions import register_exception_handlers
from gateway_api.middleware.correlation import CorrelationIdMiddleware
from gateway_api.routes import (
    health_router,
    mandates_router,
    onboarding_router,
    webhooks_router,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="Cashfree Mandate Gateway",
    description="REST API for merchant onboarding, subscription mandates and Cashfree webhooks",
    version="0.1.0",
)

app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

# Include routers under /api prefix
app.include_router(health_router, prefix="/api")
app.include_router(onboarding_router, prefix="/api")
app.include_router(mandates_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Root liveness endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "cashfree-gateway",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "gateway_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "gateway/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
