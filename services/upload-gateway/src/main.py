# =============================================================================
# Upload Gateway - Main Application
# =============================================================================
"""
GIC Connector Upload Gateway

Hands out short-lived presigned URLs so that sites can upload patient
files straight into the connector bucket without holding AWS credentials.

Key Features:
- Strict keys: <uuid>/<allowed file name> only
- Single bucket: the permitted bucket is fixed per deployment
- Time-limited: grants expire after one hour
- Observable: Structured logging for debugging and monitoring
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gic_common.logging_setup import configure_logging

from .api import router
from .config import get_settings
from .models import GatewayResult
from .services import MALFORMED_REQUEST_MESSAGE


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    # Configure logging first
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GIC Connector Upload Gateway",
        description="""
## Overview

Issues presigned S3 upload URLs for GIC patient files.

## Object keys

Keys must be a canonical UUID directory followed by one of the allowed
file names, e.g. `3fb14b7e-0a37-4e11-9c3a-2f0c6d9d4c0a/patients.txt`.
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(RequestValidationError)
    async def malformed_request_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Wrong types, non-JSON or missing bodies answer like any other 400
        structlog.get_logger(__name__).warning(
            "upload_request_malformed", path=request.url.path, errors=len(exc.errors())
        )
        result = GatewayResult.client_error(MALFORMED_REQUEST_MESSAGE)
        return JSONResponse(status_code=result.status_code, content=result.to_body())

    logger = structlog.get_logger(__name__)
    logger.info(
        "application_startup",
        service=settings.service_name,
        environment=settings.environment,
        permitted_bucket=settings.bucket_name,
    )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Log when application is shutting down."""
    logger = structlog.get_logger(__name__)
    logger.info("shutdown_initiated", message="Upload Gateway shutting down")
