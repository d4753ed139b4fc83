"""
Patient Mapper - Main Application

Reads uploaded patient files from S3, maps GIC ids to MRNs and publishes
the mapped rows to SQS.
"""

import asyncio

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gic_common.logging_setup import configure_logging

from .api import router
from .config import get_settings
from .services import QueuePublishError, get_publisher


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GIC Connector Patient Mapper",
        description="S3 upload transformer publishing mapped patients to SQS",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    logger = structlog.get_logger(__name__)
    logger.info(
        "application_startup",
        service=settings.service_name,
        queue_url=settings.queue_url,
    )

    return app


app = create_app()


@app.on_event("startup")
async def startup_event() -> None:
    """Warn when the live queue does not carry the expected redrive policy."""
    logger = structlog.get_logger(__name__)
    try:
        loop = asyncio.get_event_loop()
        mismatches = await loop.run_in_executor(
            None, get_publisher().check_queue_configuration
        )
    except QueuePublishError as e:
        logger.warning("queue_configuration_unreadable", kind=e.kind.value, error=str(e))
    else:
        for mismatch in mismatches:
            logger.warning("queue_configuration_mismatch", detail=mismatch)
    logger.info("startup_complete")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Log when application is shutting down."""
    logger = structlog.get_logger(__name__)
    logger.info("shutdown_initiated")
