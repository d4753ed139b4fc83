# =============================================================================
# Patient Mapper - Lambda Handler
# =============================================================================
"""
AWS Lambda entry point for the Patient Mapper.

Triggered by S3 "object created" notifications, or invoked directly with
``{"bucket", "key"}``. S3 delivers one record per notification; the
response for that record is returned as-is, and events carrying several
records get a list of responses in record order.
"""

import asyncio
from typing import Any, Dict, List

import structlog

from gic_common.logging_setup import configure_logging

from .config import get_settings
from .models import IngestionResult, IngestionSource
from .services import get_mapper


configure_logging(get_settings().log_level)
logger = structlog.get_logger(__name__)


async def _ingest_all(sources: List[IngestionSource]) -> List[IngestionResult]:
    mapper = get_mapper()
    return [await mapper.ingest(source) for source in sources]


def handler(event: Dict[str, Any], context: Any) -> Any:
    """Map and queue every object named by the event."""
    try:
        sources = IngestionSource.from_event(event)
        results = asyncio.run(_ingest_all(sources))
    except ValueError as e:
        logger.error("invalid_ingestion_event", error=str(e))
        return {"statusCode": 500, "body": f"Error processing file: {e}"}
    except Exception as e:
        logger.error(
            "ingestion_handler_failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return {"statusCode": 500, "body": f"Error processing file: {e}"}

    responses = [result.to_lambda_response() for result in results]

    if len(responses) == 1:
        return responses[0]
    return responses
