# =============================================================================
# Upload Gateway - Lambda Handler
# =============================================================================
"""
AWS Lambda entry point for the Upload Gateway.

Accepts ``{"bucket_name", "object_key"}`` either as the event itself
(direct invocation) or as the JSON body of a function URL request, and
returns the Lambda-shaped response from ``GatewayResult``.
"""

import asyncio
import base64
import json
from typing import Any, Dict

import structlog

from gic_common.logging_setup import configure_logging

from .config import get_settings
from .models import GatewayResult, UploadRequest
from .services import MALFORMED_REQUEST_MESSAGE, get_authorizer


configure_logging(get_settings().log_level)
logger = structlog.get_logger(__name__)


def _request_payload(event: Any) -> Any:
    """Unwrap a function URL body; direct invocations pass through."""
    if not isinstance(event, dict) or not isinstance(event.get("body"), str):
        return event
    body = event["body"]
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Authorize one upload request."""
    try:
        request = UploadRequest.model_validate(_request_payload(event))
    except ValueError as e:
        # pydantic, json, base64 and unicode decode errors are all ValueErrors
        logger.warning("upload_request_malformed", error=str(e), error_type=type(e).__name__)
        return GatewayResult.client_error(MALFORMED_REQUEST_MESSAGE).to_lambda_response()

    try:
        result = asyncio.run(get_authorizer().authorize(request))
    except Exception as e:
        # Settings and client construction happen on first use
        logger.error(
            "upload_handler_failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        result = GatewayResult.server_error(str(e))
    return result.to_lambda_response()
