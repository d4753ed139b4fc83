"""
Upload Gateway - Route Handlers

Handles /presigned-url for upload authorization.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..models import HealthResponse, UploadRequest
from ..services import get_authorizer


logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check for load balancers."""
    settings = get_settings()
    return HealthResponse(service=settings.service_name, version="1.0.0")


@router.post("/presigned-url", tags=["Uploads"])
async def presigned_url(request: UploadRequest) -> JSONResponse:
    """
    Issue a presigned upload URL.
    
    200: {"presigned_url": ...}
    400: missing fields, wrong bucket or malformed object key
    500: storage credentials or signing failure
    """
    authorizer = get_authorizer()
    result = await authorizer.authorize(request)
    
    if not result.ok:
        logger.info(
            "upload_request_refused",
            status_code=result.status_code,
            error=result.error,
        )
    
    return JSONResponse(status_code=result.status_code, content=result.to_body())
