"""
Patient Mapper - Route Handlers

Accepts an S3 notification or a direct ``{"bucket", "key"}`` request and
runs one ingestion per object.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Body, HTTPException, status

from ..config import get_settings
from ..models import HealthResponse, IngestionSource, IngestResponse
from ..services import get_mapper


logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check for load balancers."""
    settings = get_settings()
    return HealthResponse(service=settings.service_name, version="1.0.0")


@router.post("/ingest", response_model=IngestResponse, status_code=status.HTTP_200_OK, tags=["Ingestion"])
async def ingest(event: Dict[str, Any] = Body(...)) -> IngestResponse:
    """
    Map and queue uploaded patient files.
    
    Steps:
    1. Extract bucket/key from the S3 event records (or the direct body)
    2. Fetch, map and publish each object in order
    
    Returns 200 once every object is queued. A 500 tells the trigger
    source to retry the whole event.
    """
    try:
        sources = IngestionSource.from_event(event)
    except ValueError as e:
        logger.warning("invalid_ingestion_event", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    
    mapper = get_mapper()
    results = []
    for source in sources:
        result = await mapper.ingest(source)
        if not result.success:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=result.error_message,
            )
        results.append(result)
    
    return IngestResponse.from_results(results)
