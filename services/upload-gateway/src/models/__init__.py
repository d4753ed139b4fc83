# =============================================================================
# Upload Gateway - Models Package
# =============================================================================
"""Pydantic models for request/response validation."""

from .schemas import (
    GatewayResult,
    HealthResponse,
    UploadRequest,
)

__all__ = [
    "GatewayResult",
    "HealthResponse",
    "UploadRequest",
]
