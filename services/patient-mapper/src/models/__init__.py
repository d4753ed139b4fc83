# =============================================================================
# Patient Mapper - Models Package
# =============================================================================
"""Pydantic models for triggers, mapped output and results."""

from .schemas import (
    HealthResponse,
    IngestionResult,
    IngestionSource,
    IngestResponse,
    MappedBatch,
    MappedRecord,
    MappingConfig,
    QueuePolicy,
)

__all__ = [
    "HealthResponse",
    "IngestionResult",
    "IngestionSource",
    "IngestResponse",
    "MappedBatch",
    "MappedRecord",
    "MappingConfig",
    "QueuePolicy",
]
