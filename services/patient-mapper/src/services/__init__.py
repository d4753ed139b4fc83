# =============================================================================
# Patient Mapper - Services Package
# =============================================================================
"""Service layer for mapping and queue publishing."""

from .queue import QueuePublishError, SqsPublisher, get_publisher
from .transformer import (
    IngestionFetchError,
    IngestionPublishError,
    PatientMapper,
    get_mapper,
    map_record,
)

__all__ = [
    "IngestionFetchError",
    "IngestionPublishError",
    "PatientMapper",
    "QueuePublishError",
    "SqsPublisher",
    "get_mapper",
    "get_publisher",
    "map_record",
]
