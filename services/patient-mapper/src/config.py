# =============================================================================
# Patient Mapper - Configuration
# =============================================================================
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with sensible defaults
for local development.
"""

from functools import lru_cache
from typing import Optional

from gic_common.config import CommonSettings

from .models.schemas import MappingConfig, QueuePolicy


class Settings(CommonSettings):
    """
    Application settings loaded from environment variables.
    
    Attributes:
        queue_url: SQS queue receiving mapped batches
        dead_letter_queue_url: Dead-letter queue behind queue_url
        visibility_timeout_seconds: Expected queue visibility timeout
        max_receive_count: Expected redrive bound before dead-lettering
        dead_letter_retention_seconds: Expected dead-letter retention
        output_header: Header row of the mapped output
        mrn_prefix: Prefix prepended to each id to form the MRN
        source_encoding: Encoding of uploaded files
    """
    
    # Queue Configuration
    queue_url: str = "http://localhost:4566/000000000000/gic-connector-ProcessingQueue"
    dead_letter_queue_url: Optional[str] = None
    visibility_timeout_seconds: int = 300  # matches the 5 minute ingestion timeout
    max_receive_count: int = 3
    dead_letter_retention_seconds: int = 1_209_600  # 14 days
    
    # Mapping Configuration
    output_header: str = "GIC_ID,MRN"
    mrn_prefix: str = "mrn-"
    source_encoding: str = "utf-8"
    
    service_name: str = "patient-mapper"
    
    def mapping_config(self) -> MappingConfig:
        return MappingConfig(
            output_header=self.output_header,
            mrn_prefix=self.mrn_prefix,
            source_encoding=self.source_encoding,
        )
    
    def queue_policy(self) -> QueuePolicy:
        return QueuePolicy(
            visibility_timeout_seconds=self.visibility_timeout_seconds,
            max_receive_count=self.max_receive_count,
            dead_letter_retention_seconds=self.dead_letter_retention_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to avoid re-reading environment variables
    on every request.
    
    Returns:
        Settings: Application configuration instance
    """
    return Settings()
