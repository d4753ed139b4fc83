# =============================================================================
# GIC Common - Configuration
# =============================================================================
"""
Base settings shared by both services.

Each service extends ``CommonSettings`` with its own fields and caches a
single instance per process.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """
    Settings common to every GIC connector service.
    
    Attributes:
        aws_region: AWS region for S3 and SQS clients
        aws_endpoint_url: Optional endpoint override (LocalStack, MinIO)
        environment: Current environment (development/staging/production)
        log_level: Logging verbosity level
        service_name: Name of this service for logging/tracing
    """
    
    # AWS Configuration
    aws_region: str = "us-east-1"
    aws_endpoint_url: Optional[str] = None
    
    # Application Configuration
    environment: str = "development"
    log_level: str = "INFO"
    service_name: str = "gic-connector"
    
    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
