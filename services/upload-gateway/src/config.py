# =============================================================================
# Upload Gateway - Configuration
# =============================================================================
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with sensible defaults
for local development.
"""

from functools import lru_cache
from typing import List

from pydantic import Field

from gic_common.config import CommonSettings
from gic_common.keys import GENOTYPIC_FILE_SUFFIX, PATIENTS_FILE_NAME, UploadPolicy


class Settings(CommonSettings):
    """
    Application settings loaded from environment variables.
    
    Attributes:
        bucket_name: The only bucket uploads may target (BUCKET_NAME)
        site_name: Site prefix used to build the genotypic file name
        patients_file_name: Name of the patients file
        genotypic_file_suffix: Suffix appended to the site name
        extra_file_names: Additional accepted file names
        grant_expiry_seconds: Presigned URL lifetime
    """
    
    # Upload Policy
    bucket_name: str = "cumulus-gic-connector-dev"
    site_name: str = "bch"
    patients_file_name: str = PATIENTS_FILE_NAME
    genotypic_file_suffix: str = GENOTYPIC_FILE_SUFFIX
    extra_file_names: List[str] = Field(default_factory=list)
    grant_expiry_seconds: int = 3600
    
    service_name: str = "upload-gateway"
    
    def upload_policy(self) -> UploadPolicy:
        """Freeze the upload rules into an ``UploadPolicy``."""
        file_names = [
            self.patients_file_name,
            f"{self.site_name}{self.genotypic_file_suffix}",
            *self.extra_file_names,
        ]
        return UploadPolicy(
            permitted_bucket=self.bucket_name,
            allowed_file_names=tuple(dict.fromkeys(file_names)),
            grant_expiry_seconds=self.grant_expiry_seconds,
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
