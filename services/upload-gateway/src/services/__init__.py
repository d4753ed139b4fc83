# =============================================================================
# Upload Gateway - Services Package
# =============================================================================
"""Service layer for upload authorization."""

from .authorizer import MALFORMED_REQUEST_MESSAGE, UploadAuthorizer, get_authorizer

__all__ = ["MALFORMED_REQUEST_MESSAGE", "UploadAuthorizer", "get_authorizer"]
