# =============================================================================
# Upload Gateway - Pydantic Schemas
# =============================================================================
"""
Request and response models for the Upload Gateway.

These models handle validation, serialization, and documentation
for the HTTP endpoints and the Lambda handler.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class UploadRequest(BaseModel):
    """
    Request for a presigned upload URL.

    Both fields are optional here so that a missing field is reported by
    the gateway as a 400 with a readable message rather than a schema error.

    Attributes:
        bucket_name: Bucket the client wants to upload into
        object_key: ``<uuid>/<file name>`` key for the upload

    Example:
        {
            "bucket_name": "acct-cumulus-gic-connector-dev",
            "object_key": "3fb14b7e-0a37-4e11-9c3a-2f0c6d9d4c0a/patients.txt"
        }
    """

    bucket_name: Optional[str] = Field(
        default=None,
        description="Target bucket",
        examples=["acct-cumulus-gic-connector-dev"],
    )
    object_key: Optional[str] = Field(
        default=None,
        description="Object key of the form <uuid>/<file name>",
        examples=["3fb14b7e-0a37-4e11-9c3a-2f0c6d9d4c0a/patients.txt"],
    )


class GatewayResult(BaseModel):
    """
    Outcome of a single authorization attempt.

    Attributes:
        status_code: HTTP-equivalent status (200, 400 or 500)
        presigned_url: The write grant, set only on success
        error: Human-readable failure reason, set only on failure
    """

    status_code: int
    presigned_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def granted(cls, presigned_url: str) -> "GatewayResult":
        return cls(status_code=200, presigned_url=presigned_url)

    @classmethod
    def client_error(cls, message: str) -> "GatewayResult":
        return cls(status_code=400, error=message)

    @classmethod
    def server_error(cls, message: str) -> "GatewayResult":
        return cls(status_code=500, error=message)

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def to_body(self) -> Dict[str, Any]:
        """Body for the HTTP response."""
        if self.ok:
            return {"presigned_url": self.presigned_url}
        return {"error": self.error}

    def to_lambda_response(self) -> Dict[str, Any]:
        """
        Lambda function URL response.

        Returns:
            Dict: ``{"statusCode", "presigned_url"}`` on success,
            ``{"statusCode", "body"}`` with a JSON error body otherwise
        """
        if self.ok:
            return {"statusCode": self.status_code, "presigned_url": self.presigned_url}
        return {
            "statusCode": self.status_code,
            "body": json.dumps({"error": self.error}),
        }


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Service health status
        service: Service name
        version: Service version
        timestamp: Current server time
    """

    status: str = Field(default="healthy", description="Health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Current timestamp",
    )
