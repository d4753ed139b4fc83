# =============================================================================
# Upload Gateway - Upload Authorizer
# =============================================================================
"""
Upload authorization service.

Checks an upload request against the configured ``UploadPolicy`` and, when
it passes, asks S3 for a presigned PUT URL scoped to that exact key.
Each call is a single attempt; callers retry on 5xx results.
"""

from functools import lru_cache

import structlog

from gic_common.errors import BackendErrorKind
from gic_common.keys import InvalidObjectKeyError, ObjectKey, UploadPolicy
from gic_common.storage import S3StorageClient, StorageError

from ..config import get_settings
from ..models import GatewayResult, UploadRequest


# Configure structured logger
logger = structlog.get_logger(__name__)

CREDENTIALS_UNAVAILABLE_MESSAGE = "Credentials not available"
MALFORMED_REQUEST_MESSAGE = "request must be a JSON object with string bucket_name and object_key"


class UploadAuthorizer:
    """
    Issues presigned upload URLs for requests that satisfy the policy.

    Holds no state besides its immutable policy and storage client, so one
    instance can serve concurrent requests.

    Attributes:
        policy: Permitted bucket, file-name allow-list and grant expiry
        storage: Client used to sign the upload URL
    """

    def __init__(self, policy: UploadPolicy, storage: S3StorageClient) -> None:
        self.policy = policy
        self.storage = storage

        logger.info(
            "authorizer_initialized",
            permitted_bucket=policy.permitted_bucket,
            allowed_file_names=list(policy.allowed_file_names),
        )

    async def authorize(self, request: UploadRequest) -> GatewayResult:
        """
        Validate an upload request and issue a write grant.

        Steps:
        1. Require both bucket_name and object_key
        2. Require the permitted bucket
        3. Require a ``<uuid>/<allowed file>`` key
        4. Presign a PUT for that bucket/key

        Args:
            request: The incoming upload request

        Returns:
            GatewayResult: 200 with the URL, 400 on validation failure,
            500 on storage failure
        """
        bucket_name = request.bucket_name
        object_key = request.object_key

        if not bucket_name or not object_key:
            logger.warning("upload_request_incomplete")
            return GatewayResult.client_error("bucket_name and object_key are required")

        if bucket_name != self.policy.permitted_bucket:
            logger.warning("bucket_not_permitted", bucket_name=bucket_name)
            return GatewayResult.client_error(
                f"uploads to bucket {bucket_name} are not permitted"
            )

        try:
            key = ObjectKey.parse(object_key, self.policy.allowed_file_names)
        except InvalidObjectKeyError as e:
            logger.warning("object_key_rejected", object_key=object_key, reason=str(e))
            return GatewayResult.client_error(
                "object key must be a UUID directory followed by one of these files: "
                f"{self.policy.describe_allowed_files()}"
            )

        logger.info("upload_request_valid", bucket_name=bucket_name, object_key=str(key))

        try:
            url = await self.storage.generate_upload_url(
                bucket=bucket_name,
                key=str(key),
                expires_in=self.policy.grant_expiry_seconds,
            )
        except StorageError as e:
            if e.kind is BackendErrorKind.CREDENTIALS_UNAVAILABLE:
                return GatewayResult.server_error(CREDENTIALS_UNAVAILABLE_MESSAGE)
            return GatewayResult.server_error(str(e))
        except Exception as e:
            logger.error(
                "authorization_failed",
                object_key=object_key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return GatewayResult.server_error(str(e))

        logger.info("upload_authorized", bucket_name=bucket_name, object_key=str(key))
        return GatewayResult.granted(url)


@lru_cache
def get_authorizer() -> UploadAuthorizer:
    """
    Get cached authorizer instance.

    Built once per process from the environment settings.

    Returns:
        UploadAuthorizer: Configured authorizer
    """
    settings = get_settings()
    storage = S3StorageClient(
        region=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url,
    )
    return UploadAuthorizer(policy=settings.upload_policy(), storage=storage)
