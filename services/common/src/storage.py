# =============================================================================
# GIC Common - S3 Storage Client
# =============================================================================
"""
Amazon S3 storage client.

Wraps the synchronous boto3 client behind an async interface and raises
``StorageError`` tagged with a ``BackendErrorKind`` on failure.
"""

import asyncio
from typing import Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import BackendErrorKind, classify_error


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """S3 failure tagged with a ``BackendErrorKind``."""

    def __init__(self, kind: BackendErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class S3StorageClient:
    """
    Async-compatible S3 client for presigning uploads and reading objects.

    Attributes:
        region: AWS region name
        endpoint_url: Optional endpoint override
        _client: Underlying boto3 S3 client, created on first use
    """

    def __init__(
        self,
        region: str,
        endpoint_url: Optional[str] = None,
        client=None,
    ) -> None:
        """
        Initialize the storage client.

        Args:
            region: AWS region name
            endpoint_url: Optional endpoint override (LocalStack, MinIO)
            client: Pre-built boto3 S3 client, mainly for tests
        """
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client

        logger.info(
            "storage_client_initialized",
            region=region,
            endpoint_url=endpoint_url,
        )

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(
                    signature_version="s3v4",
                    retries={"total_max_attempts": 1, "mode": "standard"},
                ),
            )
        return self._client

    async def generate_upload_url(self, bucket: str, key: str, expires_in: int) -> str:
        """
        Presign a single PUT of ``key`` into ``bucket``.

        Expiry is enforced by S3 when the URL is used; nothing is tracked here.

        Args:
            bucket: Target bucket
            key: Target object key
            expires_in: URL lifetime in seconds

        Returns:
            str: The presigned URL

        Raises:
            StorageError: If the URL cannot be signed
        """
        try:
            client = self._get_client()
            loop = asyncio.get_event_loop()
            url = await loop.run_in_executor(
                None,
                lambda: client.generate_presigned_url(
                    ClientMethod="put_object",
                    Params={"Bucket": bucket, "Key": key},
                    ExpiresIn=expires_in,
                ),
            )
        except (BotoCoreError, ClientError) as e:
            raise self._storage_error("presign_failed", e, bucket=bucket, key=key) from e

        logger.info("upload_url_generated", bucket=bucket, key=key, expires_in=expires_in)
        return url

    async def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """
        Read an object's full body.

        Args:
            bucket: Source bucket
            key: Source object key

        Returns:
            bytes: Raw object content

        Raises:
            StorageError: If the object is missing or cannot be read
        """
        try:
            client = self._get_client()
            loop = asyncio.get_event_loop()
            response = await loop.run_in_executor(
                None,
                lambda: client.get_object(Bucket=bucket, Key=key),
            )
            body = await loop.run_in_executor(None, response["Body"].read)
        except (BotoCoreError, ClientError) as e:
            raise self._storage_error("object_read_failed", e, bucket=bucket, key=key) from e

        logger.info("object_read", bucket=bucket, key=key, size_bytes=len(body))
        return body

    def _storage_error(self, event: str, error: Exception, **context) -> StorageError:
        kind = classify_error(error)
        logger.error(
            event,
            kind=kind.value,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return StorageError(kind, str(error))
