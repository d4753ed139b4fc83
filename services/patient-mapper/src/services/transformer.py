# =============================================================================
# Patient Mapper - Transformer
# =============================================================================
"""
Patient id mapping service.

A single fetch -> map -> publish pass over one uploaded file. The first
line is always dropped as a header; every other line is mapped as-is, in
order, with no shape validation. There is no retry loop here: failed
invocations are retried by their trigger, and delivered messages are
redriven or dead-lettered by SQS.
"""

from functools import lru_cache
from typing import List

import structlog

from gic_common.storage import S3StorageClient, StorageError

from ..config import get_settings
from ..models import (
    IngestionResult,
    IngestionSource,
    MappedBatch,
    MappedRecord,
    MappingConfig,
)
from .queue import QueuePublishError, SqsPublisher, get_publisher


# Configure structured logger
logger = structlog.get_logger(__name__)


class IngestionFetchError(Exception):
    """The source object could not be read or decoded."""
    pass


class IngestionPublishError(Exception):
    """The mapped batch could not be published."""
    pass


def map_record(line: str, mrn_prefix: str = "mrn-") -> MappedRecord:
    """Map one raw line to its MRN row."""
    return MappedRecord(output_id=line, mapped_id=f"{mrn_prefix}{line}")


def map_lines(content: str, mrn_prefix: str = "mrn-") -> List[MappedRecord]:
    """
    Map every data line of a file.

    Args:
        content: Decoded file content; its first line is the header
        mrn_prefix: Prefix that turns an id into its MRN

    Returns:
        List[MappedRecord]: One record per data line, in file order
    """
    data_lines = content.splitlines()[1:]
    return [map_record(line, mrn_prefix) for line in data_lines]


class PatientMapper:
    """
    Transforms uploaded patient files and queues the result.

    Attributes:
        storage: Client used to read the uploaded object
        publisher: Client used to queue the mapped batch
        config: Header, MRN prefix and source encoding
    """

    def __init__(
        self,
        storage: S3StorageClient,
        publisher: SqsPublisher,
        config: MappingConfig,
    ) -> None:
        self.storage = storage
        self.publisher = publisher
        self.config = config

    async def ingest(self, source: IngestionSource) -> IngestionResult:
        """
        Fetch, map and publish one uploaded file.

        The whole file is published as one message, so a publish failure
        leaves nothing on the queue for this invocation.

        Args:
            source: Bucket and key of the uploaded object

        Returns:
            IngestionResult: Mapped lines and message id, or the failure
        """
        log = logger.bind(bucket=source.bucket, key=source.key)
        log.info("ingestion_started")

        try:
            content = await self._fetch(source)
            batch = self.transform(source, content)
            message_id = await self._publish(batch)
        except (IngestionFetchError, IngestionPublishError) as e:
            log.error("ingestion_failed", error=str(e), error_type=type(e).__name__)
            return IngestionResult.failed(source, str(e))
        except Exception as e:
            log.error(
                "ingestion_unexpected_error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return IngestionResult.failed(source, str(e))

        log.info("ingestion_completed", row_count=len(batch.rows), message_id=message_id)
        return IngestionResult.succeeded(source, batch.lines, message_id)

    def transform(self, source: IngestionSource, content: str) -> MappedBatch:
        """Map decoded file content into a batch for ``source``."""
        records = map_lines(content, self.config.mrn_prefix)
        return MappedBatch(
            bucket=source.bucket,
            key=source.key,
            header=self.config.output_header,
            rows=[record.to_row() for record in records],
        )

    async def _fetch(self, source: IngestionSource) -> str:
        try:
            raw = await self.storage.get_object_bytes(source.bucket, source.key)
        except StorageError as e:
            raise IngestionFetchError(str(e)) from e

        try:
            return raw.decode(self.config.source_encoding)
        except UnicodeDecodeError as e:
            raise IngestionFetchError(
                f"{source.key} is not valid {self.config.source_encoding}: {e}"
            ) from e

    async def _publish(self, batch: MappedBatch) -> str:
        try:
            return await self.publisher.publish(batch)
        except QueuePublishError as e:
            raise IngestionPublishError(str(e)) from e


@lru_cache
def get_mapper() -> PatientMapper:
    """
    Get cached mapper instance.

    Built once per process from the environment settings.

    Returns:
        PatientMapper: Configured mapper
    """
    settings = get_settings()
    storage = S3StorageClient(
        region=settings.aws_region,
        endpoint_url=settings.aws_endpoint_url,
    )
    return PatientMapper(
        storage=storage,
        publisher=get_publisher(),
        config=settings.mapping_config(),
    )
