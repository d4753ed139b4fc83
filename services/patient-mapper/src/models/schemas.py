# =============================================================================
# Patient Mapper - Pydantic Schemas
# =============================================================================
"""
Models for the Patient Mapper service.

Covers the ingestion trigger (direct or S3 notification), the mapped
records, the SQS message body and the results handed back to callers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field


class MappingConfig(BaseModel):
    """
    Immutable settings for the GIC id to MRN transform.

    Attributes:
        output_header: First row of every mapped output
        mrn_prefix: Prefix that turns an id into its MRN
        source_encoding: Encoding used to decode uploaded files
    """

    model_config = ConfigDict(frozen=True)

    output_header: str = "GIC_ID,MRN"
    mrn_prefix: str = "mrn-"
    source_encoding: str = "utf-8"


class QueuePolicy(BaseModel):
    """
    Redrive settings the processing queue is expected to carry.

    These are enforced by SQS, never by this service.
    """

    model_config = ConfigDict(frozen=True)

    visibility_timeout_seconds: int = 300
    max_receive_count: int = 3
    dead_letter_retention_seconds: int = 1_209_600


class IngestionSource(BaseModel):
    """
    The uploaded object to transform.

    Attributes:
        bucket: Bucket holding the object
        key: Object key inside the bucket
    """

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)

    @classmethod
    def from_s3_record(cls, record: Dict[str, Any]) -> "IngestionSource":
        """
        Build a source from one ``Records`` entry of an S3 notification.

        S3 URL-encodes object keys in notifications, so the key is decoded.

        Raises:
            ValueError: If the record lacks string bucket or object fields
        """
        try:
            bucket = record["s3"]["bucket"]["name"]
            key = record["s3"]["object"]["key"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Not an S3 event record: missing {e}") from e
        if not isinstance(bucket, str) or not isinstance(key, str):
            raise ValueError("S3 event record bucket name and object key must be strings")
        return cls(bucket=bucket, key=unquote_plus(key))

    @classmethod
    def from_event(cls, event: Any) -> List["IngestionSource"]:
        """
        Extract sources from a trigger event.

        Accepts either an S3 notification (``{"Records": [...]}``) or a
        direct invocation (``{"bucket": ..., "key": ...}``).

        Returns:
            List[IngestionSource]: One source per record, in event order

        Raises:
            ValueError: If the event matches neither shape
        """
        if not isinstance(event, dict):
            raise ValueError("Event must be a JSON object")
        if "Records" in event:
            records = event["Records"]
            if not isinstance(records, list) or not records:
                raise ValueError("S3 event contains no records")
            return [cls.from_s3_record(record) for record in records]
        return [cls.model_validate(event)]


class MappedRecord(BaseModel):
    """
    One mapped output row.

    Attributes:
        output_id: The id as read from the source line
        mapped_id: The MRN derived from output_id
    """

    model_config = ConfigDict(frozen=True)

    output_id: str
    mapped_id: str

    def to_row(self) -> str:
        return f"{self.output_id},{self.mapped_id}"


class MappedBatch(BaseModel):
    """
    SQS message body: every mapped row of one uploaded file.

    Attributes:
        bucket: Source bucket
        key: Source object key
        header: Header row of the mapped output
        rows: Mapped rows in source order
        mapped_at: When the transform ran
    """

    bucket: str
    key: str
    header: str
    rows: List[str] = Field(default_factory=list)
    mapped_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Mapping timestamp (UTC)",
    )

    @property
    def lines(self) -> List[str]:
        """Header followed by the mapped rows."""
        return [self.header, *self.rows]

    def to_sqs_body(self) -> str:
        """
        Serialize the batch for SQS.

        Returns:
            str: JSON representation
        """
        return self.model_dump_json()


class IngestionResult(BaseModel):
    """
    Outcome of one ``ingest`` call.

    Attributes:
        success: Whether the batch reached the queue
        source: The object that was processed
        lines: Mapped output lines, header first (empty on failure)
        message_id: SQS message id on success
        error: Failure reason on failure
    """

    success: bool
    source: IngestionSource
    lines: List[str] = Field(default_factory=list)
    message_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(
        cls, source: IngestionSource, lines: List[str], message_id: str
    ) -> "IngestionResult":
        return cls(success=True, source=source, lines=lines, message_id=message_id)

    @classmethod
    def failed(cls, source: IngestionSource, error: str) -> "IngestionResult":
        return cls(success=False, source=source, error=error)

    @property
    def error_message(self) -> str:
        return f"Error processing file: {self.error}"

    def to_lambda_response(self) -> Any:
        """Mapped lines on success, a 500 response otherwise."""
        if self.success:
            return list(self.lines)
        return {"statusCode": 500, "body": self.error_message}


class IngestResponse(BaseModel):
    """
    Response model for a successful ``POST /ingest``.

    Attributes:
        status: Always "success"
        lines: Mapped lines of each ingested object, in event order
        message_ids: SQS message id of each ingested object, in event order
    """

    status: str = Field(default="success", description="Request status")
    lines: List[List[str]] = Field(default_factory=list)
    message_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[IngestionResult]) -> "IngestResponse":
        return cls(
            lines=[result.lines for result in results],
            message_ids=[result.message_id for result in results],
        )


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
