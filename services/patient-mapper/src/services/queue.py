# =============================================================================
# Patient Mapper - SQS Publisher Service
# =============================================================================
"""
Amazon SQS publisher service.

Publishes mapped batches to the processing queue. Delivery guarantees come
from the queue itself: at-least-once delivery, a 5 minute visibility
timeout and a redrive policy that moves a message to the dead-letter queue
after its third receive. This module only checks that the live queue
carries those settings; it never changes them.
"""

import asyncio
import json
from functools import lru_cache
from typing import Dict, List, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gic_common.errors import BackendErrorKind, classify_error

from ..config import get_settings
from ..models import MappedBatch, QueuePolicy


# Configure structured logger
logger = structlog.get_logger(__name__)


class QueuePublishError(Exception):
    """SQS failure tagged with a ``BackendErrorKind``."""

    def __init__(self, kind: BackendErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class SqsPublisher:
    """
    Async-compatible SQS publisher.

    Wraps the synchronous boto3 SQS client in an async-friendly interface.
    botocore retries are disabled so every publish is a single attempt.

    Attributes:
        queue_url: Processing queue URL
        dead_letter_queue_url: Dead-letter queue URL, if known
        policy: Redrive settings the queues are expected to carry
        _client: Underlying boto3 SQS client, created on first use
    """

    def __init__(
        self,
        queue_url: str,
        region: str,
        policy: QueuePolicy,
        dead_letter_queue_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ) -> None:
        self.queue_url = queue_url
        self.region = region
        self.policy = policy
        self.dead_letter_queue_url = dead_letter_queue_url
        self.endpoint_url = endpoint_url
        self._client = client

        logger.info(
            "sqs_publisher_initialized",
            queue_url=queue_url,
            dead_letter_queue_url=dead_letter_queue_url,
        )

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "sqs",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(retries={"total_max_attempts": 1, "mode": "standard"}),
            )
        return self._client

    async def publish(self, batch: MappedBatch) -> str:
        """
        Publish a mapped batch as a single SQS message.

        Args:
            batch: The mapped rows of one uploaded file

        Returns:
            str: The message ID assigned by SQS

        Raises:
            QueuePublishError: If the send fails
        """
        body = batch.to_sqs_body()

        # Message attributes for filtering/routing
        attributes = {
            "bucket": {"DataType": "String", "StringValue": batch.bucket},
            "key": {"DataType": "String", "StringValue": batch.key},
        }

        try:
            client = self._get_client()
            loop = asyncio.get_event_loop()
            response = await loop.run_in_executor(
                None,
                lambda: client.send_message(
                    QueueUrl=self.queue_url,
                    MessageBody=body,
                    MessageAttributes=attributes,
                ),
            )
        except (BotoCoreError, ClientError) as e:
            kind = classify_error(e)
            logger.error(
                "sqs_publish_failed",
                queue_url=self.queue_url,
                kind=kind.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            if kind is BackendErrorKind.NOT_FOUND:
                raise QueuePublishError(kind, f"Queue not found: {self.queue_url}") from e
            raise QueuePublishError(kind, f"Failed to publish message: {e}") from e

        message_id = response["MessageId"]
        logger.info(
            "message_published",
            message_id=message_id,
            bucket=batch.bucket,
            key=batch.key,
            row_count=len(batch.rows),
            body_bytes=len(body.encode("utf-8")),
        )
        return message_id

    def expected_queue_attributes(self) -> Dict[str, Dict[str, str]]:
        """
        Queue attributes the processing queue and its DLQ should carry.

        Returns:
            Dict: ``{"queue": {...}, "dead_letter_queue": {...}}`` in the
            string-valued form SQS reports them
        """
        return {
            "queue": {
                "VisibilityTimeout": str(self.policy.visibility_timeout_seconds),
                "maxReceiveCount": str(self.policy.max_receive_count),
            },
            "dead_letter_queue": {
                "MessageRetentionPeriod": str(self.policy.dead_letter_retention_seconds),
            },
        }

    def check_queue_configuration(self) -> List[str]:
        """
        Compare the live queue attributes against the expected policy.

        Returns:
            List[str]: Human-readable mismatches, empty when in line

        Raises:
            QueuePublishError: If the attributes cannot be read
        """
        expected = self.expected_queue_attributes()
        mismatches = []

        try:
            client = self._get_client()
            attributes = client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=["VisibilityTimeout", "RedrivePolicy"],
            )["Attributes"]
            dlq_attributes = None
            if self.dead_letter_queue_url:
                dlq_attributes = client.get_queue_attributes(
                    QueueUrl=self.dead_letter_queue_url,
                    AttributeNames=["MessageRetentionPeriod"],
                )["Attributes"]
        except (BotoCoreError, ClientError) as e:
            raise QueuePublishError(classify_error(e), f"Failed to read queue attributes: {e}") from e

        visibility = attributes.get("VisibilityTimeout")
        if visibility != expected["queue"]["VisibilityTimeout"]:
            mismatches.append(
                f"VisibilityTimeout is {visibility}, expected {expected['queue']['VisibilityTimeout']}"
            )

        redrive = json.loads(attributes.get("RedrivePolicy") or "{}")
        max_receive = redrive.get("maxReceiveCount")
        if max_receive is None:
            mismatches.append("RedrivePolicy is not set")
        elif str(max_receive) != expected["queue"]["maxReceiveCount"]:
            mismatches.append(
                f"maxReceiveCount is {max_receive}, expected {expected['queue']['maxReceiveCount']}"
            )

        if dlq_attributes is not None:
            retention = dlq_attributes.get("MessageRetentionPeriod")
            wanted = expected["dead_letter_queue"]["MessageRetentionPeriod"]
            if retention != wanted:
                mismatches.append(f"MessageRetentionPeriod is {retention}, expected {wanted}")

        return mismatches


@lru_cache
def get_publisher() -> SqsPublisher:
    """
    Get cached SQS publisher instance.

    Uses LRU cache to maintain a single publisher instance
    across all invocations.

    Returns:
        SqsPublisher: Configured publisher instance
    """
    settings = get_settings()
    return SqsPublisher(
        queue_url=settings.queue_url,
        region=settings.aws_region,
        policy=settings.queue_policy(),
        dead_letter_queue_url=settings.dead_letter_queue_url,
        endpoint_url=settings.aws_endpoint_url,
    )
