# =============================================================================
# Patient Mapper - Unit Tests
# =============================================================================
"""
Unit tests for the Patient Mapper service.

Tests cover:
- GIC id to MRN mapping
- Trigger event parsing
- Fetch and publish failure handling
- SQS publishing and queue policy checks
- HTTP and Lambda entry points
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from gic_common.errors import BackendErrorKind
from gic_common.storage import StorageError
from gic_mapper.config import Settings
from gic_mapper.handler import handler
from gic_mapper.main import app
from gic_mapper.models import IngestionSource, MappedBatch, MappingConfig, QueuePolicy
from gic_mapper.services import (
    PatientMapper,
    QueuePublishError,
    SqsPublisher,
    map_record,
)
from gic_mapper.services.transformer import map_lines


BUCKET = "acct-cumulus-gic-connector-dev"
KEY = "06b29e4c-6b9b-4220-bf1e-dc0a7ea6e919/patients.txt"
QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/gic-ProcessingQueue"
DLQ_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/gic-DLQ"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def storage():
    """Storage client returning a small patients file."""
    mock_storage = MagicMock()
    mock_storage.get_object_bytes = AsyncMock(return_value=b"GIC_ID\n1001\n1002\n1003\n")
    return mock_storage


@pytest.fixture
def publisher():
    """Publisher that always succeeds."""
    mock_publisher = MagicMock()
    mock_publisher.publish = AsyncMock(return_value="msg-123")
    return mock_publisher


@pytest.fixture
def mapper(storage, publisher):
    return PatientMapper(storage=storage, publisher=publisher, config=MappingConfig())


def ingest(mapper, bucket=BUCKET, key=KEY):
    return asyncio.run(mapper.ingest(IngestionSource(bucket=bucket, key=key)))


def s3_event(*keys):
    """Helper to create an S3 "object created" notification."""
    return {
        "Records": [
            {
                "eventSource": "aws:s3",
                "eventName": "ObjectCreated:Put",
                "s3": {
                    "bucket": {"name": BUCKET},
                    "object": {"key": key, "size": 42},
                },
            }
            for key in keys
        ]
    }


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "SendMessage")


# =============================================================================
# Health Check Tests
# =============================================================================

class TestHealthCheck:
    """Tests for the health check endpoint."""
    
    def test_health_check_returns_healthy(self, client):
        """Health check should return healthy status."""
        response = client.get("/health")
        
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "patient-mapper"


# =============================================================================
# Mapping Tests
# =============================================================================

class TestMapping:
    """Tests for the id to MRN transform."""
    
    def test_map_record(self):
        """The MRN is the prefix followed by the id."""
        record = map_record("1001")
        
        assert record.output_id == "1001"
        assert record.mapped_id == "mrn-1001"
        assert record.to_row() == "1001,mrn-1001"
    
    def test_order_is_preserved(self):
        """Rows come out in file order with no dedupe."""
        records = map_lines("HEADER\nL3\nL1\nL2\nL1")
        
        assert [r.to_row() for r in records] == [
            "L3,mrn-L3",
            "L1,mrn-L1",
            "L2,mrn-L2",
            "L1,mrn-L1",
        ]
    
    def test_header_only_file_has_no_rows(self):
        """The first line is always dropped."""
        assert map_lines("GIC_ID\n") == []
    
    def test_empty_file_has_no_rows(self):
        """An empty file has no header and no rows."""
        assert map_lines("") == []
    
    def test_header_is_not_inspected(self):
        """Whatever the first line holds, it is discarded."""
        records = map_lines("1000\n1001")
        
        assert [r.output_id for r in records] == ["1001"]
    
    def test_malformed_lines_are_mapped_as_is(self):
        """No shape validation is applied to data lines."""
        records = map_lines("GIC_ID\r\na,b\r\n\r\n")
        
        assert [r.to_row() for r in records] == ["a,b,mrn-a,b", ",mrn-"]


# =============================================================================
# Ingestion Tests
# =============================================================================

class TestIngest:
    """Tests for PatientMapper.ingest."""
    
    def test_success_returns_header_and_rows(self, mapper, storage, publisher):
        """A readable file is mapped and published once."""
        result = ingest(mapper)
        
        assert result.success
        assert result.lines == [
            "GIC_ID,MRN",
            "1001,mrn-1001",
            "1002,mrn-1002",
            "1003,mrn-1003",
        ]
        assert result.message_id == "msg-123"
        storage.get_object_bytes.assert_awaited_once_with(BUCKET, KEY)
        publisher.publish.assert_awaited_once()
        batch = publisher.publish.await_args.args[0]
        assert batch.bucket == BUCKET
        assert batch.key == KEY
        assert batch.rows == ["1001,mrn-1001", "1002,mrn-1002", "1003,mrn-1003"]
    
    def test_header_only_file_publishes_header_only(self, mapper, storage):
        """A file with only a header produces just the output header."""
        storage.get_object_bytes.return_value = b"GIC_ID\n"
        
        result = ingest(mapper)
        
        assert result.success
        assert result.lines == ["GIC_ID,MRN"]
    
    def test_missing_object_is_a_failure(self, mapper, storage, publisher):
        """A missing object fails the invocation without publishing."""
        storage.get_object_bytes.side_effect = StorageError(
            BackendErrorKind.NOT_FOUND, "The specified key does not exist."
        )
        
        result = ingest(mapper)
        
        assert not result.success
        assert result.error == "The specified key does not exist."
        assert result.to_lambda_response() == {
            "statusCode": 500,
            "body": "Error processing file: The specified key does not exist.",
        }
        publisher.publish.assert_not_awaited()
    
    def test_undecodable_object_is_a_failure(self, mapper, storage, publisher):
        """Content that is not UTF-8 fails the invocation."""
        storage.get_object_bytes.return_value = b"GIC_ID\n\xff\xfe\n"
        
        result = ingest(mapper)
        
        assert not result.success
        assert "utf-8" in result.error
        publisher.publish.assert_not_awaited()
    
    def test_publish_failure_is_a_failure(self, mapper, publisher):
        """A failed publish is reported, not retried."""
        publisher.publish.side_effect = QueuePublishError(
            BackendErrorKind.BACKEND, "Failed to publish message: throttled"
        )
        
        result = ingest(mapper)
        
        assert not result.success
        assert result.error == "Failed to publish message: throttled"
        assert result.lines == []
        assert publisher.publish.await_count == 1
    
    def test_unexpected_error_is_a_failure(self, mapper, storage):
        """Unexpected exceptions become a failure result."""
        storage.get_object_bytes.side_effect = RuntimeError("boom")
        
        result = ingest(mapper)
        
        assert not result.success
        assert result.error == "boom"
    
    def test_custom_prefix_and_header(self, storage, publisher):
        """Header and prefix come from the mapping config."""
        config = MappingConfig(output_header="ID,PATIENT", mrn_prefix="p-")
        mapper = PatientMapper(storage=storage, publisher=publisher, config=config)
        
        result = ingest(mapper)
        
        assert result.lines[:2] == ["ID,PATIENT", "1001,p-1001"]


# =============================================================================
# Trigger Event Tests
# =============================================================================

class TestIngestionSource:
    """Tests for trigger event parsing."""
    
    def test_direct_invocation(self):
        """A direct {bucket, key} event yields one source."""
        sources = IngestionSource.from_event({"bucket": BUCKET, "key": KEY})
        
        assert sources == [IngestionSource(bucket=BUCKET, key=KEY)]
    
    def test_s3_event_keys_are_url_decoded(self):
        """S3 URL-encodes keys in notifications."""
        sources = IngestionSource.from_event(s3_event("scope/site+data%2B1.tsv"))
        
        assert sources[0].bucket == BUCKET
        assert sources[0].key == "scope/site data+1.tsv"
    
    def test_s3_event_records_keep_order(self):
        """Each record becomes a source, in record order."""
        sources = IngestionSource.from_event(s3_event("a/patients.txt", "b/patients.txt"))
        
        assert [s.key for s in sources] == ["a/patients.txt", "b/patients.txt"]
    
    @pytest.mark.parametrize(
        "event",
        [
            {"Records": []},
            {"Records": [{"s3": {"bucket": {}}}]},
            {"bucket": BUCKET},
            {"bucket": "", "key": KEY},
            ["not", "an", "object"],
            s3_event(None),
            s3_event(42),
        ],
    )
    def test_invalid_events_raise(self, event):
        """Events of neither shape are rejected."""
        with pytest.raises(ValueError):
            IngestionSource.from_event(event)


# =============================================================================
# SQS Publisher Tests
# =============================================================================

class TestSqsPublisher:
    """Tests for the SQS publisher."""
    
    @pytest.fixture
    def sqs(self):
        mock_sqs = MagicMock()
        mock_sqs.send_message.return_value = {"MessageId": "sqs-msg-1"}
        return mock_sqs
    
    @pytest.fixture
    def sqs_publisher(self, sqs):
        return SqsPublisher(
            queue_url=QUEUE_URL,
            region="us-east-1",
            policy=QueuePolicy(),
            dead_letter_queue_url=DLQ_URL,
            client=sqs,
        )
    
    def test_publish_sends_one_message(self, sqs_publisher, sqs):
        """The whole batch goes out as a single message."""
        batch = MappedBatch(bucket=BUCKET, key=KEY, header="GIC_ID,MRN", rows=["1,mrn-1", "2,mrn-2"])
        
        message_id = asyncio.run(sqs_publisher.publish(batch))
        
        assert message_id == "sqs-msg-1"
        sqs.send_message.assert_called_once()
        kwargs = sqs.send_message.call_args.kwargs
        assert kwargs["QueueUrl"] == QUEUE_URL
        body = json.loads(kwargs["MessageBody"])
        assert body["rows"] == ["1,mrn-1", "2,mrn-2"]
        assert body["header"] == "GIC_ID,MRN"
        assert kwargs["MessageAttributes"]["key"]["StringValue"] == KEY
    
    def test_missing_queue_is_not_found(self, sqs_publisher, sqs):
        """A missing queue is classified as not found."""
        sqs.send_message.side_effect = client_error("AWS.SimpleQueueService.NonExistentQueue")
        batch = MappedBatch(bucket=BUCKET, key=KEY, header="GIC_ID,MRN")
        
        with pytest.raises(QueuePublishError) as excinfo:
            asyncio.run(sqs_publisher.publish(batch))
        
        assert excinfo.value.kind is BackendErrorKind.NOT_FOUND
        assert sqs.send_message.call_count == 1
    
    def test_oversized_message_is_backend_error(self, sqs_publisher, sqs):
        """Other SQS errors are generic backend failures."""
        sqs.send_message.side_effect = client_error("InvalidParameterValue")
        batch = MappedBatch(bucket=BUCKET, key=KEY, header="GIC_ID,MRN")
        
        with pytest.raises(QueuePublishError) as excinfo:
            asyncio.run(sqs_publisher.publish(batch))
        
        assert excinfo.value.kind is BackendErrorKind.BACKEND
    
    def test_expected_queue_attributes(self, sqs_publisher):
        """Visibility 5 minutes, 3 receives, 14 days in the DLQ."""
        expected = sqs_publisher.expected_queue_attributes()
        
        assert expected["queue"] == {"VisibilityTimeout": "300", "maxReceiveCount": "3"}
        assert expected["dead_letter_queue"] == {"MessageRetentionPeriod": "1209600"}
    
    def test_matching_queue_configuration(self, sqs_publisher, sqs):
        """A correctly configured queue reports no mismatches."""
        sqs.get_queue_attributes.side_effect = [
            {
                "Attributes": {
                    "VisibilityTimeout": "300",
                    "RedrivePolicy": json.dumps(
                        {"deadLetterTargetArn": "arn:aws:sqs:us-east-1:123456789012:gic-DLQ", "maxReceiveCount": 3}
                    ),
                }
            },
            {"Attributes": {"MessageRetentionPeriod": "1209600"}},
        ]
        
        assert sqs_publisher.check_queue_configuration() == []
    
    def test_drifted_queue_configuration(self, sqs_publisher, sqs):
        """Drift in any redrive setting is reported."""
        sqs.get_queue_attributes.side_effect = [
            {
                "Attributes": {
                    "VisibilityTimeout": "30",
                    "RedrivePolicy": json.dumps({"maxReceiveCount": "5"}),
                }
            },
            {"Attributes": {"MessageRetentionPeriod": "345600"}},
        ]
        
        mismatches = sqs_publisher.check_queue_configuration()
        
        assert len(mismatches) == 3
        assert any("maxReceiveCount is 5" in m for m in mismatches)
    
    def test_missing_redrive_policy(self, sqs, sqs_publisher):
        """A queue without a redrive policy never dead-letters."""
        sqs_publisher.dead_letter_queue_url = None
        sqs.get_queue_attributes.return_value = {"Attributes": {"VisibilityTimeout": "300"}}
        
        assert sqs_publisher.check_queue_configuration() == ["RedrivePolicy is not set"]


# =============================================================================
# Entry Point Tests
# =============================================================================

class TestIngestEndpoint:
    """Tests for POST /ingest."""
    
    @patch("gic_mapper.api.routes.get_mapper")
    def test_s3_event_returns_200(self, mock_get_mapper, mapper, client):
        """An S3 notification is mapped and queued."""
        mock_get_mapper.return_value = mapper
        
        response = client.post("/ingest", json=s3_event(KEY))
        
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["lines"] == [["GIC_ID,MRN", "1001,mrn-1001", "1002,mrn-1002", "1003,mrn-1003"]]
        assert data["message_ids"] == ["msg-123"]
    
    @patch("gic_mapper.api.routes.get_mapper")
    def test_failure_returns_500(self, mock_get_mapper, mapper, storage, client):
        """A failed ingestion returns 500 so the trigger retries."""
        storage.get_object_bytes.side_effect = StorageError(BackendErrorKind.BACKEND, "Access Denied")
        mock_get_mapper.return_value = mapper
        
        response = client.post("/ingest", json={"bucket": BUCKET, "key": KEY})
        
        assert response.status_code == 500
        assert response.json()["detail"] == "Error processing file: Access Denied"
    
    def test_invalid_event_returns_400(self, client):
        """Events without bucket/key are rejected."""
        response = client.post("/ingest", json={"Records": []})
        
        assert response.status_code == 400
    
    def test_null_object_key_returns_400(self, client):
        """A record with a null object key is rejected before any fetch."""
        response = client.post("/ingest", json=s3_event(None))
        
        assert response.status_code == 400


class TestLambdaHandler:
    """Tests for the Lambda handler."""
    
    @patch("gic_mapper.handler.get_mapper")
    def test_single_record_returns_lines(self, mock_get_mapper, mapper):
        """One record returns the mapped lines directly."""
        mock_get_mapper.return_value = mapper
        
        response = handler(s3_event(KEY), None)
        
        assert response == ["GIC_ID,MRN", "1001,mrn-1001", "1002,mrn-1002", "1003,mrn-1003"]
    
    @patch("gic_mapper.handler.get_mapper")
    def test_failure_returns_500_body(self, mock_get_mapper, mapper, storage):
        """Failures come back as a 500 response."""
        storage.get_object_bytes.side_effect = StorageError(BackendErrorKind.NOT_FOUND, "NoSuchKey")
        mock_get_mapper.return_value = mapper
        
        response = handler({"bucket": BUCKET, "key": KEY}, None)
        
        assert response == {"statusCode": 500, "body": "Error processing file: NoSuchKey"}
    
    @patch("gic_mapper.handler.get_mapper")
    def test_multiple_records_return_list(self, mock_get_mapper, mapper):
        """Several records return one response per record."""
        mock_get_mapper.return_value = mapper
        
        response = handler(s3_event("a/patients.txt", "b/patients.txt"), None)
        
        assert len(response) == 2
        assert response[0][0] == "GIC_ID,MRN"
    
    def test_unparseable_event_returns_500(self):
        """An event without records or bucket/key is a processing failure."""
        response = handler({"Event": "s3:TestEvent"}, None)
        
        assert response["statusCode"] == 500
        assert response["body"].startswith("Error processing file:")
    
    def test_null_object_key_returns_500_body(self):
        """A record whose object key is null is a processing failure."""
        response = handler(s3_event(None), None)
        
        assert response["statusCode"] == 500
        assert response["body"].startswith("Error processing file:")
    
    @patch("gic_mapper.handler.get_mapper")
    def test_unexpected_failure_returns_500_body(self, mock_get_mapper):
        """Failures outside ingest still come back as a 500 response."""
        mock_get_mapper.side_effect = RuntimeError("queue_url is not configured")
        
        response = handler(s3_event(KEY), None)
        
        assert response == {
            "statusCode": 500,
            "body": "Error processing file: queue_url is not configured",
        }


class TestStartup:
    """Tests for the startup queue configuration check."""
    
    @patch("gic_mapper.main.get_publisher")
    def test_startup_checks_queue_configuration(self, mock_get_publisher):
        """Startup reads the queue attributes once and tolerates drift."""
        mock_get_publisher.return_value.check_queue_configuration.return_value = [
            "VisibilityTimeout is 30, expected 300"
        ]
        
        with TestClient(app) as client:
            response = client.get("/health")
        
        assert response.status_code == 200
        mock_get_publisher.return_value.check_queue_configuration.assert_called_once_with()
    
    @patch("gic_mapper.main.get_publisher")
    def test_unreadable_queue_does_not_block_startup(self, mock_get_publisher):
        mock_get_publisher.return_value.check_queue_configuration.side_effect = QueuePublishError(
            BackendErrorKind.NOT_FOUND, "Queue not found"
        )
        
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200


# =============================================================================
# Configuration Tests
# =============================================================================

class TestSettings:
    """Tests for the mapper settings."""
    
    def test_queue_policy_defaults(self):
        """Defaults match the processing queue and DLQ setup."""
        policy = Settings().queue_policy()
        
        assert policy.visibility_timeout_seconds == 300
        assert policy.max_receive_count == 3
        assert policy.dead_letter_retention_seconds == 1_209_600
    
    def test_mapping_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("MRN_PREFIX", "x-")
        
        config = Settings().mapping_config()
        
        assert config.mrn_prefix == "x-"
        assert config.output_header == "GIC_ID,MRN"
