# =============================================================================
# GIC Common - Backend Errors
# =============================================================================
"""
Failure kinds for calls into AWS.

Both the S3 and SQS wrappers classify botocore exceptions into the same
closed set so the gateway and the mapper can branch on kind.
"""

from enum import Enum

from botocore.exceptions import (
    ClientError,
    CredentialRetrievalError,
    NoCredentialsError,
    PartialCredentialsError,
)


_CREDENTIAL_ERRORS = (NoCredentialsError, PartialCredentialsError, CredentialRetrievalError)

_NOT_FOUND_CODES = {
    "NoSuchKey",
    "NoSuchBucket",
    "404",
    "NotFound",
    "AWS.SimpleQueueService.NonExistentQueue",
    "QueueDoesNotExist",
}


class BackendErrorKind(str, Enum):
    """Why a backend call failed."""
    CREDENTIALS_UNAVAILABLE = "credentials_unavailable"
    NOT_FOUND = "not_found"
    BACKEND = "backend"


def classify_error(error: Exception) -> BackendErrorKind:
    """Map a boto3/botocore exception onto a ``BackendErrorKind``."""
    if isinstance(error, _CREDENTIAL_ERRORS):
        return BackendErrorKind.CREDENTIALS_UNAVAILABLE
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in _NOT_FOUND_CODES:
            return BackendErrorKind.NOT_FOUND
    return BackendErrorKind.BACKEND
