# =============================================================================
# GIC Common - Object Key Validation
# =============================================================================
"""
Object key naming scheme for patient uploads.

Every upload lands at ``<scope uuid>/<file name>``. The scope is a canonical
UUID chosen by the client, and the file name must come from a short
allow-list tied to the site that runs the connector.
"""

import uuid
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


PATIENTS_FILE_NAME = "patients.txt"
GENOTYPIC_FILE_SUFFIX = "_genotypic_data.tsv"


class InvalidObjectKeyError(ValueError):
    """Raised when a raw key does not follow the ``<uuid>/<file>`` scheme."""
    pass


class UploadPolicy(BaseModel):
    """
    Immutable upload rules handed to the gateway at construction.

    Attributes:
        permitted_bucket: The only bucket uploads may target
        allowed_file_names: File names accepted as the second key segment
        grant_expiry_seconds: Lifetime of an issued presigned URL
    """

    model_config = ConfigDict(frozen=True)

    permitted_bucket: str = Field(..., min_length=1)
    allowed_file_names: Tuple[str, ...] = Field(..., min_length=1)
    grant_expiry_seconds: int = Field(default=3600, gt=0)

    def describe_allowed_files(self) -> str:
        return ", ".join(self.allowed_file_names)


class ObjectKey(BaseModel):
    """A validated ``<scope_id>/<file_name>`` object key."""

    model_config = ConfigDict(frozen=True)

    scope_id: str
    file_name: str

    @classmethod
    def parse(cls, raw: str, allowed_file_names: Tuple[str, ...]) -> "ObjectKey":
        """
        Parse and validate a raw object key.

        The scope segment must round-trip through ``uuid.UUID`` unchanged,
        which rejects upper-case, braced, URN and dash-less spellings.

        Args:
            raw: Key as received from the client
            allowed_file_names: Accepted file names for the second segment

        Returns:
            ObjectKey: The parsed key

        Raises:
            InvalidObjectKeyError: If any rule is violated
        """
        segments = raw.split("/")
        if len(segments) != 2:
            raise InvalidObjectKeyError(
                f"expected 2 path segments, got {len(segments)}"
            )

        scope_id, file_name = segments
        try:
            canonical = str(uuid.UUID(scope_id))
        except ValueError as e:
            raise InvalidObjectKeyError(f"{scope_id!r} is not a UUID") from e
        if canonical != scope_id:
            raise InvalidObjectKeyError(
                f"{scope_id!r} is not in canonical form ({canonical})"
            )

        if file_name not in allowed_file_names:
            raise InvalidObjectKeyError(f"{file_name!r} is not an allowed file name")

        return cls(scope_id=scope_id, file_name=file_name)

    def __str__(self) -> str:
        return f"{self.scope_id}/{self.file_name}"
