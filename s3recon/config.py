# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation to prevent
accidental modification during a reconciliation run.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List
import re

MIB = 1024 * 1024

# Objects below this size are buffered before upload (checksum-friendly)
DEFAULT_BUFFER_THRESHOLD_BYTES = 100 * MIB

# S3 rejects multipart parts below 5 MiB (except the last one)
MIN_MULTIPART_CHUNK_BYTES = 5 * MIB


class ReconcileMode(str, Enum):
    """Reconciliation operation performed by a run."""

    DELETE = "delete"  # Delete stale objects in the source bucket
    COPY = "copy"  # Copy recent objects to the target bucket
    SYNC_METADATA = "sync_metadata"  # Re-apply source metadata on copied objects


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens, periods
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


@dataclass(frozen=True)
class StorageEndpoint:
    """
    Connection details and folder scope for one side of a reconciliation.

    Credentials left as None fall back to the default botocore chain.
    """

    bucket: str
    folder: str | None = None
    endpoint_url: str | None = None
    region: str = "eu-west-1"
    access_key_id: str | None = None
    secret_access_key: str | None = None

    def __repr__(self) -> str:
        # Never leak the secret key into logs
        return (
            f"StorageEndpoint(bucket={self.bucket!r}, folder={self.folder!r}, "
            f"endpoint_url={self.endpoint_url!r}, region={self.region!r})"
        )


@dataclass(frozen=True)
class ReconcileConfig:
    """
    Immutable configuration for one reconciliation run.

    This configuration is frozen after creation so that the threshold,
    scopes and transfer policy cannot drift while a run is in progress.
    """

    # Required: bucket the objects are listed from
    source: StorageEndpoint

    # Target bucket (required for copy and sync_metadata modes)
    target: StorageEndpoint | None = None

    # Operation performed on selected objects
    mode: ReconcileMode = ReconcileMode.DELETE

    # Age threshold: objects older than this are stale, newer are recent
    threshold_seconds: int = 0

    # Compare ETag and size of existing target objects instead of always skipping
    copy_if_modified: bool = False

    # Log intended actions without performing them
    dry_run: bool = False

    # Objects smaller than this are buffered in memory before upload
    buffer_threshold_bytes: int = DEFAULT_BUFFER_THRESHOLD_BYTES

    # Upper bound for buffering objects whose size is unknown
    max_unknown_size_buffer_bytes: int = DEFAULT_BUFFER_THRESHOLD_BYTES

    # Part size used when streaming large objects
    multipart_chunk_bytes: int = 8 * MIB

    # Batch size for S3 listing
    list_batch_size: int = 1000

    # Maximum concurrent per-object actions within one page
    max_concurrent_ops: int = 1

    # Retry policy for throttled storage calls
    retry_attempts: int = 5
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0

    # Storage call timeouts
    connect_timeout_seconds: float = 60.0
    read_timeout_seconds: float = 6000.0

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.source.bucket):
            errors.append(f"Invalid source bucket name: {self.source.bucket}")

        if self.threshold_seconds < 0:
            errors.append(
                f"threshold_seconds must be >= 0, got {self.threshold_seconds}"
            )

        if self.mode in (ReconcileMode.COPY, ReconcileMode.SYNC_METADATA):
            errors.extend(_validate_target(self.target))

        if self.buffer_threshold_bytes < 0:
            errors.append(
                f"buffer_threshold_bytes must be >= 0, got {self.buffer_threshold_bytes}"
            )

        if self.max_unknown_size_buffer_bytes < 0:
            errors.append(
                "max_unknown_size_buffer_bytes must be >= 0, "
                f"got {self.max_unknown_size_buffer_bytes}"
            )

        if self.multipart_chunk_bytes < MIN_MULTIPART_CHUNK_BYTES:
            errors.append(
                f"multipart_chunk_bytes must be >= {MIN_MULTIPART_CHUNK_BYTES}, "
                f"got {self.multipart_chunk_bytes}"
            )

        if self.list_batch_size < 1 or self.list_batch_size > 1000:
            errors.append(f"list_batch_size must be 1-1000, got {self.list_batch_size}")

        if self.max_concurrent_ops < 1:
            errors.append(f"max_concurrent_ops must be >= 1, got {self.max_concurrent_ops}")

        if self.retry_attempts < 1:
            errors.append(f"retry_attempts must be >= 1, got {self.retry_attempts}")

        if self.retry_base_delay_seconds < 0 or self.retry_max_delay_seconds < 0:
            errors.append("retry delays must be >= 0")

        if self.connect_timeout_seconds <= 0 or self.read_timeout_seconds <= 0:
            errors.append("timeouts must be > 0")

        if errors:
            from s3recon.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def requires_target(self) -> bool:
        return self.mode in (ReconcileMode.COPY, ReconcileMode.SYNC_METADATA)

    def with_updates(self, **kwargs) -> "ReconcileConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new (re-validated) instance.
        """
        return replace(self, **kwargs)


def _validate_target(target: StorageEndpoint | None) -> List[str]:
    if target is None:
        return ["target is required for copy and sync_metadata modes"]

    errors: List[str] = []
    if not _validate_bucket_name(target.bucket):
        errors.append(f"Invalid target bucket name: {target.bucket}")
    if not target.endpoint_url:
        errors.append("target endpoint_url is required")
    if not target.access_key_id or not target.secret_access_key:
        errors.append("target access_key_id and secret_access_key are required")
    return errors
