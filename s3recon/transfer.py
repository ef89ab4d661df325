# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Transfer executor - moves one object's bytes from source to target.

Small objects are buffered so the target can compute an upfront checksum
and sign a fixed-length body (S3-compatible gateways such as Ceph reject
some streamed uploads). Large objects are streamed to bound memory. An
object of unknown size is streamed when the target supports it; otherwise
it is buffered only up to a fixed bound and refused beyond it.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Dict, Mapping

import structlog

from s3recon.config import ReconcileConfig
from s3recon.exceptions import ObjectTooLargeError
from s3recon.storage.base import ObjectContent, PutBody, StorageClient

logger = structlog.get_logger()

# User metadata key carrying the source object's system timestamp
LAST_MODIFIED_METADATA_KEY = "last-modified"

# User metadata key carrying the source ETag on streamed copies, whose own
# ETag is a multipart digest that never equals a single-PUT ETag
SOURCE_ETAG_METADATA_KEY = "source-etag"


class TransferStrategy(str, Enum):
    """How an object's body is handed to the target."""

    BUFFERED = "buffered"
    STREAMED = "streamed"
    BUFFERED_UNSIZED = "buffered_unsized"


@dataclass(frozen=True)
class TransferPolicy:
    """Size limits that choose between buffering and streaming."""

    buffer_threshold_bytes: int
    max_unknown_size_buffer_bytes: int

    @classmethod
    def from_config(cls, config: ReconcileConfig) -> "TransferPolicy":
        return cls(
            buffer_threshold_bytes=config.buffer_threshold_bytes,
            max_unknown_size_buffer_bytes=config.max_unknown_size_buffer_bytes,
        )


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, e.g. 2026-01-02T03:04:05Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


def build_transfer_metadata(
    metadata: Mapping[str, str],
    last_modified: datetime | None,
) -> Dict[str, str]:
    """Source user metadata plus the last-modified marker when known."""
    result = dict(metadata)
    if last_modified is not None:
        result[LAST_MODIFIED_METADATA_KEY] = format_timestamp(last_modified)
    return result


def choose_strategy(
    size: int | None,
    policy: TransferPolicy,
    supports_unsized_streams: bool,
) -> TransferStrategy:
    if size is not None and 0 <= size < policy.buffer_threshold_bytes:
        return TransferStrategy.BUFFERED
    if size is not None and size >= 0:
        return TransferStrategy.STREAMED
    if supports_unsized_streams:
        return TransferStrategy.STREAMED
    return TransferStrategy.BUFFERED_UNSIZED


async def _read_bounded(content: ObjectContent, limit: int, key: str) -> bytes:
    data = bytearray()
    while len(data) <= limit:
        chunk = await content.read(limit + 1 - len(data))
        if not chunk:
            return bytes(data)
        data.extend(chunk)
    raise ObjectTooLargeError(
        "Object of unknown size exceeds the in-memory buffer bound",
        details={"key": key, "limit_bytes": limit},
    )


async def transfer_object(
    source: StorageClient,
    source_bucket: str,
    source_key: str,
    target: StorageClient,
    target_bucket: str,
    target_key: str,
    policy: TransferPolicy,
) -> TransferStrategy:
    """
    Copy one object's bytes, content type and metadata to the target.

    Returns:
        The strategy used for the body

    Raises:
        ObjectTooLargeError: Unknown-size object over the buffer bound
        S3OperationError: If reading or writing fails
    """
    content = await source.get_object(source_bucket, source_key)
    async with content:
        metadata = build_transfer_metadata(content.metadata, content.last_modified)
        metadata.pop(SOURCE_ETAG_METADATA_KEY, None)
        strategy = choose_strategy(content.size, policy, target.supports_unsized_streams)

        body: PutBody
        if strategy is TransferStrategy.BUFFERED:
            body = await content.read()
        elif strategy is TransferStrategy.BUFFERED_UNSIZED:
            logger.warning(
                "buffering_unsized_object",
                key=source_key,
                limit_bytes=policy.max_unknown_size_buffer_bytes,
            )
            body = await _read_bounded(
                content, policy.max_unknown_size_buffer_bytes, source_key
            )
        else:
            logger.info(
                "streaming_object",
                source_bucket=source_bucket,
                key=source_key,
                target_bucket=target_bucket,
                target_key=target_key,
                size=content.size,
            )
            body = content
            if content.etag:
                metadata[SOURCE_ETAG_METADATA_KEY] = content.etag

        await target.put_object(
            target_bucket,
            target_key,
            body,
            content_type=content.content_type,
            metadata=metadata or None,
            content_length=content.size,
        )

    return strategy
