# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Skip heuristic - decides whether a recent source object must be copied.

Rules, in order:
1. Target missing -> COPY.
2. Target present, copy_if_modified off -> SKIP (never overwrite).
3. Target present, copy_if_modified on -> SKIP only when ETag AND size match.
   A streamed copy is matched on the source ETag it recorded in metadata.
4. Any probe failure other than "not found" -> COPY (fail open), except a
   missing target bucket, which yields ERROR since no copy can succeed.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from s3recon.exceptions import BucketNotFoundError, ObjectNotFoundError
from s3recon.storage.base import ObjectMetadata, StorageClient
from s3recon.transfer import SOURCE_ETAG_METADATA_KEY

logger = structlog.get_logger()


class TransferDecision(str, Enum):
    """Outcome of the skip heuristic for one object."""

    COPY = "copy"
    SKIP = "skip"
    ERROR = "error"


@dataclass(frozen=True)
class DecisionResult:
    """A decision plus the reason that is logged with it."""

    decision: TransferDecision
    reason: str


def is_unchanged(source: ObjectMetadata, target: ObjectMetadata) -> bool:
    """Size and ETag (or the recorded source ETag) must match; a missing ETag never matches."""
    recorded = target.metadata.get(SOURCE_ETAG_METADATA_KEY)
    same_etag = source.etag is not None and source.etag in (target.etag, recorded)
    same_size = source.size == target.size
    return same_etag and same_size


async def decide_transfer(
    source: StorageClient,
    source_bucket: str,
    source_key: str,
    target: StorageClient,
    target_bucket: str,
    target_key: str,
    *,
    copy_if_modified: bool,
) -> DecisionResult:
    """
    Probe the target (and, when needed, the source) and pick an action.

    Args:
        source: Storage holding the source object
        source_bucket: Source bucket
        source_key: Source key
        target: Storage holding the target object
        target_bucket: Target bucket
        target_key: Key the object maps to in the target scope
        copy_if_modified: Compare metadata instead of always skipping

    Returns:
        DecisionResult with the chosen TransferDecision and its reason
    """
    try:
        target_head = await target.head_object(target_bucket, target_key)
    except ObjectNotFoundError:
        return DecisionResult(TransferDecision.COPY, "target_missing")
    except BucketNotFoundError as e:
        logger.error(
            "target_bucket_missing",
            bucket=target_bucket,
            key=target_key,
            error=str(e),
        )
        return DecisionResult(TransferDecision.ERROR, "target_bucket_missing")
    except Exception as e:
        logger.warning(
            "existence_check_failed",
            bucket=target_bucket,
            key=target_key,
            error=str(e),
        )
        return DecisionResult(TransferDecision.COPY, "existence_check_failed")

    if not copy_if_modified:
        return DecisionResult(TransferDecision.SKIP, "target_exists")

    try:
        source_head = await source.head_object(source_bucket, source_key)
    except Exception as e:
        logger.warning(
            "source_metadata_check_failed",
            bucket=source_bucket,
            key=source_key,
            error=str(e),
        )
        return DecisionResult(TransferDecision.COPY, "source_metadata_check_failed")

    if is_unchanged(source_head, target_head):
        return DecisionResult(TransferDecision.SKIP, "target_unchanged")
    return DecisionResult(TransferDecision.COPY, "target_modified")
