# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 storage backend - aiobotocore implementation of StorageClient.

Large or unsized bodies are streamed through a multipart upload so memory
is bounded by one part, whatever the object size.
"""

import math
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List

import structlog
from aiobotocore.config import AioConfig
from botocore.exceptions import BotoCoreError, ClientError

from s3recon.config import ReconcileConfig, StorageEndpoint
from s3recon.exceptions import (
    BucketNotFoundError,
    ObjectNotFoundError,
    ObjectTooLargeError,
    S3OperationError,
    ThrottledError,
)
from s3recon.storage.base import (
    ListPage,
    ObjectContent,
    ObjectMetadata,
    ObjectSummary,
    PutBody,
)

logger = structlog.get_logger()

# S3 rejects part numbers above this
MAX_MULTIPART_PARTS = 10_000

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
NO_BUCKET_CODES = frozenset({"NoSuchBucket"})
THROTTLING_CODES = frozenset(
    {
        "503",
        "SlowDown",
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestLimitExceeded",
        "TooManyRequests",
        "TooManyRequestsException",
        "ServiceUnavailable",
    }
)


def translate_client_error(exc: ClientError, bucket: str, key: str) -> S3OperationError:
    """Map a botocore ClientError onto the s3recon exception hierarchy."""
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    details = {"bucket": bucket, "key": key, "code": code, "status": status}
    message = error.get("Message") or str(exc)

    if code in NO_BUCKET_CODES:
        return BucketNotFoundError(f"Bucket not found: {message}", details=details)
    if code in NOT_FOUND_CODES:
        return ObjectNotFoundError(f"Object not found: {message}", details=details)
    if code in THROTTLING_CODES or status in (429, 503):
        return ThrottledError(f"Request throttled: {message}", details=details)
    return S3OperationError(f"S3 request failed: {message}", details=details)


@contextmanager
def _s3_errors(bucket: str, key: str) -> Iterator[None]:
    try:
        yield
    except ClientError as exc:
        raise translate_client_error(exc, bucket, key) from exc
    except BotoCoreError as exc:
        raise S3OperationError(
            f"S3 transport failed: {exc}",
            details={"bucket": bucket, "key": key},
        ) from exc


async def _read_chunk(body: ObjectContent, size: int) -> bytes:
    """Read up to size bytes; shorter only at end of stream."""
    parts: List[bytes] = []
    remaining = size
    while remaining > 0:
        data = await body.read(remaining)
        if not data:
            break
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


class S3Storage:
    """StorageClient backed by one aiobotocore S3 client."""

    supports_unsized_streams = True

    def __init__(self, client: Any, multipart_chunk_bytes: int = 8 * 1024 * 1024):
        self._client = client
        self._chunk_bytes = multipart_chunk_bytes

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = 1000,
    ) -> ListPage:
        params: Dict[str, Any] = {"Bucket": bucket, "MaxKeys": max_keys}
        if prefix:
            params["Prefix"] = prefix
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        with _s3_errors(bucket, prefix):
            response = await self._client.list_objects_v2(**params)

        entries = [
            ObjectSummary(
                key=obj["Key"],
                last_modified=obj["LastModified"],
                size=obj.get("Size"),
                etag=obj.get("ETag"),
            )
            for obj in response.get("Contents", [])
        ]
        next_token = response.get("NextContinuationToken")
        return ListPage(
            entries=entries,
            next_token=next_token,
            has_more=bool(response.get("IsTruncated")) and bool(next_token),
        )

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        with _s3_errors(bucket, key):
            response = await self._client.head_object(Bucket=bucket, Key=key)

        return ObjectMetadata(
            key=key,
            size=response.get("ContentLength"),
            etag=response.get("ETag"),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            metadata=dict(response.get("Metadata") or {}),
        )

    async def get_object(self, bucket: str, key: str) -> ObjectContent:
        with _s3_errors(bucket, key):
            response = await self._client.get_object(Bucket=bucket, Key=key)

        body = response["Body"]
        return ObjectContent(
            stream=body,
            size=response.get("ContentLength"),
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
            metadata=dict(response.get("Metadata") or {}),
            closer=body.close,
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: PutBody,
        *,
        content_type: str | None = None,
        metadata: Dict[str, str] | None = None,
        content_length: int | None = None,
    ) -> None:
        extra: Dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        if metadata:
            extra["Metadata"] = metadata

        if isinstance(body, (bytes, bytearray)):
            with _s3_errors(bucket, key):
                await self._client.put_object(
                    Bucket=bucket, Key=key, Body=bytes(body), **extra
                )
            return

        await self._multipart_upload(bucket, key, body, extra, content_length)

    async def _multipart_upload(
        self,
        bucket: str,
        key: str,
        body: ObjectContent,
        extra: Dict[str, Any],
        content_length: int | None = None,
    ) -> None:
        part_bytes = self._part_size(content_length)
        with _s3_errors(bucket, key):
            created = await self._client.create_multipart_upload(
                Bucket=bucket, Key=key, **extra
            )
        upload_id = created["UploadId"]

        parts: List[Dict[str, Any]] = []
        try:
            part_number = 1
            while True:
                chunk = await _read_chunk(body, part_bytes)
                if not chunk and part_number > 1:
                    break
                if part_number > MAX_MULTIPART_PARTS:
                    raise ObjectTooLargeError(
                        "Stream exceeds the multipart part limit",
                        details={
                            "key": key,
                            "max_parts": MAX_MULTIPART_PARTS,
                            "part_bytes": part_bytes,
                        },
                    )
                with _s3_errors(bucket, key):
                    part = await self._client.upload_part(
                        Bucket=bucket,
                        Key=key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=chunk,
                    )
                parts.append({"ETag": part["ETag"], "PartNumber": part_number})
                if len(chunk) < part_bytes:
                    break
                part_number += 1

            with _s3_errors(bucket, key):
                await self._client.complete_multipart_upload(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts},
                )
        except Exception:
            await self._abort_multipart_upload(bucket, key, upload_id)
            raise

        logger.debug(
            "multipart_upload_completed",
            bucket=bucket,
            key=key,
            parts=len(parts),
        )

    def _part_size(self, content_length: int | None) -> int:
        """Grow parts for known sizes so the upload fits in MAX_MULTIPART_PARTS."""
        if content_length is None:
            return self._chunk_bytes
        return max(self._chunk_bytes, math.ceil(content_length / MAX_MULTIPART_PARTS))

    async def _abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        try:
            await self._client.abort_multipart_upload(
                Bucket=bucket, Key=key, UploadId=upload_id
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "multipart_abort_failed",
                bucket=bucket,
                key=key,
                upload_id=upload_id,
                error=str(e),
            )

    async def delete_object(self, bucket: str, key: str) -> None:
        with _s3_errors(bucket, key):
            await self._client.delete_object(Bucket=bucket, Key=key)

    async def copy_in_place(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, str],
        *,
        content_type: str | None = None,
    ) -> None:
        extra: Dict[str, Any] = {}
        # REPLACE resets every header, so the content type is re-sent explicitly
        if content_type:
            extra["ContentType"] = content_type

        with _s3_errors(bucket, key):
            await self._client.copy_object(
                Bucket=bucket,
                Key=key,
                CopySource={"Bucket": bucket, "Key": key},
                Metadata=metadata,
                MetadataDirective="REPLACE",
                **extra,
            )


def build_client_config(config: ReconcileConfig) -> AioConfig:
    """
    Client settings shared by the source and target clients.

    Path-style addressing and "when_required" checksums keep Ceph and other
    S3-compatible gateways working; retries are owned by RetryingStorage.
    """
    return AioConfig(
        connect_timeout=config.connect_timeout_seconds,
        read_timeout=config.read_timeout_seconds,
        s3={"addressing_style": "path"},
        retries={"max_attempts": 1, "mode": "standard"},
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )


@asynccontextmanager
async def open_s3_storage(
    session: Any,
    endpoint: StorageEndpoint,
    config: ReconcileConfig,
) -> AsyncIterator[S3Storage]:
    """
    Open an aiobotocore client for one endpoint and wrap it as S3Storage.

    Args:
        session: aiobotocore session
        endpoint: Bucket connection details
        config: Reconcile configuration (timeouts, part size)
    """
    async with session.create_client(
        "s3",
        region_name=endpoint.region,
        endpoint_url=endpoint.endpoint_url,
        aws_access_key_id=endpoint.access_key_id,
        aws_secret_access_key=endpoint.secret_access_key,
        config=build_client_config(config),
    ) as client:
        yield S3Storage(client, multipart_chunk_bytes=config.multipart_chunk_bytes)
