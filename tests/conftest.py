# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for S3Recon tests.

Provides an in-memory StorageClient with failure injection, a fixed clock
and configuration helpers.
"""

import asyncio
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from typing import Dict, List, Set, Tuple

import pytest

from s3recon.config import ReconcileConfig, ReconcileMode, StorageEndpoint
from s3recon.exceptions import (
    BucketNotFoundError,
    ObjectNotFoundError,
    S3OperationError,
)
from s3recon.storage.base import (
    ListPage,
    ObjectContent,
    ObjectMetadata,
    ObjectSummary,
    PutBody,
)

# Fixed "now" used by every reconciler in the tests
NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)

SOURCE_BUCKET = "source-bucket"
TARGET_BUCKET = "target-bucket"


@dataclass
class StoredObject:
    data: bytes
    last_modified: datetime
    content_type: str | None = None
    metadata: Dict[str, str] = field(default_factory=dict)
    multipart: bool = False

    @property
    def etag(self) -> str:
        digest = hashlib.md5(self.data).hexdigest()
        # S3 marks multipart ETags with a part-count suffix
        return f"\"{digest}-1\"" if self.multipart else f"\"{digest}\""


class BytesStream:
    """Async byte stream over an in-memory buffer."""

    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0
        self.closed = False

    async def read(self, amt: int | None = None) -> bytes:
        if amt is None:
            chunk = self._data[self._offset:]
        else:
            chunk = self._data[self._offset:self._offset + amt]
        self._offset += len(chunk)
        return chunk

    def close(self) -> None:
        self.closed = True


class InMemoryStorage:
    """
    StorageClient over a dict of (bucket, key) -> StoredObject.

    Failure injection:
        list_failures: listing call number (1-based) -> exception
        failures: (operation, key) -> exception
        unsized_keys: keys whose get_object reports no size

    Streamed puts are stored as multipart objects, as S3Storage writes them.
    """

    def __init__(self, *buckets: str, supports_unsized_streams: bool = True):
        self.buckets: Set[str] = set(buckets)
        self.objects: Dict[Tuple[str, str], StoredObject] = {}
        self.supports_unsized_streams = supports_unsized_streams
        self.list_failures: Dict[int, Exception] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.unsized_keys: Set[str] = set()
        self.calls: List[Tuple[str, str, str]] = []
        self.put_bodies: Dict[str, str] = {}
        self.clock = NOW
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._list_calls = 0

    # -- helpers -----------------------------------------------------------

    def add(
        self,
        bucket: str,
        key: str,
        data: bytes = b"payload",
        *,
        age: timedelta = timedelta(0),
        content_type: str | None = "application/octet-stream",
        metadata: Dict[str, str] | None = None,
    ) -> StoredObject:
        self.buckets.add(bucket)
        obj = StoredObject(
            data=data,
            last_modified=NOW - age,
            content_type=content_type,
            metadata=dict(metadata or {}),
        )
        self.objects[(bucket, key)] = obj
        return obj

    def get(self, bucket: str, key: str) -> StoredObject | None:
        return self.objects.get((bucket, key))

    def keys(self, bucket: str) -> List[str]:
        return sorted(key for (b, key) in self.objects if b == bucket)

    def calls_for(self, operation: str) -> List[Tuple[str, str, str]]:
        return [call for call in self.calls if call[0] == operation]

    def _check(self, operation: str, bucket: str, key: str) -> None:
        self.calls.append((operation, bucket, key))
        failure = self.failures.get((operation, key))
        if failure is not None:
            raise failure
        if bucket not in self.buckets:
            raise BucketNotFoundError(
                "Bucket not found", details={"bucket": bucket, "key": key}
            )

    def _require(self, bucket: str, key: str) -> StoredObject:
        obj = self.objects.get((bucket, key))
        if obj is None:
            raise ObjectNotFoundError(
                "Object not found", details={"bucket": bucket, "key": key}
            )
        return obj

    async def _pause(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    # -- StorageClient -----------------------------------------------------

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = 1000,
    ) -> ListPage:
        self._list_calls += 1
        self.calls.append(("list_objects", bucket, prefix))
        failure = self.list_failures.get(self._list_calls)
        if failure is not None:
            raise failure
        if bucket not in self.buckets:
            raise BucketNotFoundError("Bucket not found", details={"bucket": bucket})

        # Tokens are the last key returned, so deletes between pages skip nothing
        keys = [
            key
            for key in self.keys(bucket)
            if key.startswith(prefix) and (continuation_token is None or key > continuation_token)
        ]
        chunk = keys[:max_keys]
        has_more = len(keys) > len(chunk)
        return ListPage(
            entries=[
                ObjectSummary(
                    key=key,
                    last_modified=self.objects[(bucket, key)].last_modified,
                    size=len(self.objects[(bucket, key)].data),
                    etag=self.objects[(bucket, key)].etag,
                )
                for key in chunk
            ],
            next_token=chunk[-1] if has_more else None,
            has_more=has_more,
        )

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        self._check("head_object", bucket, key)
        obj = self._require(bucket, key)
        return ObjectMetadata(
            key=key,
            size=len(obj.data),
            etag=obj.etag,
            last_modified=obj.last_modified,
            content_type=obj.content_type,
            metadata=dict(obj.metadata),
        )

    async def get_object(self, bucket: str, key: str) -> ObjectContent:
        self._check("get_object", bucket, key)
        obj = self._require(bucket, key)
        stream = BytesStream(obj.data)
        return ObjectContent(
            stream=stream,
            size=None if key in self.unsized_keys else len(obj.data),
            content_type=obj.content_type,
            last_modified=obj.last_modified,
            etag=obj.etag,
            metadata=dict(obj.metadata),
            closer=stream.close,
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
        self._check("put_object", bucket, key)
        await self._pause()
        if isinstance(body, (bytes, bytearray)):
            data = bytes(body)
            self.put_bodies[key] = "bytes"
        else:
            data = await body.read()
            self.put_bodies[key] = "stream"
        self.objects[(bucket, key)] = StoredObject(
            data=data,
            last_modified=self.clock,
            content_type=content_type,
            metadata=dict(metadata or {}),
            multipart=self.put_bodies[key] == "stream",
        )

    async def delete_object(self, bucket: str, key: str) -> None:
        self._check("delete_object", bucket, key)
        await self._pause()
        self.objects.pop((bucket, key), None)

    async def copy_in_place(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, str],
        *,
        content_type: str | None = None,
    ) -> None:
        self._check("copy_in_place", bucket, key)
        obj = self._require(bucket, key)
        self.objects[(bucket, key)] = StoredObject(
            data=obj.data,
            last_modified=self.clock,
            content_type=content_type,
            metadata=dict(metadata),
            multipart=obj.multipart,
        )


def make_config(
    mode: ReconcileMode = ReconcileMode.DELETE,
    *,
    threshold_seconds: int = 10 * 3600,
    source_folder: str | None = None,
    target_folder: str | None = None,
    **kwargs,
) -> ReconcileConfig:
    """Build a valid ReconcileConfig for the in-memory buckets."""
    target = None
    if mode in (ReconcileMode.COPY, ReconcileMode.SYNC_METADATA):
        target = StorageEndpoint(
            bucket=TARGET_BUCKET,
            folder=target_folder,
            endpoint_url="http://localhost:9000",
            access_key_id="target-key",
            secret_access_key="target-secret",
        )
    return ReconcileConfig(
        source=StorageEndpoint(bucket=SOURCE_BUCKET, folder=source_folder),
        target=target,
        mode=mode,
        threshold_seconds=threshold_seconds,
        **kwargs,
    )


def transient_error(key: str = "") -> S3OperationError:
    return S3OperationError("Internal error", details={"key": key})


@pytest.fixture
def source() -> InMemoryStorage:
    return InMemoryStorage(SOURCE_BUCKET)


@pytest.fixture
def target() -> InMemoryStorage:
    return InMemoryStorage(TARGET_BUCKET)
