# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Storage capability - the object-store operations the reconciler relies on.

The reconciler never talks to a concrete SDK. It drives any object that
implements StorageClient over a bucket + key + prefix address space.
"""

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Protocol


@dataclass(frozen=True)
class ObjectSummary:
    """One listing entry."""

    key: str
    last_modified: datetime
    size: int | None = None
    etag: str | None = None


@dataclass(frozen=True)
class ListPage:
    """One page of a paginated listing."""

    entries: List[ObjectSummary] = field(default_factory=list)
    next_token: str | None = None
    has_more: bool = False


@dataclass(frozen=True)
class ObjectMetadata:
    """Result of a lightweight metadata probe."""

    key: str
    size: int | None = None
    etag: str | None = None
    last_modified: datetime | None = None
    content_type: str | None = None
    metadata: Dict[str, str] = field(default_factory=dict)


class AsyncReadable(Protocol):
    """Byte stream with an awaitable read (aiobotocore StreamingBody shape)."""

    async def read(self, amt: int | None = None) -> bytes:
        ...


@dataclass
class ObjectContent:
    """
    An opened object: its headers plus an unread body stream.

    Use as an async context manager so the underlying connection is always
    released, whether or not the body was consumed.
    """

    stream: AsyncReadable
    size: int | None = None
    content_type: str | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    metadata: Dict[str, str] = field(default_factory=dict)
    closer: Callable[[], Any] | None = None

    async def read(self, amt: int | None = None) -> bytes:
        """Read amt bytes, or everything that is left when amt is None."""
        if amt is None:
            return await self.stream.read()
        return await self.stream.read(amt)

    async def aclose(self) -> None:
        if self.closer is None:
            return
        result = self.closer()
        if inspect.isawaitable(result):
            await result

    async def __aenter__(self) -> "ObjectContent":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


# A put body is either fully buffered bytes or an open source object
PutBody = bytes | ObjectContent


class StorageClient(Protocol):
    """
    Object-storage capability consumed by the reconciler.

    Implementations raise ObjectNotFoundError for a clean "no such key"
    and other S3OperationError subclasses for everything else.
    """

    # True when put_object can stream a body whose length is unknown
    supports_unsized_streams: bool

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = 1000,
    ) -> ListPage:
        ...

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        ...

    async def get_object(self, bucket: str, key: str) -> ObjectContent:
        ...

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
        ...

    async def delete_object(self, bucket: str, key: str) -> None:
        ...

    async def copy_in_place(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, str],
        *,
        content_type: str | None = None,
    ) -> None:
        ...
