# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Retry decorator for storage clients.

Throttling is a transport concern, so it is handled here by wrapping the
storage capability rather than inside the reconciliation logic. Only
ThrottledError is retried; every other failure surfaces immediately.
"""

from typing import Any, Awaitable, Callable, Dict, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from s3recon.exceptions import ThrottledError
from s3recon.storage.base import (
    ListPage,
    ObjectContent,
    ObjectMetadata,
    PutBody,
    StorageClient,
)

logger = structlog.get_logger()

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "storage_call_throttled",
        operation=getattr(retry_state.fn, "__name__", "storage_call"),
        attempt=retry_state.attempt_number,
        sleep_seconds=round(retry_state.next_action.sleep, 3) if retry_state.next_action else 0,
        error=str(exc),
    )


class RetryingStorage:
    """
    StorageClient that retries throttled calls on an inner client.

    Streaming puts are passed through once: their source stream is consumed
    by the first attempt and cannot be replayed.
    """

    def __init__(
        self,
        inner: StorageClient,
        *,
        attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ):
        self._inner = inner
        self._attempts = attempts
        self._base_delay = base_delay
        self._max_delay = max_delay

    @property
    def supports_unsized_streams(self) -> bool:
        return self._inner.supports_unsized_streams

    async def _call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential_jitter(
                initial=self._base_delay,
                max=self._max_delay,
                jitter=self._base_delay,
            ),
            retry=retry_if_exception_type(ThrottledError),
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(func, *args, **kwargs)

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = 1000,
    ) -> ListPage:
        return await self._call(
            self._inner.list_objects, bucket, prefix, continuation_token, max_keys
        )

    async def head_object(self, bucket: str, key: str) -> ObjectMetadata:
        return await self._call(self._inner.head_object, bucket, key)

    async def get_object(self, bucket: str, key: str) -> ObjectContent:
        return await self._call(self._inner.get_object, bucket, key)

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
        kwargs = {
            "content_type": content_type,
            "metadata": metadata,
            "content_length": content_length,
        }
        if isinstance(body, (bytes, bytearray)):
            await self._call(self._inner.put_object, bucket, key, body, **kwargs)
            return
        await self._inner.put_object(bucket, key, body, **kwargs)

    async def delete_object(self, bucket: str, key: str) -> None:
        await self._call(self._inner.delete_object, bucket, key)

    async def copy_in_place(
        self,
        bucket: str,
        key: str,
        metadata: Dict[str, str],
        *,
        content_type: str | None = None,
    ) -> None:
        await self._call(
            self._inner.copy_in_place, bucket, key, metadata, content_type=content_type
        )
