# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Paginated lister - walks a folder scope page by page.

The continuation cursor never leaves this module. A failure on the first
page is fatal (ListingError); a failure on any later page ends pagination
early, keeps everything already yielded and is recorded on the supplied
PaginationStatus so callers can tell it apart from a clean completion.
"""

from dataclasses import dataclass
from typing import AsyncIterator, List

import structlog

from s3recon.age import AgePredicate
from s3recon.exceptions import ListingError
from s3recon.scope import FolderScope
from s3recon.storage.base import ObjectSummary, StorageClient

logger = structlog.get_logger()


@dataclass
class PaginationStatus:
    """Progress of one listing pass."""

    pages: int = 0
    listed: int = 0
    interrupted: bool = False
    error: str | None = None


@dataclass(frozen=True)
class FilteredPage:
    """The entries of one listing page that satisfied the predicate."""

    number: int
    listed: int
    entries: List[ObjectSummary]


async def iter_pages(
    storage: StorageClient,
    scope: FolderScope,
    predicate: AgePredicate,
    *,
    page_size: int = 1000,
    status: PaginationStatus | None = None,
) -> AsyncIterator[FilteredPage]:
    """
    Yield each listing page of scope, keeping entries whose last-modified
    timestamp satisfies predicate.

    Raises:
        ListingError: If the first page cannot be listed
    """
    status = status if status is not None else PaginationStatus()
    token: str | None = None

    while True:
        number = status.pages + 1
        try:
            page = await storage.list_objects(
                scope.bucket,
                scope.prefix,
                continuation_token=token,
                max_keys=page_size,
            )
        except Exception as e:
            if number == 1:
                logger.error(
                    "listing_failed",
                    bucket=scope.bucket,
                    prefix=scope.prefix,
                    error=str(e),
                )
                raise ListingError(
                    f"Failed to list objects in {scope.bucket}/{scope.prefix}: {e}",
                    details={"bucket": scope.bucket, "prefix": scope.prefix},
                ) from e

            status.interrupted = True
            status.error = str(e)
            logger.error(
                "listing_page_failed",
                bucket=scope.bucket,
                prefix=scope.prefix,
                page=number,
                error=str(e),
            )
            return

        status.pages = number
        status.listed += len(page.entries)
        logger.info(
            "page_listed",
            bucket=scope.bucket,
            prefix=scope.prefix,
            page=number,
            objects=len(page.entries),
        )

        yield FilteredPage(
            number=number,
            listed=len(page.entries),
            entries=[entry for entry in page.entries if predicate(entry.last_modified)],
        )

        if not page.has_more or not page.next_token:
            return
        token = page.next_token


async def list_recent_or_stale(
    storage: StorageClient,
    scope: FolderScope,
    predicate: AgePredicate,
    *,
    page_size: int = 1000,
    status: PaginationStatus | None = None,
) -> AsyncIterator[ObjectSummary]:
    """Lazy, flattened view of iter_pages()."""
    async for page in iter_pages(
        storage, scope, predicate, page_size=page_size, status=status
    ):
        for entry in page.entries:
            yield entry
