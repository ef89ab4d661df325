# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Reconciler - Runs one delete, copy or metadata-sync pass.

A run lists the source scope page by page, filters each page by age and
dispatches every selected object to the handler for the configured mode.
Failure policy:

- First listing page fails: ListingError propagates, nothing was touched.
- A later listing page fails: pagination stops, finished work is kept,
  the summary is marked interrupted and counts one error.
- A single object fails: the error is logged and counted, the run continues.
"""

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Tuple

import structlog
from ulid import ULID

from s3recon.age import compute_threshold, recent_predicate, stale_predicate
from s3recon.config import ReconcileConfig, ReconcileMode
from s3recon.exceptions import ConfigurationError, ListingError, ObjectNotFoundError
from s3recon.heuristic import TransferDecision, decide_transfer
from s3recon.lister import PaginationStatus, iter_pages
from s3recon.scope import FolderScope, is_folder_marker, map_to_target
from s3recon.storage.base import ObjectSummary, StorageClient
from s3recon.transfer import (
    SOURCE_ETAG_METADATA_KEY,
    TransferPolicy,
    build_transfer_metadata,
    transfer_object,
)

logger = structlog.get_logger()


class Outcome(str, Enum):
    """What happened to one selected object."""

    DELETED = "deleted"
    COPIED = "copied"
    SYNCED = "synced"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class RunSummary:
    """Counters and status of one reconciliation run."""

    run_id: str
    mode: str
    dry_run: bool
    threshold: datetime
    pages: int = 0
    seen: int = 0
    selected: int = 0
    deleted: int = 0
    copied: int = 0
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    pagination_interrupted: bool = False
    duration_seconds: float = 0.0
    error_keys: List[str] = field(default_factory=list)

    @property
    def acted(self) -> int:
        return self.deleted + self.copied + self.synced

    @property
    def clean(self) -> bool:
        """True when pagination finished and no object failed."""
        return self.errors == 0 and not self.pagination_interrupted

    def record(self, outcome: Outcome, key: str) -> None:
        if outcome is Outcome.DELETED:
            self.deleted += 1
        elif outcome is Outcome.COPIED:
            self.copied += 1
        elif outcome is Outcome.SYNCED:
            self.synced += 1
        elif outcome is Outcome.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1
            self.error_keys.append(key)

    def as_log_fields(self) -> Dict[str, Any]:
        fields = asdict(self)
        fields.pop("error_keys")
        fields["threshold"] = self.threshold.isoformat()
        return fields


Handler = Callable[[ObjectSummary], Awaitable[Outcome]]


class Reconciler:
    """
    Applies one ReconcileConfig to a source (and optional target) storage.

    Storage clients are injected, so the same reconciler drives S3, a
    retrying wrapper, or an in-memory fake.
    """

    def __init__(
        self,
        config: ReconcileConfig,
        source: StorageClient,
        target: StorageClient | None = None,
        *,
        now: datetime | None = None,
    ):
        if config.requires_target and (target is None or config.target is None):
            raise ConfigurationError(
                "A target storage is required for copy and sync_metadata modes",
                details={"mode": config.mode.value},
            )

        self.config = config
        self.source = source
        self.target = target
        self.source_scope = FolderScope.of(config.source.bucket, config.source.folder)
        self.target_scope = (
            FolderScope.of(config.target.bucket, config.target.folder)
            if config.target is not None
            else None
        )
        self.policy = TransferPolicy.from_config(config)
        self._now = now

    async def run(self) -> RunSummary:
        """
        Execute one pass over the source scope.

        Returns:
            RunSummary with the run's counters

        Raises:
            ListingError: If the first listing page fails
        """
        started = datetime.now(UTC)
        threshold = compute_threshold(self.config.threshold_seconds, self._now)
        summary = RunSummary(
            run_id=str(ULID()),
            mode=self.config.mode.value,
            dry_run=self.config.dry_run,
            threshold=threshold,
        )

        if self.config.mode == ReconcileMode.DELETE:
            predicate = stale_predicate(threshold)
            handler: Handler = self.delete_object
        elif self.config.mode == ReconcileMode.COPY:
            predicate = recent_predicate(threshold)
            handler = self.copy_object
        else:
            predicate = recent_predicate(threshold)
            handler = self.sync_object_metadata

        logger.info(
            "reconcile_started",
            run_id=summary.run_id,
            mode=summary.mode,
            dry_run=summary.dry_run,
            bucket=self.source_scope.bucket,
            prefix=self.source_scope.prefix,
            threshold=threshold.isoformat(),
        )

        status = PaginationStatus()
        try:
            async for page in iter_pages(
                self.source,
                self.source_scope,
                predicate,
                page_size=self.config.list_batch_size,
                status=status,
            ):
                summary.pages = page.number
                summary.seen += page.listed
                summary.selected += len(page.entries)
                await self._dispatch(page.entries, handler, summary)
        except ListingError as e:
            summary.duration_seconds = (datetime.now(UTC) - started).total_seconds()
            logger.error("reconcile_aborted", run_id=summary.run_id, error=str(e))
            raise

        if status.interrupted:
            summary.pagination_interrupted = True
            summary.errors += 1

        summary.duration_seconds = (datetime.now(UTC) - started).total_seconds()
        logger.info("reconcile_completed", **summary.as_log_fields())
        return summary

    async def _dispatch(
        self,
        entries: List[ObjectSummary],
        handler: Handler,
        summary: RunSummary,
    ) -> None:
        """Handle one page; the page is drained before the next is listed."""
        if self.config.max_concurrent_ops == 1:
            for entry in entries:
                await self._handle(entry, handler, summary)
            return

        semaphore = asyncio.Semaphore(self.config.max_concurrent_ops)

        async def bounded(entry: ObjectSummary) -> None:
            async with semaphore:
                await self._handle(entry, handler, summary)

        await asyncio.gather(*(bounded(entry) for entry in entries))

    async def _handle(
        self,
        entry: ObjectSummary,
        handler: Handler,
        summary: RunSummary,
    ) -> None:
        try:
            outcome = await handler(entry)
        except Exception as e:
            outcome = Outcome.ERRORED
            logger.error(
                "object_failed",
                mode=self.config.mode.value,
                key=entry.key,
                reason=type(e).__name__,
                error=str(e),
            )
        summary.record(outcome, entry.key)

    def _skip(self, key: str, reason: str, **context: Any) -> Outcome:
        logger.info("object_skipped", key=key, reason=reason, **context)
        return Outcome.SKIPPED

    def _require_target(self) -> Tuple[StorageClient, FolderScope]:
        if self.target is None or self.target_scope is None:
            raise ConfigurationError(
                "A target storage is required for copy and sync_metadata modes",
                details={"mode": self.config.mode.value},
            )
        return self.target, self.target_scope

    # ------------------------------------------------------------------
    # Mode handlers
    # ------------------------------------------------------------------

    async def delete_object(self, entry: ObjectSummary) -> Outcome:
        """Delete one stale object from the source bucket."""
        key = entry.key
        bucket = self.source_scope.bucket

        if is_folder_marker(key):
            return self._skip(key, "folder_marker")

        if self.config.dry_run:
            logger.info(
                "would_delete",
                bucket=bucket,
                key=key,
                reason="stale",
                last_modified=entry.last_modified.isoformat(),
            )
            return Outcome.DELETED

        await self.source.delete_object(bucket, key)
        logger.info(
            "object_deleted",
            bucket=bucket,
            key=key,
            reason="stale",
            last_modified=entry.last_modified.isoformat(),
        )
        return Outcome.DELETED

    async def copy_object(self, entry: ObjectSummary) -> Outcome:
        """Copy one recent object to the target unless the heuristic skips it."""
        key = entry.key
        if is_folder_marker(key):
            return self._skip(key, "folder_marker")

        target, target_scope = self._require_target()
        target_key = map_to_target(key, self.source_scope, target_scope)

        result = await decide_transfer(
            self.source,
            self.source_scope.bucket,
            key,
            target,
            target_scope.bucket,
            target_key,
            copy_if_modified=self.config.copy_if_modified,
        )

        if result.decision is TransferDecision.SKIP:
            return self._skip(key, result.reason, target_key=target_key)

        if result.decision is TransferDecision.ERROR:
            logger.error(
                "copy_not_attempted",
                key=key,
                target_key=target_key,
                reason=result.reason,
            )
            return Outcome.ERRORED

        if self.config.dry_run:
            logger.info(
                "would_copy",
                key=key,
                target_bucket=target_scope.bucket,
                target_key=target_key,
                reason=result.reason,
                size=entry.size,
            )
            return Outcome.COPIED

        strategy = await transfer_object(
            self.source,
            self.source_scope.bucket,
            key,
            target,
            target_scope.bucket,
            target_key,
            self.policy,
        )
        logger.info(
            "object_copied",
            key=key,
            target_bucket=target_scope.bucket,
            target_key=target_key,
            reason=result.reason,
            strategy=strategy.value,
            size=entry.size,
        )
        return Outcome.COPIED

    async def sync_object_metadata(self, entry: ObjectSummary) -> Outcome:
        """Re-apply source metadata onto an existing target object in place."""
        key = entry.key
        if is_folder_marker(key):
            return self._skip(key, "folder_marker")

        target, target_scope = self._require_target()
        target_key = map_to_target(key, self.source_scope, target_scope)
        target_bucket = target_scope.bucket

        try:
            target_head = await target.head_object(target_bucket, target_key)
        except ObjectNotFoundError:
            return self._skip(key, "target_missing", target_key=target_key)

        source_head = await self.source.head_object(self.source_scope.bucket, key)
        metadata = build_transfer_metadata(source_head.metadata, source_head.last_modified)
        # The recorded ETag describes the target bytes, which a sync leaves alone
        metadata.pop(SOURCE_ETAG_METADATA_KEY, None)
        recorded = target_head.metadata.get(SOURCE_ETAG_METADATA_KEY)
        if recorded:
            metadata[SOURCE_ETAG_METADATA_KEY] = recorded
        content_type = source_head.content_type or target_head.content_type

        if self.config.dry_run:
            logger.info(
                "would_sync",
                key=key,
                target_bucket=target_bucket,
                target_key=target_key,
                reason="target_exists",
            )
            return Outcome.SYNCED

        await target.copy_in_place(
            target_bucket, target_key, metadata, content_type=content_type
        )
        logger.info(
            "object_synced",
            key=key,
            target_bucket=target_bucket,
            target_key=target_key,
            reason="target_exists",
            metadata_keys=sorted(metadata),
        )
        return Outcome.SYNCED
