# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Core - Lifecycle functions around a reconciliation run.

This module owns the aiobotocore session and cumulative totals across
runs, opens the source and target clients for each cycle and hands them
to the Reconciler.
"""

from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, TypedDict

import structlog

from s3recon.config import ReconcileConfig, StorageEndpoint
from s3recon.reconciler import Reconciler, RunSummary
from s3recon.storage import RetryingStorage, StorageClient, open_s3_storage

logger = structlog.get_logger()


@dataclass
class ReconcileMetrics:
    """Cumulative metrics across the runs of one ReconcileState."""

    total_runs: int
    last_run_at: datetime | None
    last_run_id: str | None
    total_deleted: int
    total_copied: int
    total_synced: int
    total_skipped: int
    total_errors: int
    last_error: str | None


class ReconcileState(TypedDict):
    """Runtime state shared by consecutive reconciliation runs."""

    s3_session: Any  # aiobotocore session
    last_run_at: datetime | None
    last_run_id: str | None
    total_runs: int
    total_deleted: int
    total_copied: int
    total_synced: int
    total_skipped: int
    total_errors: int
    last_error: str | None


async def initialize_state(config: ReconcileConfig) -> ReconcileState:
    """
    Initialize runtime state for reconciliation runs.

    Args:
        config: S3Recon configuration

    Returns:
        Initialized ReconcileState dictionary
    """
    from aiobotocore.session import get_session

    logger.info(
        "state_initialized",
        mode=config.mode.value,
        source=repr(config.source),
        target=repr(config.target) if config.target else None,
    )

    return ReconcileState(
        s3_session=get_session(),
        last_run_at=None,
        last_run_id=None,
        total_runs=0,
        total_deleted=0,
        total_copied=0,
        total_synced=0,
        total_skipped=0,
        total_errors=0,
        last_error=None,
    )


def _with_retries(storage: StorageClient, config: ReconcileConfig) -> RetryingStorage:
    return RetryingStorage(
        storage,
        attempts=config.retry_attempts,
        base_delay=config.retry_base_delay_seconds,
        max_delay=config.retry_max_delay_seconds,
    )


async def _open_storage(
    stack: AsyncExitStack,
    state: ReconcileState,
    endpoint: StorageEndpoint,
    config: ReconcileConfig,
) -> RetryingStorage:
    storage = await stack.enter_async_context(
        open_s3_storage(state["s3_session"], endpoint, config)
    )
    return _with_retries(storage, config)


async def run_reconcile_cycle(config: ReconcileConfig, state: ReconcileState) -> RunSummary:
    """
    Run one complete reconciliation pass.

    Opens the source client (and the target client for copy and
    sync_metadata modes), runs the Reconciler and folds its summary
    into the state's totals.

    Args:
        config: S3Recon configuration
        state: Runtime state

    Returns:
        RunSummary of the run

    Raises:
        ListingError: If the first listing page fails
    """
    try:
        async with AsyncExitStack() as stack:
            source = await _open_storage(stack, state, config.source, config)
            target = None
            if config.requires_target and config.target is not None:
                target = await _open_storage(stack, state, config.target, config)

            summary = await Reconciler(config, source, target).run()
    except Exception as e:
        state["last_error"] = str(e)
        logger.error("reconcile_cycle_failed", mode=config.mode.value, error=str(e))
        raise

    record_summary(state, summary)
    return summary


def record_summary(state: ReconcileState, summary: RunSummary) -> None:
    """Fold one run's counters into the cumulative totals."""
    state["last_run_at"] = datetime.now(UTC)
    state["last_run_id"] = summary.run_id
    state["total_runs"] += 1
    state["total_deleted"] += summary.deleted
    state["total_copied"] += summary.copied
    state["total_synced"] += summary.synced
    state["total_skipped"] += summary.skipped
    state["total_errors"] += summary.errors
    if summary.pagination_interrupted:
        state["last_error"] = "listing interrupted after a partial run"


def get_metrics(state: ReconcileState) -> ReconcileMetrics:
    """Get cumulative reconciliation metrics."""
    return ReconcileMetrics(
        total_runs=state["total_runs"],
        last_run_at=state["last_run_at"],
        last_run_id=state["last_run_id"],
        total_deleted=state["total_deleted"],
        total_copied=state["total_copied"],
        total_synced=state["total_synced"],
        total_skipped=state["total_skipped"],
        total_errors=state["total_errors"],
        last_error=state["last_error"],
    )


async def shutdown_state(state: ReconcileState) -> None:
    """Release the session and log final totals."""
    state["s3_session"] = None
    logger.info(
        "state_shutdown_complete",
        total_runs=state["total_runs"],
        total_errors=state["total_errors"],
    )
