# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Lifecycle and entry point tests.

S3 clients are replaced by in-memory storages so that state bookkeeping
and exit codes can be checked without a network.
"""

from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

import s3recon.__main__ as entry_point
from s3recon.config import ReconcileMode
from s3recon.core import (
    get_metrics,
    initialize_state,
    run_reconcile_cycle,
    shutdown_state,
)
from s3recon.exceptions import ListingError
from s3recon.storage import RetryingStorage

from tests.conftest import (
    SOURCE_BUCKET,
    TARGET_BUCKET,
    InMemoryStorage,
    make_config,
    transient_error,
)

ENV = {
    "AWS_ACCESS_KEY_ID": "source-key",
    "AWS_SECRET_ACCESS_KEY": "source-secret",
    "BUCKET_NAME": SOURCE_BUCKET,
    "AWS_ENDPOINT_URL": "http://ceph.local:7480",
    "THRESHOLD_SECONDS": "3600",
}


@pytest.fixture
def opened(monkeypatch):
    """Route open_s3_storage to in-memory storages keyed by bucket."""
    storages = {}
    endpoints = []

    @asynccontextmanager
    async def fake_open(session, endpoint, config):
        endpoints.append(endpoint)
        yield storages[endpoint.bucket]

    monkeypatch.setattr("s3recon.core.open_s3_storage", fake_open)
    return storages, endpoints


# ============================================================================
# State lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_cycle_accumulates_totals(opened):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    storages[SOURCE_BUCKET] = source
    config = make_config(ReconcileMode.DELETE, threshold_seconds=60)

    state = await initialize_state(config)
    source.add(SOURCE_BUCKET, "a.txt", age=timedelta(days=30))
    first = await run_reconcile_cycle(config, state)
    source.add(SOURCE_BUCKET, "b.txt", age=timedelta(days=30))
    source.add(SOURCE_BUCKET, "c.txt", age=timedelta(days=30))
    second = await run_reconcile_cycle(config, state)

    metrics = get_metrics(state)
    assert first.deleted == 1
    assert second.deleted == 2
    assert metrics.total_runs == 2
    assert metrics.total_deleted == 3
    assert metrics.last_run_id == second.run_id
    assert metrics.last_run_at is not None
    assert metrics.last_error is None

    await shutdown_state(state)
    assert state["s3_session"] is None


@pytest.mark.asyncio
async def test_copy_cycle_opens_both_endpoints(opened):
    storages, endpoints = opened
    storages[SOURCE_BUCKET] = InMemoryStorage(SOURCE_BUCKET)
    storages[TARGET_BUCKET] = InMemoryStorage(TARGET_BUCKET)
    config = make_config(ReconcileMode.COPY)

    state = await initialize_state(config)
    summary = await run_reconcile_cycle(config, state)

    assert [endpoint.bucket for endpoint in endpoints] == [SOURCE_BUCKET, TARGET_BUCKET]
    assert summary.mode == "copy"
    assert get_metrics(state).total_runs == 1


@pytest.mark.asyncio
async def test_delete_cycle_opens_only_the_source(opened):
    storages, endpoints = opened
    storages[SOURCE_BUCKET] = InMemoryStorage(SOURCE_BUCKET)

    state = await initialize_state(make_config(ReconcileMode.DELETE))
    await run_reconcile_cycle(make_config(ReconcileMode.DELETE), state)

    assert [endpoint.bucket for endpoint in endpoints] == [SOURCE_BUCKET]


@pytest.mark.asyncio
async def test_failed_cycle_records_last_error(opened):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    source.list_failures[1] = transient_error()
    storages[SOURCE_BUCKET] = source
    config = make_config(ReconcileMode.DELETE)

    state = await initialize_state(config)
    with pytest.raises(ListingError):
        await run_reconcile_cycle(config, state)

    metrics = get_metrics(state)
    assert metrics.total_runs == 0
    assert "Failed to list objects" in metrics.last_error


@pytest.mark.asyncio
async def test_cycle_wraps_storage_with_retries(monkeypatch, opened):
    storages, _ = opened
    storages[SOURCE_BUCKET] = InMemoryStorage(SOURCE_BUCKET)
    seen = []

    class RecordingReconciler:
        def __init__(self, config, source, target=None):
            seen.append(source)

        async def run(self):
            raise RuntimeError("stop here")

    monkeypatch.setattr("s3recon.core.Reconciler", RecordingReconciler)
    config = make_config(ReconcileMode.DELETE)
    state = await initialize_state(config)

    with pytest.raises(RuntimeError):
        await run_reconcile_cycle(config, state)

    assert isinstance(seen[0], RetryingStorage)
    assert state["last_error"] == "stop here"


# ============================================================================
# Entry point exit codes
# ============================================================================

@pytest.fixture
def quiet_logging(monkeypatch):
    calls = []
    monkeypatch.setattr(
        entry_point, "configure_logging", lambda **kwargs: calls.append(kwargs)
    )
    return calls


def test_main_completed_run_exits_zero(opened, quiet_logging):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    source.add(SOURCE_BUCKET, "a.txt", age=timedelta(days=30))
    storages[SOURCE_BUCKET] = source

    assert entry_point.main({**ENV, "S3RECON_LOG_LEVEL": "debug"}) == 0
    assert source.keys(SOURCE_BUCKET) == []
    assert quiet_logging == [{"level": "debug", "fmt": "json"}]


def test_main_per_object_errors_still_exit_zero(opened, quiet_logging):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    source.add(SOURCE_BUCKET, "a.txt", age=timedelta(days=30))
    source.failures[("delete_object", "a.txt")] = transient_error("a.txt")
    storages[SOURCE_BUCKET] = source

    assert entry_point.main(ENV) == 0


def test_main_dry_run_changes_nothing(opened, quiet_logging):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    source.add(SOURCE_BUCKET, "a.txt", age=timedelta(days=30))
    storages[SOURCE_BUCKET] = source

    assert entry_point.main({**ENV, "DRY_RUN": "true"}) == 0
    assert source.keys(SOURCE_BUCKET) == ["a.txt"]


def test_main_configuration_error_exits_one(quiet_logging):
    env = dict(ENV)
    del env["BUCKET_NAME"]
    assert entry_point.main(env) == 1


def test_main_listing_failure_exits_one(opened, quiet_logging):
    storages, _ = opened
    source = InMemoryStorage(SOURCE_BUCKET)
    source.list_failures[1] = transient_error()
    storages[SOURCE_BUCKET] = source

    assert entry_point.main(ENV) == 1
