# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example: copy the last hour of uploads to a second cluster.

This example builds the configuration with the functional builder instead
of environment variables, runs a dry run first and then the real copy.

Run with:
    python examples/basic_run.py

Environment variables:
    AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: Source credentials
    TARGET_AWS_ACCESS_KEY_ID / TARGET_AWS_SECRET_ACCESS_KEY: Target credentials
"""

import asyncio
import os

from s3recon import (
    get_metrics,
    initialize_state,
    run_reconcile_cycle,
    shutdown_state,
)
from s3recon.builder import (
    build_from_steps,
    copy_mode,
    copy_modified_objects,
    older_than_seconds,
    with_max_concurrent_ops,
    with_source,
    with_target,
)
from s3recon.log import configure_logging


def create_copy_config():
    """Mirror images/ into archive/ on the second cluster."""
    return build_from_steps(
        lambda c: with_source(
            c,
            "media",
            "images",
            endpoint_url="https://ceph-a.example.internal",
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        ),
        lambda c: with_target(
            c,
            "media-archive",
            "archive",
            endpoint_url="https://ceph-b.example.internal",
            access_key_id=os.getenv("TARGET_AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("TARGET_AWS_SECRET_ACCESS_KEY"),
        ),
        copy_mode,
        lambda c: older_than_seconds(c, 3600),
        copy_modified_objects,
        lambda c: with_max_concurrent_ops(c, 8),
    )


async def main() -> None:
    configure_logging(level="info", fmt="console")

    config = create_copy_config()
    state = await initialize_state(config)
    try:
        # Preview first: the dry run only probes and logs would_copy events
        preview = await run_reconcile_cycle(config.with_updates(dry_run=True), state)
        print(f"Would copy {preview.copied} objects, skip {preview.skipped}")

        summary = await run_reconcile_cycle(config, state)
        print(f"Copied {summary.copied} objects with {summary.errors} errors")
        print(get_metrics(state))
    finally:
        await shutdown_state(state)


if __name__ == "__main__":
    asyncio.run(main())
