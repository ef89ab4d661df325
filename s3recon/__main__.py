# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Process entry point: ``python -m s3recon`` or the ``s3recon`` script.

Runs one reconciliation pass configured from the environment. Exit status
is 0 when the run completed (per-object errors are reported in the summary
log line) and 1 when configuration, the first listing page or the run
itself failed.
"""

import asyncio
import os
import sys
from typing import Mapping

import structlog

from s3recon.core import initialize_state, run_reconcile_cycle, shutdown_state
from s3recon.env import create_config_from_env
from s3recon.exceptions import ConfigurationError, ListingError
from s3recon.log import configure_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1


async def _run_once(env: Mapping[str, str]) -> int:
    config = create_config_from_env(env)
    state = await initialize_state(config)
    try:
        summary = await run_reconcile_cycle(config, state)
    finally:
        await shutdown_state(state)

    if not summary.clean:
        logger.warning(
            "reconcile_finished_with_errors",
            run_id=summary.run_id,
            errors=summary.errors,
            pagination_interrupted=summary.pagination_interrupted,
        )
    return EXIT_OK


def main(env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    configure_logging(
        level=env.get("S3RECON_LOG_LEVEL", "info"),
        fmt=env.get("S3RECON_LOG_FORMAT", "json"),
    )

    try:
        return asyncio.run(_run_once(env))
    except ConfigurationError as e:
        logger.error("invalid_configuration", error=str(e))
    except ListingError as e:
        logger.error("listing_failed_fatal", error=str(e))
    except Exception as e:
        logger.exception("reconcile_failed_fatal", error=str(e))
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
