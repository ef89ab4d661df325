# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers and safety profiles.

These helpers are small, convenient wrappers around create_config() and
ReconcileConfig.with_updates(). They make it easy to:

- Build a configuration from the deployment's environment variables
- Apply a ready-made safety profile
"""

from __future__ import annotations

import os
import re
from typing import List, Mapping

import structlog

from s3recon.builder import create_config
from s3recon.config import ReconcileConfig, ReconcileMode, StorageEndpoint
from s3recon.errors import (
    explain_invalid_concurrency_env,
    explain_invalid_threshold_env,
    explain_missing_env,
    explain_missing_source_credentials,
    explain_missing_target_env,
)
from s3recon.exceptions import ConfigurationError

logger = structlog.get_logger()

DEFAULT_REGION = "eu-west-1"

_REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-\d$")

TARGET_ENV_VARS = (
    "TARGET_AWS_ACCESS_KEY_ID",
    "TARGET_AWS_SECRET_ACCESS_KEY",
    "TARGET_AWS_ENDPOINT_URL",
    "TARGET_BUCKET_NAME",
)


def _parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigurationError(explain_missing_env(name))
    return value


def _parse_threshold_seconds(value: str | None) -> int:
    if not value:
        raise ConfigurationError(explain_missing_env("THRESHOLD_SECONDS"))
    try:
        seconds = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_threshold_env(value)) from exc
    if seconds < 0:
        raise ConfigurationError(explain_invalid_threshold_env(value))
    return seconds


def _parse_max_concurrent_ops(value: str | None) -> int:
    if not value:
        return 1
    try:
        max_ops = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_concurrency_env(value)) from exc
    if max_ops < 1:
        raise ConfigurationError(explain_invalid_concurrency_env(value))
    return max_ops


def _parse_region(value: str | None) -> str:
    """Invalid regions fall back to the default instead of failing the run."""

    if not value:
        return DEFAULT_REGION
    if not _REGION_PATTERN.match(value):
        logger.warning("invalid_region", region=value, fallback=DEFAULT_REGION)
        return DEFAULT_REGION
    return value


def _parse_target(env: Mapping[str, str], region: str) -> StorageEndpoint:
    missing: List[str] = [name for name in TARGET_ENV_VARS if not env.get(name)]
    if missing:
        raise ConfigurationError(explain_missing_target_env(missing))

    return StorageEndpoint(
        bucket=env["TARGET_BUCKET_NAME"],
        folder=env.get("TARGET_FOLDER") or None,
        endpoint_url=env["TARGET_AWS_ENDPOINT_URL"],
        region=region,
        access_key_id=env["TARGET_AWS_ACCESS_KEY_ID"],
        secret_access_key=env["TARGET_AWS_SECRET_ACCESS_KEY"],
    )


def create_config_from_env(env: Mapping[str, str] | None = None) -> ReconcileConfig:
    """
    Create a ReconcileConfig from environment variables.

    Required:
        - BUCKET_NAME: Source bucket
        - THRESHOLD_SECONDS: Non-negative age threshold in seconds
        - AWS_ENDPOINT_URL: Source S3 endpoint
        - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: Source credentials

    Optional:
        - FOLDER: Source folder scope (whole bucket when unset)
        - AWS_REGION: Region for both clients (default: eu-west-1)
        - ENABLE_MOVE: 'true' to copy recent objects instead of deleting stale ones
        - COPY_METADATA: 'true' to only re-sync metadata (requires ENABLE_MOVE)
        - COPY_MODIFIED: 'true' to overwrite target objects whose ETag/size differ
        - TARGET_BUCKET_NAME, TARGET_FOLDER, TARGET_AWS_ENDPOINT_URL,
          TARGET_AWS_ACCESS_KEY_ID, TARGET_AWS_SECRET_ACCESS_KEY: Target side,
          all but TARGET_FOLDER required when ENABLE_MOVE is set
        - DRY_RUN: 'true' to log intended actions only
        - S3RECON_MAX_CONCURRENT_OPS: Concurrent per-object actions (default: 1)
    """

    env = os.environ if env is None else env

    access_key = env.get("AWS_ACCESS_KEY_ID")
    secret_key = env.get("AWS_SECRET_ACCESS_KEY")
    if not access_key or not secret_key:
        raise ConfigurationError(explain_missing_source_credentials())

    bucket = _require(env, "BUCKET_NAME")
    endpoint_url = _require(env, "AWS_ENDPOINT_URL")
    threshold_seconds = _parse_threshold_seconds(env.get("THRESHOLD_SECONDS"))
    region = _parse_region(env.get("AWS_REGION"))

    mode = ReconcileMode.DELETE
    target = None
    if _parse_bool(env.get("ENABLE_MOVE")):
        target = _parse_target(env, region)
        mode = (
            ReconcileMode.SYNC_METADATA
            if _parse_bool(env.get("COPY_METADATA"))
            else ReconcileMode.COPY
        )

    config = create_config(
        bucket,
        folder=env.get("FOLDER") or None,
        threshold_seconds=threshold_seconds,
        mode=mode,
        endpoint_url=endpoint_url,
        region=region,
        target=target,
        copy_if_modified=_parse_bool(env.get("COPY_MODIFIED")),
        dry_run=_parse_bool(env.get("DRY_RUN")),
        max_concurrent_ops=_parse_max_concurrent_ops(env.get("S3RECON_MAX_CONCURRENT_OPS")),
    )

    # Source keys are passed explicitly rather than through the botocore chain
    source = StorageEndpoint(
        bucket=config.source.bucket,
        folder=config.source.folder,
        endpoint_url=endpoint_url,
        region=region,
        access_key_id=access_key,
        secret_access_key=secret_key,
    )
    return config.with_updates(source=source)


# ============================================================================
# Profiles
# ============================================================================

def safe_defaults(config: ReconcileConfig) -> ReconcileConfig:
    """
    Apply conservative, safety-first defaults.

    - Always dry-run (nothing is deleted, copied or rewritten)
    - Sequential dispatch, one object at a time
    """

    return config.with_updates(dry_run=True, max_concurrent_ops=1)
