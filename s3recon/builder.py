# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Builder - Functional builder pattern for configuration.

This module provides pure functions for building ReconcileConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from typing import Any, Callable, Dict

from s3recon.config import ReconcileConfig, ReconcileMode, StorageEndpoint
from s3recon.errors import explain_invalid_mode
from s3recon.exceptions import ConfigurationError


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "source": None,
        "target": None,
        "mode": ReconcileMode.DELETE,
        "threshold_seconds": 0,
        "copy_if_modified": False,
        "dry_run": False,
        "max_concurrent_ops": 1,
        "list_batch_size": 1000,
    }


def with_source(
    config: ConfigDict,
    bucket: str,
    folder: str | None = None,
    **endpoint: Any,
) -> ConfigDict:
    """
    Set the source bucket, optional folder and connection details.

    Args:
        config: Current configuration dictionary
        bucket: Bucket the objects are listed from
        folder: Folder scope inside the bucket (whole bucket when omitted)
        **endpoint: endpoint_url, region, access_key_id, secret_access_key

    Returns:
        New configuration dictionary with source set
    """
    return {**config, "source": StorageEndpoint(bucket=bucket, folder=folder, **endpoint)}


def with_target(
    config: ConfigDict,
    bucket: str,
    folder: str | None = None,
    **endpoint: Any,
) -> ConfigDict:
    """
    Set the target bucket, optional folder and connection details.

    Returns:
        New configuration dictionary with target set
    """
    return {**config, "target": StorageEndpoint(bucket=bucket, folder=folder, **endpoint)}


def delete_mode(config: ConfigDict) -> ConfigDict:
    """Delete stale objects from the source bucket."""
    return {**config, "mode": ReconcileMode.DELETE}


def copy_mode(config: ConfigDict) -> ConfigDict:
    """Copy recent objects from the source to the target bucket."""
    return {**config, "mode": ReconcileMode.COPY}


def sync_metadata_mode(config: ConfigDict) -> ConfigDict:
    """Re-apply source metadata onto already copied target objects."""
    return {**config, "mode": ReconcileMode.SYNC_METADATA}


def older_than_seconds(config: ConfigDict, seconds: int) -> ConfigDict:
    """
    Set the age threshold in seconds.

    Args:
        config: Current configuration dictionary
        seconds: Objects last modified before now - seconds are stale

    Returns:
        New configuration dictionary with threshold set
    """
    if seconds < 0:
        raise ValueError(f"threshold seconds must be >= 0, got {seconds}")
    return {**config, "threshold_seconds": seconds}


def copy_modified_objects(config: ConfigDict, enabled: bool = True) -> ConfigDict:
    """Overwrite existing target objects whose ETag or size differ."""
    return {**config, "copy_if_modified": enabled}


def dry_run_mode(config: ConfigDict, enabled: bool = True) -> ConfigDict:
    """Log intended deletes and copies without performing them."""
    return {**config, "dry_run": enabled}


def with_max_concurrent_ops(config: ConfigDict, max_ops: int) -> ConfigDict:
    """
    Set the maximum number of concurrent per-object actions.

    Args:
        config: Current configuration dictionary
        max_ops: Maximum concurrent operations within one page

    Returns:
        New configuration dictionary with max_concurrent_ops set
    """
    if max_ops < 1:
        raise ValueError(f"max_concurrent_ops must be >= 1, got {max_ops}")
    return {**config, "max_concurrent_ops": max_ops}


def with_list_batch_size(config: ConfigDict, batch_size: int) -> ConfigDict:
    """
    Set the batch size for S3 listing operations.

    Args:
        config: Current configuration dictionary
        batch_size: Number of objects to list per request

    Returns:
        New configuration dictionary with batch size set
    """
    if batch_size < 1 or batch_size > 1000:
        raise ValueError(f"list_batch_size must be 1-1000, got {batch_size}")
    return {**config, "list_batch_size": batch_size}


def build_config(config_dict: ConfigDict) -> ReconcileConfig:
    """
    Validate and build an immutable ReconcileConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable ReconcileConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("source"):
        raise ConfigurationError("source bucket is required")

    return ReconcileConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

    This allows a more readable pipeline style:

        config = pipe(
            lambda c: with_source(c, "my-bucket", "images"),
            lambda c: older_than_seconds(c, 3600),
            delete_mode,
        )(create_empty_config())
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> ReconcileConfig:
    """
    Build config by applying a sequence of builder functions.

    This is a convenience function that combines pipe() and build_config().
    """
    return build_config(pipe(*steps)(create_empty_config()))


def _parse_mode(mode: str | ReconcileMode) -> ReconcileMode:
    if isinstance(mode, ReconcileMode):
        return mode
    try:
        return ReconcileMode(mode.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_mode(mode)) from exc


def create_config(
    bucket: str,
    *,
    folder: str | None = None,
    threshold_seconds: int = 0,
    mode: str | ReconcileMode = "delete",
    endpoint_url: str | None = None,
    region: str = "eu-west-1",
    target: StorageEndpoint | None = None,
    copy_if_modified: bool = False,
    dry_run: bool = False,
    **kwargs: Any,
) -> ReconcileConfig:
    """
    Create a ReconcileConfig from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Example:
        # Delete objects older than one day under images/
        config = create_config("media", folder="images", threshold_seconds=86400)

        # Copy the last hour of uploads to a second cluster
        config = create_config(
            "media",
            folder="images",
            threshold_seconds=3600,
            mode="copy",
            target=StorageEndpoint(
                bucket="media-archive",
                folder="archive",
                endpoint_url="https://ceph.internal",
                access_key_id="...",
                secret_access_key="...",
            ),
        )
    """
    config_dict = create_empty_config()
    config_dict = with_source(
        config_dict, bucket, folder, endpoint_url=endpoint_url, region=region
    )
    config_dict = older_than_seconds(config_dict, threshold_seconds)

    resolved = _parse_mode(mode)
    if resolved == ReconcileMode.COPY:
        config_dict = copy_mode(config_dict)
    elif resolved == ReconcileMode.SYNC_METADATA:
        config_dict = sync_metadata_mode(config_dict)
    else:
        config_dict = delete_mode(config_dict)

    if target is not None:
        config_dict = {**config_dict, "target": target}

    config_dict = copy_modified_objects(config_dict, copy_if_modified)
    config_dict = dry_run_mode(config_dict, dry_run)

    # Remaining tuning knobs are passed through and validated by ReconcileConfig
    config_dict.update(kwargs)

    return build_config(config_dict)
