# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for s3recon.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""

from typing import Iterable


def explain_missing_env(name: str) -> str:
    """
    Explain that a required environment variable is missing.
    """

    return f"{name} environment variable not set."


def explain_missing_source_credentials() -> str:
    """
    Explain that the source credentials are missing.
    """

    return (
        "Source AWS credentials are not configured. "
        "Set both AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY."
    )


def explain_missing_target_env(names: Iterable[str]) -> str:
    """
    Explain which target variables are missing when copy mode is enabled.
    """

    return (
        "Missing required environment variables: "
        + " ".join(names)
        + ". They are required together when ENABLE_MOVE=true."
    )


def explain_invalid_threshold_env(value: str | None) -> str:
    """
    Explain that THRESHOLD_SECONDS is invalid.
    """

    return (
        f"Invalid THRESHOLD_SECONDS value: {value!r}. "
        "It must be a non-negative integer number of seconds."
    )


def explain_invalid_concurrency_env(value: str | None) -> str:
    """
    Explain that S3RECON_MAX_CONCURRENT_OPS is invalid.
    """

    return (
        f"Invalid S3RECON_MAX_CONCURRENT_OPS value: {value!r}. "
        "It must be an integer >= 1."
    )


def explain_invalid_mode(value: str | None) -> str:
    """
    Explain that a reconcile mode string is invalid.
    """

    return (
        f"Invalid reconcile mode: {value!r}. "
        "Expected one of: 'delete', 'copy', or 'sync_metadata'."
    )
