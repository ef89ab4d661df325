# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Reconciler - Age-based cleanup and one-way copy for S3-compatible buckets.

Deletes objects older than a threshold, or copies objects newer than it
into a target bucket (optionally under another folder), or re-applies
source metadata onto previously copied objects. Package name: s3recon.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from s3recon.builder import create_config

# Core functions
from s3recon.core import (
    initialize_state,
    run_reconcile_cycle,
    get_metrics,
    shutdown_state,
)

# Environment-based configuration and profiles (additional helpers)
from s3recon.env import create_config_from_env, safe_defaults

from s3recon.reconciler import Reconciler, RunSummary

__all__ = [
    # Version
    "__version__",
    # Configuration creation (primary user-facing APIs)
    "create_config",
    "create_config_from_env",
    "safe_defaults",
    # Core orchestration functions
    "initialize_state",
    "run_reconcile_cycle",
    "get_metrics",
    "shutdown_state",
    # Single-run engine
    "Reconciler",
    "RunSummary",
]
