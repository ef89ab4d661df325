# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Storage Layer - Object-store capability, S3 backend and retry decorator.
"""

from s3recon.storage.base import (
    AsyncReadable,
    ListPage,
    ObjectContent,
    ObjectMetadata,
    ObjectSummary,
    PutBody,
    StorageClient,
)
from s3recon.storage.retry import RetryingStorage
from s3recon.storage.s3 import S3Storage, open_s3_storage, translate_client_error

__all__ = [
    # Types
    "AsyncReadable",
    "ListPage",
    "ObjectContent",
    "ObjectMetadata",
    "ObjectSummary",
    "PutBody",
    "StorageClient",
    # Backends
    "S3Storage",
    "open_s3_storage",
    "translate_client_error",
    "RetryingStorage",
]
