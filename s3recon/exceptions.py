# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Exceptions - Custom exceptions for the s3recon package.
"""


class S3ReconError(Exception):
    """Base exception for all s3recon errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(S3ReconError):
    """Raised when configuration is invalid."""

    pass


class ListingError(S3ReconError):
    """Raised when the first listing page of a run cannot be fetched."""

    pass


class KeyMappingError(S3ReconError):
    """Raised when a source key falls outside the source folder scope."""

    pass


class TransferError(S3ReconError):
    """Raised when an object cannot be transferred to the target."""

    pass


class ObjectTooLargeError(TransferError):
    """Raised when an object exceeds the in-memory buffer bound or the multipart part limit."""

    pass


class S3OperationError(S3ReconError):
    """Raised when S3 operations fail."""

    pass


class ObjectNotFoundError(S3OperationError):
    """Raised when the requested object does not exist."""

    pass


class BucketNotFoundError(S3OperationError):
    """Raised when the requested bucket does not exist."""

    pass


class ThrottledError(S3OperationError):
    """Raised when the storage endpoint rejects a call for rate limiting."""

    pass
