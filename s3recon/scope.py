# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Folder scopes and source-to-target key mapping.

A folder scope restricts a bucket to the keys under one prefix. Prefixes are
normalized the same way on both sides so that relative keys map symmetrically.
"""

from dataclasses import dataclass

from s3recon.exceptions import KeyMappingError

SEPARATOR = "/"


def normalize_folder(folder: str | None) -> str:
    """
    Return the canonical listing prefix for a user-supplied folder name.

    None or "" selects the whole bucket; any other value ends with "/".
    """
    if not folder:
        return ""
    if folder.endswith(SEPARATOR):
        return folder
    return folder + SEPARATOR


def is_folder_marker(key: str) -> bool:
    """Keys ending in "/" are folder placeholders, never real payloads."""
    return key.endswith(SEPARATOR)


@dataclass(frozen=True)
class FolderScope:
    """A bucket plus a normalized key prefix ("" means the whole bucket)."""

    bucket: str
    prefix: str = ""

    @classmethod
    def of(cls, bucket: str, folder: str | None = None) -> "FolderScope":
        return cls(bucket=bucket, prefix=normalize_folder(folder))

    def contains(self, key: str) -> bool:
        return key.startswith(self.prefix)


def relative_key(source_key: str, source: FolderScope) -> str:
    """
    Strip the source prefix from a key.

    Raises:
        KeyMappingError: If the key lies outside the source scope
    """
    if not source.contains(source_key):
        raise KeyMappingError(
            "Object key does not start with the expected prefix",
            details={"key": source_key, "prefix": source.prefix},
        )
    return source_key[len(source.prefix):]


def map_to_target(source_key: str, source: FolderScope, target: FolderScope) -> str:
    """
    Compute the target key for a source key.

    target_key = target.prefix + source_key[len(source.prefix):]
    """
    return target.prefix + relative_key(source_key, source)
