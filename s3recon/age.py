# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Age filter - classifies objects as stale or recent against a fixed cutoff.

The cutoff is computed once per run. Both comparisons are strict, so an
object modified exactly at the cutoff is selected by neither deletion nor
copy/sync, and no object can ever be selected by both.
"""

from datetime import datetime, timedelta, UTC
from typing import Callable

AgePredicate = Callable[[datetime], bool]


def compute_threshold(threshold_seconds: int, now: datetime | None = None) -> datetime:
    """Return now - threshold_seconds as an aware UTC instant."""
    if threshold_seconds < 0:
        raise ValueError(f"threshold_seconds must be >= 0, got {threshold_seconds}")
    current = now or datetime.now(UTC)
    return current - timedelta(seconds=threshold_seconds)


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps from storage backends are UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def is_stale(last_modified: datetime, threshold: datetime) -> bool:
    """Strictly before the cutoff: eligible for deletion."""
    return _as_utc(last_modified) < _as_utc(threshold)


def is_recent(last_modified: datetime, threshold: datetime) -> bool:
    """Strictly after the cutoff: eligible for copy or metadata sync."""
    return _as_utc(last_modified) > _as_utc(threshold)


def stale_predicate(threshold: datetime) -> AgePredicate:
    return lambda last_modified: is_stale(last_modified, threshold)


def recent_predicate(threshold: datetime) -> AgePredicate:
    return lambda last_modified: is_recent(last_modified, threshold)
