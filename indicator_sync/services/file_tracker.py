from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..db.tracker_store import TrackerStore
from ..models.source_file import FileInfo, FileRecord

"""File change tracking.

``classify`` and ``prune`` are pure functions of (listing, known records);
``commit`` and ``prune_store`` are the only operations that touch the store.

A file is committed only after its whole pipeline (including upload) has
succeeded, so a failed file stays new/changed and is retried next run.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_RETENTION",
    "Classification",
    "PruneResult",
    "classify",
    "commit",
    "prune",
    "prune_store",
]

DEFAULT_RETENTION = timedelta(days=30)


@dataclass(frozen=True)
class Classification:
    new_or_changed: list[FileInfo] = field(default_factory=list)
    unchanged: list[FileInfo] = field(default_factory=list)


@dataclass(frozen=True)
class PruneResult:
    kept: dict[str, FileRecord]
    removed: list[str]  # File names dropped from tracking


def classify(listing: Iterable[FileInfo], known: Mapping[str, FileRecord]) -> Classification:
    """Split ``listing`` into new/changed and unchanged files (listing order kept).

    New: name not tracked. Changed: size or modification time differs.
    Idempotent: classifying the same inputs twice yields the same result.
    """
    result = Classification()
    for info in listing:
        record = known.get(info.name)
        if record is not None and record.matches(info):
            result.unchanged.append(info)
        else:
            result.new_or_changed.append(info)
    return result


def commit(store: TrackerStore, info: FileInfo, now: datetime) -> FileRecord:
    """Record ``info`` as processed at ``now`` (single-key upsert)."""
    record = FileRecord(
        name=info.name,
        size=info.size,
        modified_time=info.modified_time,
        last_processed_at=now,
    )
    store.put(record)
    logger.debug("committed file=%s size=%d", info.name, info.size)
    return record


def prune(
    known: Mapping[str, FileRecord],
    now: datetime,
    horizon: timedelta = DEFAULT_RETENTION,
) -> PruneResult:
    """Drop records last processed before ``now - horizon``.

    Records that were never stamped with ``last_processed_at`` are kept.
    """
    cutoff = now - horizon
    kept: dict[str, FileRecord] = {}
    removed: list[str] = []
    for name, record in known.items():
        if record.last_processed_at is not None and record.last_processed_at < cutoff:
            removed.append(name)
        else:
            kept[name] = record
    return PruneResult(kept=kept, removed=removed)


def prune_store(
    store: TrackerStore,
    now: datetime,
    horizon: timedelta = DEFAULT_RETENTION,
) -> PruneResult:
    """Apply ``prune`` to the store contents."""
    result = prune(store.load(), now, horizon)
    if result.removed:
        store.remove(result.removed)
    logger.info("prune removed=%d kept=%d", len(result.removed), len(result.kept))
    return result
