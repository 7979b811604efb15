"""
Cache Reconciler

Keeps the schedule snapshot in step with the feed.

Business Logic:
1. Full mode: the fetched records replace the snapshot wholesale
2. Incremental mode: only volatile fields (spots, capacity, waitlist) of
   cached records are refreshed; titles, instructors and times stay as cached
3. Cached sessions missing from the fresh fetch are kept and counted as missing
4. Sessions new to the cache are appended
5. No snapshot yet (or an unreadable one): fall back to full mode
6. Entries that started more than `retention_days` before today are evicted
"""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import FULL_MODE, INCREMENTAL_MODE
from ..database.snapshot import SnapshotStore
from ..errors import CacheReadFailure
from .normalizer import (
    FIELD_SYNONYMS,
    VOLATILE_FIELDS,
    del_path,
    first_instant,
    get_path,
    has_path,
    identity_key,
    set_path,
)
from .timeutils import TzLike, start_of_today_local

Records = Dict[str, Dict[str, Any]]


@dataclass
class ReconcileResult:
    """Outcome of reconciling a fetch with the snapshot."""
    records: Records
    mode: str
    fell_back: bool = False
    merged: int = 0
    added: int = 0
    pruned: int = 0
    missing_keys: List[str] = field(default_factory=list)

    @property
    def missing(self) -> int:
        return len(self.missing_keys)


def key_records(records: Iterable[Dict[str, Any]], tz: TzLike = None) -> Tuple[Records, int]:
    """
    Index raw records by identity key, keeping feed order.

    Returns:
        (keyed records, number of records without any identity)
    """
    keyed: Records = {}
    unkeyed = 0
    for record in records:
        key = identity_key(record, tz) if isinstance(record, dict) else None
        if key is None:
            unkeyed += 1
            continue
        keyed[key] = record
    return keyed, unkeyed


def make_patch(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Collect the volatile fields of a fresh record, keyed by canonical field.

    Each field takes its value from the first synonym present in the record.
    """
    patch = {}
    for name in VOLATILE_FIELDS:
        for path in FIELD_SYNONYMS[name]:
            if has_path(record, path):
                patch[name] = get_path(record, path)
                break
    return patch


def apply_patch(record: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of the cached record with the patch applied; the input is untouched.

    A patched field is written under the synonym the cached record already
    uses (or its first synonym), and every other synonym of that field is
    removed so the fresh value is the one the normalizer reads.
    """
    patched = copy.deepcopy(record)
    for name, value in patch.items():
        paths = FIELD_SYNONYMS[name]
        target = next((path for path in paths if has_path(patched, path)), paths[0])
        for path in paths:
            if path != target:
                del_path(patched, path)
        set_path(patched, target, value)
    return patched


def merge_volatile(cached: Records, fresh: Records) -> ReconcileResult:
    """
    Merge volatile fields from a fresh fetch into cached records.

    Args:
        cached: Snapshot records keyed by identity
        fresh: Freshly fetched records keyed by identity

    Returns:
        ReconcileResult in incremental mode
    """
    result = ReconcileResult(records={}, mode=INCREMENTAL_MODE)

    for key, record in cached.items():
        if key in fresh:
            result.records[key] = apply_patch(record, make_patch(fresh[key]))
            result.merged += 1
        else:
            result.records[key] = record
            result.missing_keys.append(key)

    for key, record in fresh.items():
        if key not in cached:
            result.records[key] = record
            result.added += 1

    return result


class CacheReconciler:
    """Owns the schedule snapshot for the duration of one run."""

    def __init__(self, store: SnapshotStore, tz: TzLike = None, retention_days: int = 14):
        self.store = store
        self.tz = tz
        self.retention_days = retention_days

    async def reconcile(self, mode: str, fresh: Records, now: Optional[datetime] = None) -> ReconcileResult:
        """
        Produce the working record set for this run.

        Args:
            mode: "full" or "incremental"
            fresh: Freshly fetched records keyed by identity
            now: Reference time for cache eviction (defaults to now)

        Returns:
            ReconcileResult whose records become the new snapshot
        """
        if mode == INCREMENTAL_MODE:
            try:
                cached = await asyncio.to_thread(self.store.read)
            except CacheReadFailure as e:
                print(f"⚠️ {e}; falling back to a full refresh")
                result = ReconcileResult(records=dict(fresh), mode=FULL_MODE, fell_back=True)
            else:
                result = merge_volatile(cached, fresh)
        elif mode == FULL_MODE:
            result = ReconcileResult(records=dict(fresh), mode=FULL_MODE)
        else:
            raise ValueError(f"Unknown refresh mode: {mode}")

        result.records, result.pruned = self.prune(result.records, now)
        return result

    def prune(self, records: Records, now: Optional[datetime] = None) -> Tuple[Records, int]:
        """Drop entries that started more than retention_days before today."""
        if self.retention_days <= 0:
            return records, 0

        cutoff = start_of_today_local(self.tz, now) - timedelta(days=self.retention_days)
        kept: Records = {}
        pruned = 0
        for key, record in records.items():
            start = first_instant(record, FIELD_SYNONYMS["start"], self.tz)
            if start is not None and start < cutoff:
                pruned += 1
                continue
            kept[key] = record
        return kept, pruned

    async def commit(self, result: ReconcileResult) -> None:
        """Write the reconciled records back as the new snapshot."""
        await asyncio.to_thread(self.store.write, result.records)
