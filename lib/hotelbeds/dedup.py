"""
Duplicate detector - Bounded-memory, per-table natural-key suppression.

Keys are short hashes (last 8 hex chars of an MD5), scoped by business id so
two hotels can never collide with each other. Each table's key set is capped:
once it grows past max_size the oldest half is evicted. After an eviction a
key seen long ago can be reported unique again. This is an accepted false
negative rate, bounded by how far apart duplicates sit in the input stream.
"""

import hashlib
import threading
from collections import OrderedDict
from typing import Any, Dict, Hashable, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

DEFAULT_MAX_SIZE = 500_000


class BoundedKeySet:
    """Insertion-ordered key set that drops its oldest half past a ceiling."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 2:
            raise ValueError("max_size must be at least 2")
        self.max_size = max_size
        self._keys: "OrderedDict[Hashable, None]" = OrderedDict()
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys

    def add(self, key: Hashable) -> bool:
        """Insert a key. Returns False if it was already present."""
        if len(self._keys) > self.max_size:
            self._evict_oldest_half()
        if key in self._keys:
            return False
        self._keys[key] = None
        return True

    def _evict_oldest_half(self) -> None:
        for _ in range(len(self._keys) // 2):
            self._keys.popitem(last=False)
        self.evictions += 1

    def clear(self) -> None:
        self._keys.clear()


class TableDuplicateStats(BaseModel):
    processed: int = 0
    duplicates: int = 0
    unique: int = 0


class DuplicateStats(BaseModel):
    """Per-table and overall duplicate counters."""

    total_processed: int = 0
    duplicates_skipped: int = 0
    unique_records: int = 0
    by_table: Dict[str, TableDuplicateStats] = {}

    @property
    def duplicate_percentage(self) -> float:
        if not self.total_processed:
            return 0.0
        return round(self.duplicates_skipped / self.total_processed * 100, 2)

    def to_dict(self) -> dict:
        return {
            "total_processed": self.total_processed,
            "duplicates_skipped": self.duplicates_skipped,
            "unique_records": self.unique_records,
            "duplicate_percentage": self.duplicate_percentage,
            "by_table": {name: stats.model_dump() for name, stats in self.by_table.items()},
        }


def short_hash(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()[-8:]


class DuplicateDetector:
    """
    Thread-safe duplicate check over per-table natural keys.

    Usage:
        detector = DuplicateDetector({"hotel_contracts": ("contract_code", "date_from")})
        if not detector.is_duplicate("hotel_contracts", hotel_id, row):
            writer.write("hotel_contracts", row)
    """

    def __init__(
        self,
        natural_keys: Optional[Mapping[str, Sequence[str]]] = None,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        self.natural_keys: Dict[str, Tuple[str, ...]] = {
            table: tuple(fields) for table, fields in (natural_keys or {}).items()
        }
        self.max_size = max_size
        self._sets: Dict[str, BoundedKeySet] = {}
        self._stats = DuplicateStats()
        self._lock = threading.Lock()

    def key_for(self, table: str, business_id: Any, record: Mapping[str, Any]) -> Optional[Tuple[Any, str]]:
        fields = self.natural_keys.get(table)
        if not fields:
            return None
        parts = ":".join("" if record.get(name) is None else str(record.get(name)) for name in fields)
        return business_id, short_hash(f"{business_id}:{parts}")

    def is_duplicate(self, table: str, business_id: Any, record: Mapping[str, Any]) -> bool:
        """Record the key and report whether it was already seen for this table."""
        key = self.key_for(table, business_id, record)
        with self._lock:
            stats = self._stats.by_table.setdefault(table, TableDuplicateStats())
            stats.processed += 1
            self._stats.total_processed += 1

            duplicate = False
            if key is not None:
                keys = self._sets.get(table)
                if keys is None:
                    keys = self._sets[table] = BoundedKeySet(self.max_size)
                duplicate = not keys.add(key)

            if duplicate:
                stats.duplicates += 1
                self._stats.duplicates_skipped += 1
            else:
                stats.unique += 1
                self._stats.unique_records += 1
            return duplicate

    def size(self, table: str) -> int:
        keys = self._sets.get(table)
        return len(keys) if keys else 0

    def stats(self) -> DuplicateStats:
        with self._lock:
            return self._stats.model_copy(deep=True)

    def reset(self) -> None:
        with self._lock:
            self._sets.clear()
            self._stats = DuplicateStats()
