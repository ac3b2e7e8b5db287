"""
Counter store for per-function call statistics.
"""

import threading
from typing import Dict, List, Optional, Tuple

from ..core.types import CounterEntry, StatsKey


class InMemoryCounterStore:
    """
    Dict-backed counter storage keyed by (function_name, contract_address).

    Each method is individually thread safe. Read-modify-write sequences
    spanning get and upsert must be serialized by the caller; the
    HotspotAggregator does this with a lock per key.
    """

    def __init__(self):
        self._entries: Dict[StatsKey, CounterEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: StatsKey) -> Optional[CounterEntry]:
        with self._lock:
            return self._entries.get(key)

    def upsert(self, key: StatsKey, entry: CounterEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def items(self) -> List[Tuple[StatsKey, CounterEntry]]:
        """Snapshot of all entries."""
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
