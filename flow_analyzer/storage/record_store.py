"""
Record stores for normalized execution flows.

Two implementations share one interface: an in-memory store used by default
and a file-based store that keeps one JSON file per flow.
"""

import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..core.exceptions import RecordStoreError
from ..core.types import ExecutionRecord, STATUS_REVERT, STATUS_SUCCESS

logger = logging.getLogger(__name__)


def _status_counts(records) -> Dict[str, int]:
    counts = {STATUS_SUCCESS: 0, STATUS_REVERT: 0}
    for record in records:
        if record.status in counts:
            counts[record.status] += 1
    return counts


class InMemoryRecordStore:
    """Thread-safe in-memory flow storage keyed by tx hash."""

    def __init__(self):
        self._records: Dict[str, ExecutionRecord] = {}
        self._lock = threading.RLock()

    def save(self, record: ExecutionRecord) -> None:
        """Insert or replace a flow."""
        with self._lock:
            self._records[record.tx_hash] = record

    def find_all(self, limit: int = 50) -> List[ExecutionRecord]:
        """Most recent flows first, at most `limit` of them."""
        with self._lock:
            records = list(self._records.values())
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:max(limit, 0)]

    def find_by_hash(self, tx_hash: str) -> Optional[ExecutionRecord]:
        with self._lock:
            return self._records.get(tx_hash)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def status_counts(self) -> Dict[str, int]:
        with self._lock:
            records = list(self._records.values())
        return _status_counts(records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class FileRecordStore:
    """
    File-based flow storage.

    Files are stored as: {storage_dir}/{sha256(tx_hash)}.json
    Each file holds the full flow as JSON. Writes go through a temporary file
    and an atomic rename, so readers never see a partial flow.

    Args:
        storage_dir: Directory path for storing flow files
    """

    def __init__(self, storage_dir: str = 'flows'):
        self.storage_dir = Path(storage_dir)
        self._lock = threading.RLock()
        self._ensure_storage_dir()

    def _ensure_storage_dir(self) -> None:
        """Create storage directory if it doesn't exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _get_record_path(self, tx_hash: str) -> Path:
        """Get the file path for a tx hash."""
        digest = hashlib.sha256(tx_hash.encode('utf-8')).hexdigest()
        return self.storage_dir / f'{digest}.json'

    def save(self, record: ExecutionRecord) -> None:
        """
        Insert or replace a flow.

        Raises:
            RecordStoreError: If the file cannot be written
        """
        record_path = self._get_record_path(record.tx_hash)
        tmp_path = record_path.with_suffix('.json.tmp')
        with self._lock:
            try:
                with open(tmp_path, 'w', encoding='utf-8') as f:
                    json.dump(record.to_dict(), f, indent=2)
                os.replace(tmp_path, record_path)
            except OSError as e:
                raise RecordStoreError(f"Could not write flow {record.tx_hash}: {e}") from e

    def _load(self, path: Path) -> Optional[ExecutionRecord]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return ExecutionRecord.from_dict(data)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable flow file %s: %s", path, e)
            return None

    def _load_all(self) -> List[ExecutionRecord]:
        with self._lock:
            paths = list(self.storage_dir.glob('*.json'))
        records = []
        for path in paths:
            record = self._load(path)
            if record is not None:
                records.append(record)
        return records

    def find_all(self, limit: int = 50) -> List[ExecutionRecord]:
        """Most recent flows first, at most `limit` of them."""
        records = self._load_all()
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:max(limit, 0)]

    def find_by_hash(self, tx_hash: str) -> Optional[ExecutionRecord]:
        record = self._load(self._get_record_path(tx_hash))
        if record is not None and record.tx_hash != tx_hash:
            return None
        return record

    def count(self) -> int:
        with self._lock:
            return sum(1 for _ in self.storage_dir.glob('*.json'))

    def status_counts(self) -> Dict[str, int]:
        return _status_counts(self._load_all())

    def clear(self) -> None:
        """Remove all flow files."""
        with self._lock:
            for path in self.storage_dir.glob('*.json'):
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
