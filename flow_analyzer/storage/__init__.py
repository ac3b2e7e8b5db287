"""Storage module for flows and function counters."""

from .counter_store import InMemoryCounterStore
from .record_store import FileRecordStore, InMemoryRecordStore

__all__ = ['InMemoryCounterStore', 'InMemoryRecordStore', 'FileRecordStore']
